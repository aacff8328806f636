# src/llmadapt/logging_config.py
"""
Logging configuration for llmadapt applications.

Library modules only ever call `logging.getLogger(__name__)`. Applications
that want llmadapt to set up handlers call `configure_logging()` once at
startup, passing the `[logging]` section of the configuration (a
`LoggingConfig`, or a plain dict with the same keys).

Key concepts:

    **Display filter**: with ``console_enabled=False`` the console handler
    still exists but only passes records logged with
    ``extra={"display": True}`` (see `log_display`), so user-facing progress
    messages reach the console while everything else stays in the log file.

    **File modes**: ``file_mode="per_run"`` writes a fresh timestamped file
    per process; ``file_mode="single"`` appends to one file rotated by size.

Usage:
    from llmadapt.logging_config import configure_logging, log_display

    configure_logging(app_config.logging)
    log_display(logger, logging.INFO, "Indexed %d documents", count)
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .config.models import LoggingConfig

LevelLike = Union[str, int]


def _resolve_level(level: LevelLike, fallback: int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else fallback


class DisplayFilter(logging.Filter):
    """Decides which records reach the console handler.

    Behavior matrix::

        +----------------------+--------------+------------------+
        | console enabled      | display=True | display absent   |
        +----------------------+--------------+------------------+
        | True                 | PASS         | PASS             |
        | False                | PASS*        | BLOCK            |
        +----------------------+--------------+------------------+

        * only at or above display_min_level
    """

    def __init__(self, console_enabled: bool = False, display_min_level: int = logging.INFO) -> None:
        super().__init__()
        self.console_enabled = console_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


class LoggingManager:
    """
    Owns the handlers llmadapt installs on the root logger, so that
    reconfiguring replaces them without touching handlers installed by the
    host application.
    """
    _instance: Optional["LoggingManager"] = None

    def __init__(self) -> None:
        self.console_handler: Optional[logging.Handler] = None
        self.file_handler: Optional[logging.Handler] = None
        self.display_filter: Optional[DisplayFilter] = None
        self.log_file_path: Optional[Path] = None
        self.configured = False

    @classmethod
    def get_instance(cls) -> "LoggingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _remove_handlers(self) -> None:
        root_logger = logging.getLogger()
        for handler in (self.console_handler, self.file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        self.console_handler = None
        self.file_handler = None
        self.display_filter = None
        self.log_file_path = None

    def configure(self, config: LoggingConfig, app_name: str = "llmadapt", force: bool = False) -> Optional[Path]:
        """
        Install console and file handlers according to `config`.

        Returns:
            The log file path, or None when file logging is disabled or the
            file could not be created.
        """
        if self.configured and not force:
            return self.log_file_path
        self._remove_handlers()

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        self.display_filter = DisplayFilter(
            console_enabled=config.console_enabled,
            display_min_level=_resolve_level(config.display_min_level, logging.INFO),
        )
        self.console_handler = logging.StreamHandler(sys.stderr)
        # With the console disabled the filter is the only gate.
        console_level = _resolve_level(config.console_level, logging.WARNING) if config.console_enabled else logging.DEBUG
        self.console_handler.setLevel(console_level)
        self.console_handler.setFormatter(logging.Formatter(config.console_format))
        self.console_handler.addFilter(self.display_filter)
        root_logger.addHandler(self.console_handler)

        if config.file_enabled:
            self.file_handler, self.log_file_path = self._create_file_handler(config, app_name)
            if self.file_handler is not None:
                root_logger.addHandler(self.file_handler)

        for component_name, level in config.components.items():
            logging.getLogger(component_name).setLevel(_resolve_level(level, logging.INFO))

        self.configured = True
        logging.getLogger(__name__).debug(f"Logging configured. Log file: {self.log_file_path}")
        return self.log_file_path

    def _create_file_handler(self, config: LoggingConfig, app_name: str) -> Tuple[Optional[logging.Handler], Optional[Path]]:
        log_dir = Path(config.file_directory).expanduser()
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.file_mode == "single":
                log_file_path = log_dir / config.file_single_name.format(app=app_name)
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config.file_max_bytes,
                    backupCount=config.file_backup_count,
                    encoding="utf-8",
                )
            else:
                timestamp = datetime.now()
                try:
                    filename = config.file_name_pattern.format(app=app_name, timestamp=timestamp)
                except (KeyError, ValueError):
                    filename = f"{app_name}_{timestamp:%Y%m%d_%H%M%S}.log"
                log_file_path = log_dir / filename
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_resolve_level(config.file_level, logging.DEBUG))
        handler.setFormatter(logging.Formatter(config.file_format))
        return handler, log_file_path

    def set_console_level(self, level: LevelLike) -> None:
        if self.console_handler is not None:
            self.console_handler.setLevel(_resolve_level(level, logging.WARNING))

    def shutdown(self) -> None:
        self._remove_handlers()
        self.configured = False


def configure_logging(
    config: Union[LoggingConfig, Dict[str, Any], None] = None,
    app_name: str = "llmadapt",
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """
    Configure llmadapt's console and file logging.

    Args:
        config: The `[logging]` section; defaults apply when omitted.
        app_name: Substituted for ``{app}`` in log file names.
        force_reconfigure: Replace handlers from an earlier call.

    Returns:
        Path to the log file, if file logging is active.
    """
    if config is None:
        config = LoggingConfig()
    elif isinstance(config, dict):
        config = LoggingConfig(**config)
    return LoggingManager.get_instance().configure(config, app_name=app_name, force=force_reconfigure)


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
    """
    Log a message that also reaches the console when the console is
    otherwise disabled. Any ``extra`` passed in is kept.
    """
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def get_log_file_path() -> Optional[Path]:
    return LoggingManager.get_instance().log_file_path


def set_console_level(level: LevelLike) -> None:
    """Change the console handler's level at runtime."""
    LoggingManager.get_instance().set_console_level(level)
