# src/llmadapt/config/loader.py
"""
Configuration loading for llmadapt.

confy layers the sources, lowest precedence first:

1. The packaged `default_config.toml`.
2. An optional user TOML file.
3. Environment variables under the `LLMADAPT` prefix. confy reads `_` as the
   section separator and `__` as a literal underscore, so
   `LLMADAPT_CHAT_RETRY_MAX__ATTEMPTS=5` sets `chat.retry.max_attempts`.
4. A programmatic overrides dictionary with dotted keys.

The merged result is validated into an `AppConfig`.
"""

import importlib.resources
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from confy.loader import Config as ConfyConfig
from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "LLMADAPT"


def load_default_config() -> Dict[str, Any]:
    """Read the packaged defaults."""
    try:
        default_path = importlib.resources.files("llmadapt.config").joinpath("default_config.toml")
        with default_path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to load packaged default configuration: {e}")


def load_config(
    config_file_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env_prefix: Optional[str] = DEFAULT_ENV_PREFIX,
) -> AppConfig:
    """
    Load and validate the llmadapt configuration.

    Args:
        config_file_path: Optional user TOML file.
        overrides: Highest precedence values keyed by dotted paths such as
            `"chat.retry.max_attempts"`.
        env_prefix: Prefix of environment overrides, or None to ignore the
            environment.

    Raises:
        ConfigError: If a file is missing or malformed, or validation fails.
    """
    file_path = None
    if config_file_path:
        file_path = Path(config_file_path).expanduser()
        if not file_path.is_file():
            raise ConfigError(f"Config file not found: {file_path}")

    try:
        confy_config = ConfyConfig(
            defaults=load_default_config(),
            file_path=str(file_path) if file_path else None,
            prefix=env_prefix or None,
            overrides_dict=dict(overrides) if overrides else None,
        )
        data = confy_config.as_dict()
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"llmadapt configuration loading failed: {e}")
    logger.debug(f"Loaded configuration (file: {file_path}, env prefix: {env_prefix}).")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")
