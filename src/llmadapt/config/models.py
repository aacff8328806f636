# src/llmadapt/config/models.py
"""
Pydantic models for llmadapt configuration validation.

The packaged `default_config.toml`, an optional user TOML file, environment
variables and programmatic overrides are merged into one dictionary and then
validated against `AppConfig`.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..storage.similarity import DistanceType


class RetryConfig(BaseModel):
    """Backoff settings applied to every backend and embedding call."""
    model_config = ConfigDict(extra="forbid")

    max_attempts: int = Field(3, ge=1, description="Total attempts including the first one.")
    base_delay_seconds: float = Field(0.5, ge=0.0)
    max_delay_seconds: float = Field(10.0, ge=0.0)

    @model_validator(mode="after")
    def check_delay_bounds(self) -> "RetryConfig":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must not be smaller than base_delay_seconds")
        return self


class ChatClientConfig(BaseModel):
    """
    The `[chat]` section: which backend to talk to and the defaults applied
    to every call.
    """
    model_config = ConfigDict(extra="forbid")

    provider: str = Field("openai", description="Backend name: 'openai' or 'moonshot'.")
    api_key: Optional[str] = Field(None, description="API key; falls back to the provider's environment variable.")
    base_url: Optional[str] = Field(None, description="Endpoint override for OpenAI-compatible servers.")
    timeout_seconds: float = Field(60.0, gt=0.0)
    log_raw_payloads: bool = Field(False, description="Log raw request/response payloads at DEBUG level.")
    default_options: Dict[str, Any] = Field(default_factory=dict, description="Default ChatOptions fields.")
    functions: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Registered functions: name -> {description, parameters (JSON schema)}.",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, value: str) -> str:
        return value.strip().lower()


class EmbeddingConfig(BaseModel):
    """The `[embedding]` section."""
    model_config = ConfigDict(extra="forbid")

    provider: str = Field("openai", description="Embedding backend name.")
    model: Optional[str] = Field(None, description="Embedding model; backend default when unset.")
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    dimensions: Optional[int] = Field(None, gt=0, description="Requested output dimension, when the model supports it.")
    batch_size: int = Field(512, gt=0)
    timeout_seconds: float = Field(60.0, gt=0.0)


class VectorStoreConfig(BaseModel):
    """
    The `[vector_store]` section.

    `label`, `embedding_property` and `database_name` name the node label,
    vector property and database for graph-backed stores; the bundled
    backends accept them but only `collection_name` and `path` affect
    storage layout.
    """
    model_config = ConfigDict(extra="forbid")

    type: str = Field("memory", description="Storage backend: 'memory' or 'chromadb'.")
    embedding_dimension: int = Field(1536, gt=0)
    distance_type: DistanceType = Field(DistanceType.COSINE)
    path: Optional[str] = Field(None, description="ChromaDB persistence directory; in-memory when unset.")
    collection_name: str = Field("llmadapt_default")
    label: str = Field("Document")
    embedding_property: str = Field("embedding")
    database_name: Optional[str] = None
    default_top_k: int = Field(4, gt=0)
    default_similarity_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)

    def backend_config(self) -> Dict[str, Any]:
        """The dictionary handed to `BaseVectorStorage.initialize`."""
        return {
            "distance_type": self.distance_type,
            "path": self.path,
            "collection_name": self.collection_name,
            "label": self.label,
            "embedding_property": self.embedding_property,
            "database_name": self.database_name,
        }


class LoggingConfig(BaseModel):
    """The `[logging]` section; see `llmadapt.logging_config.configure_logging`."""
    model_config = ConfigDict(extra="forbid")

    console_enabled: bool = True
    console_level: str = "WARNING"
    console_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_enabled: bool = False
    file_level: str = "DEBUG"
    file_directory: str = "~/.local/share/llmadapt/logs"
    file_mode: str = Field("per_run", description="'per_run' (timestamped file) or 'single' (rotating file).")
    file_name_pattern: str = "{app}_{timestamp:%Y%m%d_%H%M%S}.log"
    file_single_name: str = "{app}.log"
    file_max_bytes: int = Field(10 * 1024 * 1024, gt=0)
    file_backup_count: int = Field(5, ge=0)
    file_format: str = "%(asctime)s [%(levelname)-8s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
    display_min_level: str = "INFO"
    components: Dict[str, str] = Field(default_factory=dict, description="Logger name -> level.")

    @field_validator("console_level", "file_level", "display_min_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("file_mode")
    @classmethod
    def check_file_mode(cls, value: str) -> str:
        if value not in ("per_run", "single"):
            raise ValueError("file_mode must be 'per_run' or 'single'")
        return value


class AppConfig(BaseModel):
    """Root configuration object."""
    model_config = ConfigDict(extra="forbid")

    chat: ChatClientConfig = Field(default_factory=ChatClientConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def check_embedding_dimension(self) -> "AppConfig":
        if self.embedding.dimensions and self.embedding.dimensions != self.vector_store.embedding_dimension:
            raise ValueError(
                f"embedding.dimensions ({self.embedding.dimensions}) disagrees with "
                f"vector_store.embedding_dimension ({self.vector_store.embedding_dimension})"
            )
        return self
