# src/llmadapt/exceptions.py
"""
Custom exceptions for the llmadapt library.

This module defines a hierarchy of custom exception classes so that callers
can tell caller misuse (bad options, unsupported roles, wrong vector sizes)
apart from transient failures of a chat backend or an embedding provider.
"""

from typing import Any, Optional


class LLMAdaptError(Exception):
    """Base class for all llmadapt specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in llmadapt."):
        super().__init__(message)


class ConfigError(LLMAdaptError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)


class ProviderError(LLMAdaptError):
    """Raised for errors originating from a chat backend (API errors, connection issues)."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Provider error."):
        self.provider_name = provider_name
        super().__init__(f"Error with provider '{provider_name}': {message}")


class StreamProtocolError(ProviderError):
    """Raised when a backend's fragment sequence breaks the streaming contract."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Malformed response stream."):
        super().__init__(provider_name, message)


class InvalidOptionsTypeError(LLMAdaptError, TypeError):
    """
    Raised when a prompt carries per-call options that are not a ChatOptions.
    This is caller misuse and is never retried.
    """
    def __init__(self, options_type: str = "Unknown", message: str = "Prompt options are not of type ChatOptions."):
        self.options_type = options_type
        super().__init__(f"{message} Got: '{options_type}'")


class UnsupportedRoleError(LLMAdaptError, ValueError):
    """Raised when a message role has no counterpart in the target backend's vocabulary."""
    def __init__(self, index: int = -1, role: Any = None, message: str = "Unsupported message role."):
        self.index = index
        self.role = role
        role_str = getattr(role, "value", role)
        super().__init__(f"{message} Role: '{role_str}', message index: {index}")


class EmbeddingError(LLMAdaptError):
    """Raised for errors related to embedding generation."""
    def __init__(self, model_name: str = "Unknown", message: str = "Embedding generation error."):
        self.model_name = model_name
        super().__init__(f"Error with embedding model '{model_name}': {message}")


class EmbeddingProviderUnavailableError(EmbeddingError):
    """Raised when the embedding provider call itself fails (transient, retryable)."""
    def __init__(self, model_name: str = "Unknown", message: str = "Embedding provider unavailable."):
        super().__init__(model_name, message)


class StorageError(LLMAdaptError):
    """Base class for errors related to storage operations."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)


class VectorStorageError(StorageError):
    """Raised for errors specific to vector storage operations."""
    def __init__(self, message: str = "Vector storage error."):
        super().__init__(message)


class DimensionMismatchError(VectorStorageError, ValueError):
    """
    Raised when an embedding's length disagrees with the store's configured dimension.
    A permanent caller error; never retried.
    """
    def __init__(self, expected: int = 0, actual: int = 0, document_id: Optional[str] = None,
                 message: str = "Embedding dimension mismatch."):
        self.expected = expected
        self.actual = actual
        self.document_id = document_id
        where = f" Document ID: '{document_id}'." if document_id else ""
        super().__init__(f"{message} Expected: {expected}, Actual: {actual}.{where}")
