# src/llmadapt/providers/__init__.py
"""
Chat backend integrations for the llmadapt library.

This package holds the backend wire shapes, the abstract provider interface,
the OpenAI-compatible providers and the `ChatClient` that ties a provider to
request building, response assembly and retries.
"""

# Kept import-free so that `llmadapt.chat` can import `providers.schemas`
# without pulling in the provider implementations.
