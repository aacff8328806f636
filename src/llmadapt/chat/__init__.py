# src/llmadapt/chat/__init__.py
"""
Provider-neutral chat plumbing: request building, streaming response
assembly, prompt rendering for text backends, and the retry policy.
"""

from .assembler import StreamingResponseAssembler, aggregate
from .prompt_text import PromptTextConverter
from .request import (CHAT_ONLY_ROLE_MAP, DEFAULT_ROLE_MAP, build_request,
                      resolve_options, translate_messages)
from .retry import RetryPolicy

__all__ = [
    "StreamingResponseAssembler",
    "aggregate",
    "PromptTextConverter",
    "CHAT_ONLY_ROLE_MAP",
    "DEFAULT_ROLE_MAP",
    "build_request",
    "resolve_options",
    "translate_messages",
    "RetryPolicy",
]
