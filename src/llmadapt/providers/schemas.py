# src/llmadapt/providers/schemas.py
"""
Wire-level shapes exchanged with chat backends.

These models mirror the OpenAI-compatible chat completion format, which most
hosted chat backends (OpenAI, Moonshot, and other compatible services) speak.
They are deliberately permissive on input (unknown fields are ignored) so that
backend-specific additions do not break parsing.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class WireMessage(BaseModel):
    """One message in backend vocabulary."""
    role: str
    content: Union[str, List[Dict[str, Any]], None] = None
    name: Optional[str] = None
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None


class NormalizedRequest(BaseModel):
    """
    A fully merged, backend-ready chat request.

    Produced by `llmadapt.chat.request.build_request`; consumed by a
    provider's `complete` / `complete_stream`.
    """
    model: str
    messages: List[WireMessage]
    stream: bool = False
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stop: Optional[List[str]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    n: Optional[int] = None
    functions: List[str] = Field(default_factory=list, description="Names of functions enabled for this call.")
    function_schemas: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Description and parameters of enabled callback functions, by name.")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific request parameters.")

    def to_payload(self) -> Dict[str, Any]:
        """
        Render the request as keyword arguments for an OpenAI-compatible
        `chat.completions.create` call, dropping unset values.
        """
        payload = self.model_dump(exclude={"functions", "function_schemas", "extra", "messages"}, exclude_none=True)
        payload["messages"] = [m.model_dump(exclude_none=True) for m in self.messages]
        if self.stop == []:
            payload.pop("stop", None)
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


class FunctionCallPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    arguments: Optional[str] = None


class ToolCallPayload(BaseModel):
    """
    One `tool_calls` entry. In stream fragments every field but `index` may
    be missing and `function.arguments` carries a slice of the JSON text.
    """
    model_config = ConfigDict(extra="ignore")

    index: Optional[int] = None
    id: Optional[str] = None
    type: Optional[str] = None
    function: FunctionCallPayload = Field(default_factory=FunctionCallPayload)


class CompletionMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallPayload]] = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: CompletionMessage = Field(default_factory=CompletionMessage)
    finish_reason: Optional[str] = None


class ChatCompletion(BaseModel):
    """A complete, non-streamed backend response."""
    model_config = ConfigDict(extra="ignore")

    id: str
    object: str = "chat.completion"
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[CompletionChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None


class ChunkDelta(BaseModel):
    """The incremental content one fragment carries for one choice."""
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallPayload]] = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    """
    One fragment of a streamed backend response. All fragments of one call
    share the same `id`.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    object: str = "chat.completion.chunk"
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[ChunkChoice] = Field(default_factory=list)
