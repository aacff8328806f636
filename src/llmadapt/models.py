# src/llmadapt/models.py
"""
Core data models for the llmadapt library.

This module defines the Pydantic models used to represent the provider-neutral
vocabulary of the library: conversational messages and prompts, per-call chat
options, the generations and responses a chat backend produces, and the
documents kept in a vector store. Backend-specific wire shapes live in
`llmadapt.providers.schemas`.
"""

import copy
import inspect
import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import (Any, Callable, Dict, List, Optional, Set, Tuple, TypeVar,
                    Union)

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OptionsT = TypeVar("OptionsT", bound="ChatOptions")


class Role(str, Enum):
    """
    Enumeration of possible roles in a conversation.
    These roles define the origin or type of a message.
    """
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"

    @classmethod
    def _missing_(cls, value: object): # type: ignore[misc] # Pydantic uses this signature
        """
        Handles case-insensitive matching and common aliases for roles.
        For example, "Agent" or "AGENT" will be mapped to Role.ASSISTANT.
        """
        if isinstance(value, str):
            lower_value = value.lower()
            if lower_value == "agent":
                return cls.ASSISTANT
            for member in cls:
                if member.value == lower_value:
                    return member
        return None # Let Pydantic handle the error for truly invalid values


class FinishReason(str, Enum):
    """Why a backend stopped producing tokens for one choice."""
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    FUNCTION_CALL = "function_call"
    CONTENT_FILTER = "content_filter"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object): # type: ignore[misc]
        """Case-insensitive lookup; backend-specific reasons collapse to OTHER."""
        if isinstance(value, str):
            lower_value = value.lower()
            for member in cls:
                if member.value == lower_value:
                    return member
            return cls.OTHER
        return None


class Media(BaseModel):
    """
    A piece of non-text content attached to a message.

    Attributes:
        mime_type: MIME type of the content (e.g. "image/png").
        data: Raw bytes of the content, if it is carried inline.
        uri: Location of the content, if it is referenced instead.
    """
    model_config = ConfigDict(frozen=True)

    mime_type: str = Field(description="MIME type of the media, e.g. 'image/png'.")
    data: Optional[bytes] = Field(default=None, description="Inline media bytes.")
    uri: Optional[str] = Field(default=None, description="URI referencing the media.")

    @model_validator(mode="after")
    def check_exactly_one_source(self) -> "Media":
        """Exactly one of `data` or `uri` must carry the content."""
        if (self.data is None) == (self.uri is None):
            raise ValueError("Media requires exactly one of 'data' or 'uri'.")
        return self


class Message(BaseModel):
    """
    Represents a single conversational turn.

    Messages are immutable once constructed; build a new one instead of
    editing an existing one.

    Attributes:
        role: The role of the entity that produced the message.
        content: The textual content of the message.
        media: Ordered attachments (images and the like) sent with the message.
        metadata: An optional dictionary for storing additional, unstructured information.
    """
    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="The role of the message sender.")
    content: str = Field(default="", description="The textual content of the message.")
    media: Tuple[Media, ...] = Field(default=(), description="Ordered media attachments.")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Optional dictionary for additional message metadata.")

    @classmethod
    def system(cls, content: str, **metadata: Any) -> "Message":
        return cls(role=Role.SYSTEM, content=content, metadata=metadata)

    @classmethod
    def user(cls, content: str, media: Optional[List[Media]] = None, **metadata: Any) -> "Message":
        return cls(role=Role.USER, content=content, media=tuple(media or ()), metadata=metadata)

    @classmethod
    def assistant(cls, content: str, **metadata: Any) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, metadata=metadata)

    @classmethod
    def function(cls, name: str, content: str, **metadata: Any) -> "Message":
        return cls(role=Role.FUNCTION, content=content, metadata={"name": name, **metadata})


class ToolCall(BaseModel):
    """
    A function invocation requested by the backend.

    For streamed responses one fragment may carry only a slice of a call:
    `arguments` then holds a piece of the JSON text and `aggregate` joins
    the pieces by `index`.
    """
    model_config = ConfigDict(frozen=True)

    index: int = 0
    id: Optional[str] = None
    name: str = ""
    arguments: str = Field(default="", description="JSON-encoded arguments, as sent by the backend.")

    def parsed_arguments(self) -> Dict[str, Any]:
        if not self.arguments.strip():
            return {}
        value = json.loads(self.arguments)
        if not isinstance(value, dict):
            raise ValueError(f"Arguments of function call '{self.name}' are not a JSON object.")
        return value

    def to_wire(self) -> Dict[str, Any]:
        """OpenAI-compatible `tool_calls` entry."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class FunctionCallback(BaseModel):
    """
    A local function the backend may ask to run.

    Callbacks placed on per-call options are enabled for that call. Callbacks
    on a client's default options are only registered; list their names in
    `ChatOptions.function_names` to enable them.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    function: Callable[..., Any] = Field(description="Called with the decoded arguments as keyword arguments; may be async.")

    def schema(self) -> Dict[str, Any]:
        return {"description": self.description, "parameters": copy.deepcopy(self.parameters)}

    async def call(self, arguments: Dict[str, Any]) -> str:
        """Run the function and render its result as message text."""
        result = self.function(**arguments)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)


def _merge_callbacks(registered: Optional[List[FunctionCallback]],
                     added: Optional[List[FunctionCallback]]) -> Optional[List[FunctionCallback]]:
    if added is None:
        return None
    by_name = {callback.name: callback for callback in registered or ()}
    by_name.update((callback.name, callback) for callback in added)
    return list(by_name.values())


class ChatOptions(BaseModel):
    """
    Recognized per-call configuration for a chat completion.

    A client holds a *default* instance and a prompt may carry a *per-call*
    instance. Only fields that were explicitly set (see `model_fields_set`)
    on the per-call instance override the defaults; explicitly passing `None`
    counts as set and clears the default.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    model: Optional[str] = Field(default=None, description="Backend model identifier.")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    stop_sequences: Optional[List[str]] = Field(default=None)
    presence_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2.0, le=2.0)
    n: Optional[int] = Field(default=None, gt=0, description="Number of parallel choices to generate.")
    function_names: Optional[Set[str]] = Field(default=None, description="Names of registered functions enabled for the call.")
    function_callbacks: Optional[List[FunctionCallback]] = Field(default=None, description="Local functions the backend may call.")

    @classmethod
    def merge(cls, defaults: Optional[OptionsT], overrides: Optional["ChatOptions"]) -> OptionsT:
        """
        Merge per-call options over defaults, field by field.

        The result has the type of `defaults` (or of this class when no
        defaults are given), so only fields that type recognizes survive.
        A field comes from `overrides` when it was explicitly set there,
        otherwise from `defaults` when it was set there, otherwise it stays
        unset. Function callbacks accumulate by name instead, the per-call
        callback winning a name clash.
        """
        base = defaults if defaults is not None else cls()
        target_cls = type(base)
        explicit = overrides.model_fields_set if overrides is not None else set()
        override_fields = type(overrides).model_fields if overrides is not None else {}

        values: Dict[str, Any] = {}
        for name in target_cls.model_fields:
            if name in explicit and name in override_fields:
                source = overrides
            elif name in base.model_fields_set:
                source = base
            else:
                continue
            if name == "function_callbacks":
                registered = base.function_callbacks if source is overrides else None
                values[name] = _merge_callbacks(registered, getattr(source, name))
            else:
                values[name] = copy.deepcopy(getattr(source, name))
        return target_cls(**values)

    def explicit_values(self) -> Dict[str, Any]:
        """Return only the fields that were explicitly set, with their values."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Prompt(BaseModel):
    """
    The input of one chat call: an ordered message history plus optional
    per-call options. Built once per call and never mutated after submission.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    messages: Tuple[Message, ...] = Field(description="Ordered conversation history.")
    # Typed as Any so that misuse surfaces as InvalidOptionsTypeError at request build time.
    options: Optional[Any] = Field(default=None, description="Per-call ChatOptions.")

    @field_validator("messages", mode="before")
    @classmethod
    def coerce_messages(cls, value: Any) -> Any:
        """Accept a bare string or a single Message as shorthand."""
        if isinstance(value, str):
            return (Message.user(value),)
        if isinstance(value, Message):
            return (value,)
        return value

    @classmethod
    def of(cls, messages: Union[str, Message, List[Message]], options: Optional[Any] = None) -> "Prompt":
        """Convenience constructor: `Prompt.of("Hello")`."""
        return cls(messages=messages, options=options)

    @property
    def contents(self) -> str:
        """All message contents joined by newlines."""
        return "\n".join(m.content for m in self.messages)


class ChatGenerationMetadata(BaseModel):
    """Completion details attached only to a generation whose choice finished."""
    model_config = ConfigDict(frozen=True)

    finish_reason: FinishReason
    content_filter: Optional[Dict[str, Any]] = None


class Generation(BaseModel):
    """
    One candidate completion (or one streamed slice of it).

    Attributes:
        id: Identifier of the backend call; shared by every generation of the call.
        index: Position of the parallel choice this generation belongs to.
        content: Text produced (for streams, the delta carried by one fragment).
        completed: True iff the backend reported a finish reason for this choice.
        finish_reason: The reported finish reason, if any.
        metadata: `{"id", "role", "finish_reason"}` plus backend extras.
        generation_metadata: Present only when `completed` is True.
        tool_calls: Functions the backend asked to run (slices of them for streams).
    """
    model_config = ConfigDict(frozen=True)

    id: str
    index: int = 0
    content: str = ""
    completed: bool = False
    finish_reason: Optional[FinishReason] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    generation_metadata: Optional[ChatGenerationMetadata] = None
    tool_calls: Tuple[ToolCall, ...] = ()

    @property
    def role(self) -> Optional[Role]:
        """The llmadapt role, or None when absent or outside llmadapt's vocabulary (e.g. "tool")."""
        value = self.metadata.get("role")
        if not value:
            return None
        try:
            return Role(value)
        except ValueError:
            return None


class ChatResponse(BaseModel):
    """
    A (possibly partial) chat response. Every contained generation carries
    the response's id.
    """
    model_config = ConfigDict(frozen=True)

    id: str = ""
    results: Tuple[Generation, ...] = ()

    @model_validator(mode="after")
    def check_ids_consistent(self) -> "ChatResponse":
        """Ensure every generation belongs to the same backend call as the response."""
        for generation in self.results:
            if generation.id != self.id:
                raise ValueError(
                    f"Generation id '{generation.id}' does not match response id '{self.id}'."
                )
        return self

    @property
    def result(self) -> Optional[Generation]:
        """The first generation, or None for an empty response."""
        return self.results[0] if self.results else None

    @property
    def content(self) -> str:
        """Text of the first choice (index 0) across all results."""
        return "".join(g.content for g in self.results if g.index == 0)


class Document(BaseModel):
    """
    A document kept in a vector store, typically for Retrieval Augmented Generation.

    Attributes:
        id: Caller-supplied identifier, or a generated UUID.
        content: The textual content of the document.
        metadata: Flat metadata used for filtering and display.
        embedding: Precomputed vector; computed at store time when absent.
        score: Normalized similarity score in [0, 1], set on search results.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier for the document.")
    content: str = Field(description="The textual content of the document.")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Optional dictionary for document metadata (e.g., source, title).")
    embedding: Optional[List[float]] = Field(default=None, description="Optional vector embedding of the document content.")
    score: Optional[float] = Field(default=None, description="Similarity score from a search, 1.0 meaning identical.")


@dataclass(frozen=True)
class VectorRecord:
    """
    Store-internal representation of a document. Owned by the vector store;
    callers only ever see detached `Document` copies.
    """
    id: str
    vector: Tuple[float, ...]
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0

    @classmethod
    def from_document(cls, document: Document, vector: List[float], sequence: int = 0) -> "VectorRecord":
        return cls(
            id=document.id,
            vector=tuple(float(x) for x in vector),
            content=document.content,
            metadata=copy.deepcopy(document.metadata),
            sequence=sequence,
        )

    def with_sequence(self, sequence: int) -> "VectorRecord":
        return VectorRecord(self.id, self.vector, self.content, self.metadata, sequence)

    def to_document(self, score: Optional[float] = None) -> Document:
        """Detached copy of this record; the embedding is not exposed."""
        return Document(
            id=self.id,
            content=self.content,
            metadata=copy.deepcopy(self.metadata),
            score=score,
        )
