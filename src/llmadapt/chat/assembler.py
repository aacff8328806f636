# src/llmadapt/chat/assembler.py
"""
Streaming response assembly.

A streamed chat call arrives as an ordered sequence of fragments
(`ChatCompletionChunk`), each carrying a delta for one or more parallel
choices. `StreamingResponseAssembler` turns that sequence, lazily and in
delivery order, into `ChatResponse` values whose generations all carry the
call id, a stable choice index, the conversational role and a completion flag.

Many backends send the role only on the first fragment of a choice and omit
it afterwards. The assembler remembers the first role seen per call and per
choice and fills it in for every later fragment. That memo lives in a
`_StreamState` created for each call and dropped when the call's sequence
ends, so one assembler can serve any number of concurrent calls.
"""

import logging
from typing import (Any, AsyncIterable, AsyncIterator, Dict, Iterable,
                    List, Optional, Sequence, Set, Tuple, Union)

from ..exceptions import StreamProtocolError
from ..models import (ChatGenerationMetadata, ChatResponse, FinishReason,
                      Generation, Role, ToolCall)
from ..providers.schemas import (ChatCompletion, ChatCompletionChunk,
                                 ToolCallPayload)

logger = logging.getLogger(__name__)

FragmentSource = Union[AsyncIterable[Any], Iterable[Any]]

DEFAULT_ROLE = Role.ASSISTANT.value


def _normalize_role(raw: Optional[str]) -> Optional[str]:
    """Map a backend role string onto llmadapt's vocabulary when it is known."""
    if not raw:
        return None
    try:
        return Role(raw).value
    except ValueError:
        return raw.lower()


def _finish_reason(raw: Optional[str]) -> Optional[FinishReason]:
    return FinishReason(raw) if raw else None


def _tool_calls(payloads: Optional[Sequence[ToolCallPayload]]) -> Tuple[ToolCall, ...]:
    return tuple(
        ToolCall(
            index=payload.index if payload.index is not None else position,
            id=payload.id,
            name=payload.function.name or "",
            arguments=payload.function.arguments or "",
        )
        for position, payload in enumerate(payloads or ())
    )


async def _as_async_iterator(source: FragmentSource) -> AsyncIterator[Any]:
    for item in source: # type: ignore[union-attr]
        yield item


class _StreamState:
    """Role memo and completion bookkeeping for a single backend call."""

    def __init__(self) -> None:
        self.call_id: Optional[str] = None
        self._choice_roles: Dict[str, Dict[int, str]] = {}
        self._call_roles: Dict[str, str] = {}
        self._completed: Dict[str, Set[int]] = {}

    def remember_role(self, call_id: str, index: int, role: str) -> None:
        self._choice_roles.setdefault(call_id, {}).setdefault(index, role)
        self._call_roles.setdefault(call_id, role)

    def role_for(self, call_id: str, index: int) -> str:
        choice_role = self._choice_roles.get(call_id, {}).get(index)
        if choice_role is not None:
            return choice_role
        return self._call_roles.get(call_id, DEFAULT_ROLE)

    def is_completed(self, call_id: str, index: int) -> bool:
        return index in self._completed.get(call_id, ())

    def mark_completed(self, call_id: str, index: int) -> None:
        self._completed.setdefault(call_id, set()).add(index)

    def clear(self) -> None:
        self._choice_roles.clear()
        self._call_roles.clear()
        self._completed.clear()


class StreamingResponseAssembler:
    """
    Converts backend fragments into consolidated `ChatResponse` values.

    The assembler never reorders or buffers: one response is emitted per
    fragment, as soon as the fragment arrives.
    """

    def __init__(self, provider_name: str = "unknown"):
        self.provider_name = provider_name

    async def assemble(self, fragments: FragmentSource) -> AsyncIterator[ChatResponse]:
        """
        Lazily assemble one call's fragment sequence.

        Args:
            fragments: The call's fragments, as `ChatCompletionChunk` objects or
                       plain dictionaries of the same shape. Async and sync
                       iterables are both accepted.

        Yields:
            One `ChatResponse` per fragment, in delivery order.

        Raises:
            StreamProtocolError: If a fragment arrives for a choice that has
                                 already reported a finish reason.
        """
        state = _StreamState()
        if hasattr(fragments, "__aiter__"):
            source = fragments.__aiter__() # type: ignore[union-attr]
        else:
            source = _as_async_iterator(fragments)
        try:
            async for fragment in source:
                yield self._convert_fragment(fragment, state)
        finally:
            state.clear()
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

    def _convert_fragment(self, fragment: Any, state: _StreamState) -> ChatResponse:
        if fragment is None:
            logger.warning(
                f"Provider '{self.provider_name}' delivered an empty stream fragment "
                f"(call id: {state.call_id!r}); emitting an empty response."
            )
            return ChatResponse(id=state.call_id or "")

        chunk = fragment if isinstance(fragment, ChatCompletionChunk) else ChatCompletionChunk.model_validate(fragment)
        call_id = chunk.id
        if state.call_id is None:
            state.call_id = call_id

        generations: List[Generation] = []
        for choice in chunk.choices:
            if state.is_completed(call_id, choice.index):
                raise StreamProtocolError(
                    self.provider_name,
                    f"Fragment for choice {choice.index} of call '{call_id}' arrived after the choice completed.",
                )

            role = _normalize_role(choice.delta.role)
            if role is not None:
                state.remember_role(call_id, choice.index, role)

            finish = _finish_reason(choice.finish_reason)
            generation = Generation(
                id=call_id,
                index=choice.index,
                content=choice.delta.content or "",
                completed=finish is not None,
                finish_reason=finish,
                metadata={
                    "id": call_id,
                    "role": state.role_for(call_id, choice.index),
                    "finish_reason": finish.value if finish else "",
                },
                generation_metadata=ChatGenerationMetadata(finish_reason=finish) if finish else None,
                tool_calls=_tool_calls(choice.delta.tool_calls),
            )
            if finish is not None:
                state.mark_completed(call_id, choice.index)
            generations.append(generation)

        return ChatResponse(id=call_id, results=tuple(generations))

    def to_chat_response(self, completion: Any) -> ChatResponse:
        """
        Convert a complete (non-streamed) backend response.

        A missing body is not an error: it becomes an empty response and a
        warning is logged.
        """
        if completion is None:
            logger.warning(f"No chat completion returned by provider '{self.provider_name}'; returning an empty response.")
            return ChatResponse()

        if not isinstance(completion, ChatCompletion):
            completion = ChatCompletion.model_validate(completion)

        generations = []
        for choice in completion.choices:
            finish = _finish_reason(choice.finish_reason)
            role = _normalize_role(choice.message.role) or DEFAULT_ROLE
            generations.append(
                Generation(
                    id=completion.id,
                    index=choice.index,
                    content=choice.message.content or "",
                    completed=finish is not None,
                    finish_reason=finish,
                    metadata={
                        "id": completion.id,
                        "role": role,
                        "finish_reason": finish.value if finish else "",
                    },
                    generation_metadata=ChatGenerationMetadata(finish_reason=finish) if finish else None,
                    tool_calls=_tool_calls(choice.message.tool_calls),
                )
            )
        return ChatResponse(id=completion.id, results=tuple(generations))


def _join_tool_calls(slices: List[ToolCall]) -> Tuple[ToolCall, ...]:
    """Join streamed tool-call slices by index; ids and names come from the first slice carrying them."""
    order: List[int] = []
    ids: Dict[int, Optional[str]] = {}
    names: Dict[int, str] = {}
    arguments: Dict[int, List[str]] = {}
    for piece in slices:
        if piece.index not in arguments:
            order.append(piece.index)
            arguments[piece.index] = []
            ids[piece.index] = None
            names[piece.index] = ""
        ids[piece.index] = ids[piece.index] or piece.id
        names[piece.index] = names[piece.index] or piece.name
        arguments[piece.index].append(piece.arguments)
    return tuple(
        ToolCall(index=index, id=ids[index], name=names[index], arguments="".join(arguments[index]))
        for index in order
    )


def aggregate(responses: Iterable[ChatResponse]) -> ChatResponse:
    """
    Fold the responses of a finished stream into one response holding a
    single generation per choice index, in first-seen order.
    """
    call_id = ""
    order: List[int] = []
    parts: Dict[int, List[str]] = {}
    tool_slices: Dict[int, List[ToolCall]] = {}
    last: Dict[int, Generation] = {}
    first_metadata: Dict[int, Dict[str, Any]] = {}

    for response in responses:
        if response.id and not call_id:
            call_id = response.id
        for generation in response.results:
            if generation.index not in parts:
                order.append(generation.index)
                parts[generation.index] = []
                tool_slices[generation.index] = []
                first_metadata[generation.index] = dict(generation.metadata)
            parts[generation.index].append(generation.content)
            tool_slices[generation.index].extend(generation.tool_calls)
            last[generation.index] = generation

    results = []
    for index in order:
        final = last[index]
        metadata = {**first_metadata[index], **final.metadata}
        results.append(
            Generation(
                id=call_id,
                index=index,
                content="".join(parts[index]),
                completed=final.completed,
                finish_reason=final.finish_reason,
                metadata={**metadata, "id": call_id},
                generation_metadata=final.generation_metadata,
                tool_calls=_join_tool_calls(tool_slices[index]),
            )
        )
    return ChatResponse(id=call_id, results=tuple(results))
