"""Answer synthesis from retrieved memories through a chat-completion transport."""

from __future__ import annotations

import abc
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from unintel.models import (
    ChatMessage,
    GroqRequest,
    GroqUsage,
    QueryIntent,
    Thought,
)
from unintel.transport import Transport

log = logging.getLogger(__name__)

DEFAULT_CONTEXT_TOKENS = 1000
DEEP_CONTEXT_TOKENS = 6000
DEFAULT_MAX_TOKENS = 1500
DEEP_MAX_TOKENS = 2000
TEMPERATURE = 0.3

_BASE_PROMPT = (
    "You are a helpful assistant that synthesizes information from retrieved "
    "memories to answer a query. Do not include the raw memories in your "
    "response, only the synthesized answer. Be concise and directly answer the "
    "query based on the provided context."
)

_CHRONOLOGICAL_PROMPT = (
    "You are a helpful assistant that synthesizes information from retrieved "
    "memories to answer a query. Present the information in chronological order "
    "based on the 'created_at' timestamp of the memories. Do not include the raw "
    "memories in your response, only the synthesized answer. Be concise and "
    "directly answer the query based on the provided context."
)


class SynthesisError(Exception):
    """Raised when the completion service returns no usable answer."""


@dataclass
class SynthResult:
    text: str
    model_used: str
    usage: GroqUsage | None = None


def _format_created_at(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%d %H:%M:%S")
    micros = moment.microsecond
    if micros:
        if micros % 1000 == 0:
            text += f".{micros // 1000:03d}"
        else:
            text += f".{micros:06d}"
    return text + " UTC"


def _sort_key(thought: Thought) -> datetime:
    moment = thought.created_at
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def build_context(thoughts: Sequence[Thought], max_tokens: int) -> str:
    """Render the newest thoughts that fit in the token budget, oldest first.

    A token is approximated as four bytes of text.
    """
    ordered = sorted(thoughts, key=_sort_key)
    parts: list[str] = []
    used = 0
    for thought in reversed(ordered):
        entry = (
            f"\nThought ID: {thought.id}\nContent: {thought.content}"
            f"\nCreated At: {_format_created_at(thought.created_at)}"
        )
        tokens = len(entry.encode("utf-8")) // 4
        if used + tokens > max_tokens:
            break
        parts.append(entry)
        used += tokens
    return "".join(reversed(parts))


def system_prompt(style: str | None) -> str:
    """The system message for a synthesis style."""
    if style is not None and style.lower() == "chronological":
        return _CHRONOLOGICAL_PROMPT
    return _BASE_PROMPT


class Synthesizer(abc.ABC):
    """Turns a query and its context into an answer."""

    @abc.abstractmethod
    async def synth(self, intent: QueryIntent, ctx: Sequence[Thought]) -> SynthResult:
        """Synthesize an answer to the intent from the context thoughts."""


class GroqSynth(Synthesizer):
    """Synthesizer that picks a fast or deep model by synthesis style."""

    def __init__(self, transport: Transport, model_fast: str, model_deep: str) -> None:
        self._transport = transport
        self._model_fast = model_fast
        self._model_deep = model_deep

    async def synth(self, intent: QueryIntent, ctx: Sequence[Thought]) -> SynthResult:
        log.info("Synthesizing response for query: %s", intent.original_query)
        deep = intent.synthesis_style == "deep"
        model = self._model_deep if deep else self._model_fast
        context = build_context(ctx, DEEP_CONTEXT_TOKENS if deep else DEFAULT_CONTEXT_TOKENS)

        request = GroqRequest(
            model=model,
            messages=[
                ChatMessage(role="system", content=system_prompt(intent.synthesis_style)),
                ChatMessage(
                    role="user",
                    content=(
                        f"Original Query: {intent.original_query}\n\n"
                        f"Retrieved Memories:\n{context}\n\nSynthesized Answer:"
                    ),
                ),
            ],
            temperature=TEMPERATURE,
            max_tokens=DEEP_MAX_TOKENS if deep else DEFAULT_MAX_TOKENS,
            response_format=None,
        )

        response = await self._transport.chat(request)
        if not response.choices:
            raise SynthesisError("Groq API returned empty choices")
        return SynthResult(
            text=response.choices[0].message.content,
            model_used=request.model,
            usage=response.usage,
        )