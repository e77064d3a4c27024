"""Core records exchanged between the thought store, the synthesizer and the tools."""

from __future__ import annotations

import abc
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


@dataclass
class ThoughtRecord:
    """A stored thought, possibly part of a chain."""

    id: str
    thought: str
    content: str
    timestamp: str
    instance: str
    thought_number: int
    total_thoughts: int
    chain_id: str | None = None
    next_thought_needed: bool = False
    framework: str | None = None
    importance: int | None = None
    relevance: int | None = None
    tags: list[str] | None = None
    category: str | None = None

    @classmethod
    def create(
        cls,
        instance: str,
        thought: str,
        thought_number: int,
        total_thoughts: int,
        chain_id: str | None = None,
        next_thought_needed: bool = False,
        framework: str | None = None,
        importance: int | None = None,
        relevance: int | None = None,
        tags: list[str] | None = None,
        category: str | None = None,
    ) -> ThoughtRecord:
        """Build a new record with a fresh id and the current UTC time."""
        return cls(
            id=str(uuid.uuid4()),
            thought=thought,
            content=thought,
            timestamp=_now_rfc3339(),
            instance=instance,
            thought_number=thought_number,
            total_thoughts=total_thoughts,
            chain_id=chain_id,
            next_thought_needed=next_thought_needed,
            framework=framework,
            importance=importance,
            relevance=relevance,
            tags=list(tags) if tags is not None else None,
            category=category,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thought": self.thought,
            "content": self.content,
            "timestamp": self.timestamp,
            "instance": self.instance,
            "chain_id": self.chain_id,
            "thought_number": self.thought_number,
            "total_thoughts": self.total_thoughts,
            "next_thought_needed": self.next_thought_needed,
            "framework": self.framework,
            "importance": self.importance,
            "relevance": self.relevance,
            "tags": list(self.tags) if self.tags is not None else None,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ThoughtRecord:
        thought = _require(data, "thought")
        tags = data.get("tags")
        return cls(
            id=_require(data, "id"),
            thought=thought,
            content=data.get("content", thought),
            timestamp=_require(data, "timestamp"),
            instance=_require(data, "instance"),
            thought_number=int(_require(data, "thought_number")),
            total_thoughts=int(_require(data, "total_thoughts")),
            chain_id=data.get("chain_id"),
            next_thought_needed=bool(data.get("next_thought_needed", False)),
            framework=data.get("framework"),
            importance=data.get("importance"),
            relevance=data.get("relevance"),
            tags=list(tags) if tags is not None else None,
            category=data.get("category"),
        )


@dataclass
class ChainMetadata:
    """Summary information about a chain of thoughts."""

    chain_id: str
    instance: str
    created_at: str
    thought_count: int = 0


@dataclass
class Thought:
    """A retrieved memory used as synthesis context."""

    id: uuid.UUID
    content: str
    instance_id: str
    created_at: datetime
    updated_at: datetime
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    importance: int = 5
    relevance: int = 5
    semantic_score: float | None = None
    temporal_score: float | None = None
    usage_score: float | None = None
    combined_score: float | None = None


@dataclass
class ChatMessage:
    role: str
    content: str

    def _to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class GroqUsage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass
class Choice:
    message: ChatMessage


@dataclass
class GroqRequest:
    """A chat-completion request body."""

    model: str
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int
    response_format: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [m._to_dict() for m in self.messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.response_format is not None:
            body["response_format"] = self.response_format
        return body


@dataclass
class GroqResponse:
    """The parts of a chat-completion response the synthesizer uses."""

    choices: list[Choice]
    usage: GroqUsage | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GroqResponse:
        choices = []
        for raw in _require(data, "choices"):
            message = _require(raw, "message")
            choices.append(
                Choice(
                    message=ChatMessage(
                        role=_require(message, "role"),
                        content=message.get("content") or "",
                    )
                )
            )
        raw_usage = data.get("usage")
        usage = None
        if raw_usage is not None:
            usage = GroqUsage(
                prompt_tokens=raw_usage.get("prompt_tokens"),
                completion_tokens=raw_usage.get("completion_tokens"),
                total_tokens=raw_usage.get("total_tokens"),
            )
        return cls(choices=choices, usage=usage)


@dataclass
class QueryIntent:
    original_query: str
    temporal_filter: str | None = None
    synthesis_style: str | None = None


class ThoughtRepository(abc.ABC):
    """Storage for thoughts and chains."""

    @abc.abstractmethod
    async def save_thought(self, thought: ThoughtRecord) -> None:
        """Persist a thought; raise if it is a duplicate."""

    @abc.abstractmethod
    async def save_chain_metadata(self, metadata: ChainMetadata) -> None:
        """Create or update the metadata of a chain."""

    @abc.abstractmethod
    async def chain_exists(self, chain_id: str) -> bool:
        """Return whether metadata exists for the chain."""

    @abc.abstractmethod
    async def get_thought(self, instance: str, thought_id: str) -> ThoughtRecord | None:
        """Return one thought, or None when absent."""

    @abc.abstractmethod
    async def get_chain_thoughts(self, instance: str, chain_id: str) -> list[ThoughtRecord]:
        """Return every thought of a chain."""

    @abc.abstractmethod
    async def search_thoughts(
        self, instance: str, query: str, offset: int, limit: int
    ) -> list[ThoughtRecord]:
        """Return thoughts matching a full-text query."""


@dataclass
class UiRememberParams:
    """Parameters of the conversational memory tool."""

    action: str | None = None
    thought: str = ""
    thought_number: int = 1
    total_thoughts: int = 1
    chain_id: str | None = None
    next_thought_needed: bool = False
    search_type: str | None = None
    top_k: int | None = None
    similarity_threshold: float | None = None
    token_cap: int | None = None
    style: str | None = None
    tags: list[str] | None = None
    temporal: str | None = None
    feedback: str | None = None
    continue_next: bool | None = None
    search_all_instances: bool | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UiRememberParams:
        if not isinstance(data, Mapping):
            raise ValueError("parameters must be an object")
        tags = data.get("tags")
        return cls(
            action=data.get("action"),
            thought=data.get("thought", ""),
            thought_number=int(data.get("thought_number", 1)),
            total_thoughts=int(data.get("total_thoughts", 1)),
            chain_id=data.get("chain_id"),
            next_thought_needed=bool(data.get("next_thought_needed", False)),
            search_type=data.get("search_type"),
            top_k=data.get("top_k"),
            similarity_threshold=data.get("similarity_threshold"),
            token_cap=data.get("token_cap"),
            style=data.get("style"),
            tags=list(tags) if tags is not None else None,
            temporal=data.get("temporal"),
            feedback=data.get("feedback"),
            continue_next=data.get("continue_next"),
            search_all_instances=data.get("search_all_instances"),
        )


@dataclass
class NextAction:
    """A hint telling the caller which tool call to make next."""

    tool: str
    action: str
    required: list[str] = field(default_factory=list)
    optional: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "tool": self.tool,
            "action": self.action,
            "required": list(self.required),
        }
        if self.optional:
            out["optional"] = list(self.optional)
        return out


@dataclass
class UiRememberResult:
    """Outcome of a conversational memory call."""

    status: str = ""
    thought1_id: str = ""
    thought2_id: str = ""
    thought3_id: str | None = None
    model_used: str | None = None
    usage_total_tokens: int | None = None
    assistant_text: str | None = None
    retrieved_text_count: int | None = None
    retrieved_embedding_count: int | None = None
    next_action: NextAction | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "status": self.status,
            "thought1_id": self.thought1_id,
            "thought2_id": self.thought2_id,
        }
        optional = {
            "thought3_id": self.thought3_id,
            "model_used": self.model_used,
            "usage_total_tokens": self.usage_total_tokens,
            "assistant_text": self.assistant_text,
            "retrieved_text_count": self.retrieved_text_count,
            "retrieved_embedding_count": self.retrieved_embedding_count,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        if self.next_action is not None:
            out["next_action"] = self.next_action.to_dict()
        return out