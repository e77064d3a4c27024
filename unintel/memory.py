"""Search, read, update and delete of embedded memories stored as Redis hashes."""

from __future__ import annotations

import hashlib
import re
import struct
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

TEXT_FIELDS = ("content", "tags", "importance", "chain_id", "thought_id", "ts")

HELP_TEXT = """ui_memory tool
Actions:
  - search: keyword search with optional filters
  - read: read exact keys
  - update: update fields, optionally re-embed on content change
  - delete: delete exact keys

Params shape:
  {
    action: "search|read|update|delete|help",
    query?: string,
    scope?: "all|session-summaries|important|federation" (default: all),
    filters?: { tags?: string[], importance?: string, chain_id?: string, thought_id?: string },
    options?: { limit?: number, offset?: number, k?: number, search_type?: string },
    targets?: { keys?: string[] },
    update?: { content?: string, tags?: string[], importance?: string, chain_id?: string, thought_id?: string, ttl_seconds?: number }
  }

Troubleshooting:
  - UTF-8 errors: The tool now avoids fetching binary fields like 'vector'. Use read/update routes which HMGET only text fields.
  - Empty results: Ensure the RediSearch indices exist and scope is correct. Supported indices: idx:{instance}:session-summaries, idx:{instance}:important, idx:Federation:embeddings.
"""

_INTEGER = re.compile(r"[+-]?[0-9]+")

Embedder = Callable[[str], Awaitable[Sequence[float]]]


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError(f"`{name}` must be an object")
    return value


@dataclass
class MemoryTimeRange:
    after: str | None = None
    before: str | None = None


@dataclass
class MemoryFilters:
    tags: list[str] = field(default_factory=list)
    importance: str | None = None
    chain_id: str | None = None
    thought_id: str | None = None
    time_range: MemoryTimeRange | None = None


@dataclass
class MemoryOptions:
    limit: int = 10
    offset: int = 0
    k: int = 10
    search_type: str = "hybrid"
    min_score: float | None = None
    ef_runtime: int | None = None


@dataclass
class MemoryTargets:
    keys: list[str] = field(default_factory=list)


@dataclass
class MemoryUpdate:
    content: str | None = None
    tags: list[str] | None = None
    importance: str | None = None
    chain_id: str | None = None
    thought_id: str | None = None
    ttl_seconds: int | None = None  # accepted but ignored: keys never expire


@dataclass
class UiMemoryParams:
    """Parameters of the memory tool."""

    action: str
    query: str | None = None
    scope: str | None = "all"
    filters: MemoryFilters | None = None
    options: MemoryOptions | None = None
    targets: MemoryTargets | None = None
    update: MemoryUpdate | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UiMemoryParams:
        if not isinstance(data, Mapping):
            raise ValueError("parameters must be an object")
        if "action" not in data:
            raise ValueError("missing field `action`")

        filters = None
        raw = _section(data, "filters")
        if raw is not None:
            time_range = None
            raw_range = _section(raw, "time_range")
            if raw_range is not None:
                time_range = MemoryTimeRange(
                    after=raw_range.get("after"), before=raw_range.get("before")
                )
            filters = MemoryFilters(
                tags=list(raw.get("tags") or []),
                importance=raw.get("importance"),
                chain_id=raw.get("chain_id"),
                thought_id=raw.get("thought_id"),
                time_range=time_range,
            )

        options = None
        raw = _section(data, "options")
        if raw is not None:
            options = MemoryOptions(
                limit=int(raw.get("limit", 10)),
                offset=int(raw.get("offset", 0)),
                k=int(raw.get("k", 10)),
                search_type=raw.get("search_type", "hybrid"),
                min_score=raw.get("min_score"),
                ef_runtime=raw.get("ef_runtime"),
            )

        targets = None
        raw = _section(data, "targets")
        if raw is not None:
            targets = MemoryTargets(keys=list(raw.get("keys") or []))

        update = None
        raw = _section(data, "update")
        if raw is not None:
            tags = raw.get("tags")
            update = MemoryUpdate(
                content=raw.get("content"),
                tags=list(tags) if tags is not None else None,
                importance=raw.get("importance"),
                chain_id=raw.get("chain_id"),
                thought_id=raw.get("thought_id"),
                ttl_seconds=raw.get("ttl_seconds"),
            )

        return cls(
            action=data["action"],
            query=data.get("query"),
            scope=data.get("scope", "all"),
            filters=filters,
            options=options,
            targets=targets,
            update=update,
        )


@dataclass
class MemoryItem:
    key: str
    content: str = ""
    tags: list[str] = field(default_factory=list)
    importance: str = ""
    chain_id: str = ""
    thought_id: str = ""
    ts: int = 0
    score: float | None = None

    def _to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "content": self.content,
            "tags": list(self.tags),
            "importance": self.importance,
            "chain_id": self.chain_id,
            "thought_id": self.thought_id,
            "ts": self.ts,
            "score": self.score,
        }


@dataclass
class UiMemoryResult:
    """Outcome of a memory tool call; only the fields that apply are set."""

    results: list[MemoryItem] | None = None
    deleted: int | None = None
    updated: list[tuple[str, str]] | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.results is not None:
            out["results"] = [item._to_dict() for item in self.results]
        if self.deleted is not None:
            out["deleted"] = self.deleted
        if self.updated is not None:
            out["updated"] = [[old, new] for old, new in self.updated]
        if self.message is not None:
            out["message"] = self.message
        return out


def short_hash(s: str) -> str:
    """Hex of the first eight bytes of the SHA-256 of the text."""
    return hashlib.sha256(s.encode("utf-8")).digest()[:8].hex()


def determine_indexes(instance_id: str, scope: str) -> list[str]:
    """The RediSearch indexes searched for a scope; none for an unknown scope."""
    session = f"idx:{instance_id}:session-summaries"
    important = f"idx:{instance_id}:important"
    federation = "idx:Federation:embeddings"
    return {
        "session-summaries": [session],
        "important": [important],
        "federation": [federation],
        "all": [session, important, federation],
    }.get(scope, [])


def parse_key_scope(key: str) -> tuple[str, str]:
    """Split a key such as ``CC:embeddings:important:abc`` into (instance, scope)."""
    parts = key.split(":")
    if len(parts) > 2:
        return parts[0], parts[2]
    return "unknown", "unknown"


def build_search_query(query: str | None, filters: MemoryFilters | None) -> str:
    """Compose a RediSearch query from free text and field filters."""
    terms: list[str] = []
    if query is not None and query.strip():
        terms.append(query.strip())
    if filters is not None:
        if filters.tags:
            terms.append("@tags:{" + "|".join(filters.tags) + "}")
        if filters.importance is not None:
            terms.append(f"@importance:{filters.importance}")
        if filters.chain_id is not None:
            terms.append(f"@chain_id:{filters.chain_id}")
        if filters.thought_id is not None:
            terms.append(f"@thought_id:{filters.thought_id}")
    return " ".join(terms) if terms else "*"


def extract_doc_ids(value: Any) -> list[str]:
    """Document ids from an FT.SEARCH NOCONTENT reply: [total, id1, id2, ...]."""
    if not isinstance(value, (list, tuple)) or not value:
        return []
    out: list[str] = []
    for item in list(value)[1:]:
        if isinstance(item, (bytes, bytearray)):
            try:
                out.append(bytes(item).decode("utf-8"))
            except UnicodeDecodeError:
                continue
        elif isinstance(item, str):
            out.append(item)
    return out


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def parse_memory_row(key: str, row: Sequence[Any]) -> MemoryItem:
    """Build an item from an HMGET reply over the text fields, in field order."""
    values = [_text(v) for v in row] + [None] * max(len(TEXT_FIELDS) - len(row), 0)
    content, tags, importance, chain_id, thought_id, ts = values[: len(TEXT_FIELDS)]
    return MemoryItem(
        key=key,
        content=content or "",
        tags=tags.split(",") if tags is not None else [],
        importance=importance or "",
        chain_id=chain_id or "",
        thought_id=thought_id or "",
        ts=int(ts) if ts is not None and _INTEGER.fullmatch(ts) else 0,
        score=None,
    )


async def _read_rows(conn: Any, keys: Sequence[str]) -> list[MemoryItem]:
    pipe = conn.pipeline(transaction=False)
    for key in keys:
        pipe.execute_command("HMGET", key, *TEXT_FIELDS)
    rows = await pipe.execute()
    return [parse_memory_row(key, row) for key, row in zip(keys, rows)]


async def _search(conn: Any, params: UiMemoryParams, instance_id: str) -> UiMemoryResult:
    scope = params.scope if params.scope is not None else "all"
    options = params.options if params.options is not None else MemoryOptions()
    query = build_search_query(params.query, params.filters)
    items: list[MemoryItem] = []
    for index in determine_indexes(instance_id, scope):
        reply = await conn.execute_command(
            "FT.SEARCH", index, query, "NOCONTENT", "LIMIT", options.offset, options.limit
        )
        keys = extract_doc_ids(reply)
        if keys:
            items.extend(await _read_rows(conn, keys))
    return UiMemoryResult(results=items)


def _require_targets(params: UiMemoryParams, action: str) -> list[str]:
    if params.targets is None:
        raise ValueError(f"Missing targets for {action}")
    return list(params.targets.keys)


async def _update(
    conn: Any,
    params: UiMemoryParams,
    embed: Embedder | None,
    embedding_dimensions: int | None,
) -> UiMemoryResult:
    keys = _require_targets(params, "update")
    data = params.update
    if data is None:
        raise ValueError("Missing update data")

    updated: list[tuple[str, str]] = []
    for key in keys:
        if data.content is not None:
            instance, scope = parse_key_scope(key)
            digest = short_hash(data.content)
            if scope in ("session-summaries", "important"):
                new_key = f"{instance}:embeddings:{scope}:{digest}"
            else:
                new_key = f"Federation:embeddings:{digest}"

            if embed is None:
                raise ValueError("no embedding provider configured for re-embedding")
            vector = list(await embed(data.content))
            if embedding_dimensions is not None and len(vector) != embedding_dimensions:
                raise ValueError("embedding dims mismatch")
            vector_bytes = struct.pack(f"<{len(vector)}f", *vector)

            pipe = conn.pipeline(transaction=False)
            pipe.hset(new_key, "content", data.content)
            pipe.hset(new_key, "ts", int(time.time()))
            pipe.hset(new_key, "vector", vector_bytes)
            if data.tags is not None:
                pipe.hset(new_key, "tags", ",".join(data.tags))
            if data.importance is not None:
                pipe.hset(new_key, "importance", data.importance)
            if data.chain_id is not None:
                pipe.hset(new_key, "chain_id", data.chain_id)
            if data.thought_id is not None:
                pipe.hset(new_key, "thought_id", data.thought_id)
            pipe.delete(key)
            await pipe.execute()
            updated.append((key, new_key))
        else:
            pipe = conn.pipeline(transaction=False)
            has_update = False
            if data.tags is not None:
                pipe.hset(key, "tags", ",".join(data.tags))
                has_update = True
            if data.importance is not None:
                pipe.hset(key, "importance", data.importance)
                has_update = True
            if has_update:
                await pipe.execute()
            updated.append((key, key))
    return UiMemoryResult(updated=updated)


async def ui_memory(
    conn: Any,
    params: UiMemoryParams | Mapping[str, Any],
    instance_id: str,
    embed: Embedder | None = None,
    embedding_dimensions: int | None = None,
) -> UiMemoryResult:
    """Run one memory action against an async Redis connection."""
    if not isinstance(params, UiMemoryParams):
        params = UiMemoryParams.from_dict(params)

    action = params.action
    if action == "help":
        return UiMemoryResult(message=HELP_TEXT)
    if action == "search":
        return await _search(conn, params, instance_id)
    if action == "read":
        keys = _require_targets(params, "read")
        if not keys:
            return UiMemoryResult(results=[])
        return UiMemoryResult(results=await _read_rows(conn, keys))
    if action == "delete":
        keys = _require_targets(params, "delete")
        if not keys:
            return UiMemoryResult(deleted=0)
        return UiMemoryResult(deleted=int(await conn.delete(*keys)))
    if action == "update":
        return await _update(conn, params, embed, embedding_dimensions)
    return UiMemoryResult(message=f"Unknown action: {action}")