"""Batched SCAN-based thought search and a small time-limited result cache."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from unintel.models import ThoughtRecord

log = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 100
FETCH_BATCH_SIZE = 20


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def _parse_thought(reply: Any) -> ThoughtRecord | None:
    if reply is None:
        return None
    try:
        items = json.loads(_text(reply))
        if not isinstance(items, list) or not items:
            return None
        return ThoughtRecord.from_dict(items[0])
    except (ValueError, TypeError, KeyError, AttributeError, UnicodeDecodeError):
        return None


async def batch_fetch_thoughts(conn: Any, keys: Sequence[str]) -> list[tuple[str, ThoughtRecord]]:
    """Fetch many JSON thoughts in one pipeline; unreadable entries are skipped."""
    if not keys:
        return []
    pipe = conn.pipeline(transaction=False)
    for key in keys:
        pipe.execute_command("JSON.GET", key, "$")
    replies = await pipe.execute()
    thoughts = []
    for key, reply in zip(keys, replies):
        thought = _parse_thought(reply)
        if thought is not None:
            thoughts.append((key, thought))
    log.debug("Batch fetch: processed %d keys, found %d thoughts", len(keys), len(thoughts))
    return thoughts


async def _scan(conn: Any, cursor: int, pattern: str) -> tuple[int, list[str]]:
    new_cursor, keys = await conn.scan(cursor=cursor, match=pattern, count=SCAN_BATCH_SIZE)
    return int(new_cursor), [_text(k) for k in keys]


async def search_with_batching(
    conn: Any, query: str, instance_id: str, limit: int
) -> list[ThoughtRecord]:
    """Scan an instance's thoughts for a substring, stopping once ``limit`` are found."""
    pattern = f"thought:{instance_id}:*"
    query_lower = query.lower()
    found: list[ThoughtRecord] = []
    cursor = 0
    done = False
    while not done:
        new_cursor, keys = await _scan(conn, cursor, pattern)
        log.debug("SCAN iteration: found %d keys, cursor: %s -> %s", len(keys), cursor, new_cursor)
        for start in range(0, len(keys), FETCH_BATCH_SIZE):
            batch = await batch_fetch_thoughts(conn, keys[start : start + FETCH_BATCH_SIZE])
            for _key, thought in batch:
                if query_lower in thought.thought.lower():
                    found.append(thought)
                    if len(found) >= limit:
                        done = True
                        break
            if done:
                break
        cursor = new_cursor
        if cursor == 0:
            done = True
    return found[:limit]


async def search_paginated(
    conn: Any,
    query: str,
    instance_id: str,
    page_size: int,
    cursor_state: str | None = None,
) -> tuple[list[ThoughtRecord], str | None]:
    """Return one page of matches and the cursor to resume from, if any."""
    pattern = f"thought:{instance_id}:*"
    query_lower = query.lower()
    cursor = int(cursor_state) if cursor_state is not None else 0
    found: list[ThoughtRecord] = []
    while True:
        new_cursor, keys = await _scan(conn, cursor, pattern)
        for _key, thought in await batch_fetch_thoughts(conn, keys):
            if query_lower in thought.thought.lower():
                found.append(thought)
                if len(found) >= page_size:
                    next_cursor = str(new_cursor) if new_cursor != 0 else None
                    return found, next_cursor
        cursor = new_cursor
        if cursor == 0:
            break
    return found, None


class SearchCache:
    """Search results kept for a fixed number of seconds."""

    def __init__(
        self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[list[ThoughtRecord], float]] = {}

    def _fresh(self, stamp: float) -> bool:
        return self._clock() - stamp < self._ttl

    def get(self, key: str) -> list[ThoughtRecord] | None:
        """The cached results for ``key`` unless absent or expired."""
        entry = self._entries.get(key)
        if entry is None or not self._fresh(entry[1]):
            return None
        return entry[0]

    def insert(self, key: str, results: list[ThoughtRecord]) -> None:
        """Cache results and drop every expired entry."""
        self._entries[key] = (results, self._clock())
        self._entries = {k: v for k, v in self._entries.items() if self._fresh(v[1])}