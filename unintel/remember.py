"""Scoring helpers for the conversational memory tool."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

_FEEDBACK_ALIASES = frozenset({"feedback", "fb", "critique", "review"})

_CORRECTION_MARKERS = (
    "actually",
    "no,",
    "that's not",
    "incorrect",
    "correction",
    "wrong",
    "not true",
    "should be",
)

_POSITIVE_MARKERS = (
    "thanks",
    "thank you",
    "got it",
    "great",
    "perfect",
    "that works",
    "awesome",
    "nice",
)

RECENCY_TAU_SECS = 86_400.0


@dataclass(frozen=True)
class HybridWeights:
    """Weights of the semantic, text and recency parts of a candidate's score."""

    semantic: float
    text: float
    recency: float


def parse_action(action: str | None, has_feedback: bool) -> str:
    """Normalise a requested action to "feedback" or "query"."""
    if has_feedback:
        return "feedback"
    lowered = (action if action is not None else "query").lower()
    norm = "".join(c for c in lowered if c.isascii() and c.isalnum())
    return "feedback" if norm in _FEEDBACK_ALIASES else "query"


def compute_feedback_scoring(delta_secs: int, user_text: str) -> tuple[float, int, int, bool]:
    """Score a previous synthesis from how the user followed it up.

    Returns (score, abandoned, continued, corrected).
    """
    lc = user_text.lower()
    corrected = any(marker in lc for marker in _CORRECTION_MARKERS)
    positive_ack = any(marker in lc for marker in _POSITIVE_MARKERS)

    if corrected:
        score = 0.3
    elif delta_secs < 30:
        score = 0.9
    elif delta_secs < 120:
        score = 0.7
    else:
        score = 0.5

    if positive_ack:
        score = min(score + 0.1, 1.0)
    if corrected:
        score = max(score - 0.1, 0.0)

    abandoned = 1 if delta_secs >= 600 else 0
    continued = 1
    return score, abandoned, continued, corrected


def _as_text(item: Any) -> str | None:
    if isinstance(item, (bytes, bytearray)):
        try:
            return bytes(item).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(item, str):
        return item
    return None


def _as_float(item: Any) -> float | None:
    if isinstance(item, int) and not isinstance(item, bool):
        return float(item)
    text = _as_text(item)
    if text is None or text != text.strip():
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _score_from_fields(fields: Sequence[Any]) -> float | None:
    for key, value in zip(fields[0::2], fields[1::2]):
        if _as_text(key) == "score":
            number = _as_float(value)
            if number is not None:
                return number
    return None


def extract_doc_ids_and_scores(value: Any) -> list[tuple[str, float | None]]:
    """Pull document ids and optional "score" fields out of an FT.SEARCH reply."""
    if not isinstance(value, (list, tuple)) or not value:
        return []
    out: list[tuple[str, float | None]] = []
    items = list(value)
    i = 1  # the first element is the total count
    while i < len(items):
        doc_id = _as_text(items[i])
        i += 1
        if doc_id is None:
            continue
        score = None
        if i < len(items) and isinstance(items[i], (list, tuple)):
            score = _score_from_fields(items[i])
            i += 1
        out.append((doc_id, score))
    return out


def instances_from_index_list(
    index_names: Iterable[str], base_instances: Iterable[str]
) -> list[str]:
    """Extend the base instances with those named by thought or entity indexes."""
    instances = list(base_instances)
    for name in index_names:
        if not name.startswith("idx:"):
            continue
        inst = name[len("idx:"):]
        if inst.endswith(":thought") or inst.endswith(":kg_entity"):
            iid, _, _ = inst.rpartition(":")
            if iid not in instances:
                instances.append(iid)
    return instances


def recency_score(created_at: datetime, now: datetime) -> float:
    """Exponential decay of age with a one-day time constant."""
    age = max(int((now - created_at).total_seconds()), 0)
    return math.exp(-age / RECENCY_TAU_SECS)


def combined_score(
    weights: HybridWeights, semantic: float, text: float, recency: float
) -> float:
    """Weighted sum of the semantic, text and recency scores."""
    return weights.semantic * semantic + weights.text * text + weights.recency * recency