"""Coloured progress output for thought capture, written to standard error."""

from __future__ import annotations

import enum
import sys
from typing import TextIO

from termcolor import colored

MAX_LINE_WIDTH = 80
PROGRESS_WIDTH = 20


class WorkflowState(enum.Enum):
    CONVERSATION = "conversation"
    DEBUG = "debug"
    BUILD = "build"
    STUCK = "stuck"
    REVIEW = "review"


_STATE_BANNERS: dict[WorkflowState, tuple[str, str, str | None]] = {
    WorkflowState.CONVERSATION: ("🗒", "conversation", "read-only; focus on capturing"),
    WorkflowState.DEBUG: ("🛠", "debug", None),
    WorkflowState.BUILD: ("🏗", "build", None),
    WorkflowState.STUCK: ("🧩", "stuck", None),
    WorkflowState.REVIEW: ("🧐", "review", None),
}


def truncate_uuid(uuid: str) -> str:
    """Shorten an identifier to its first eight characters for display."""
    if len(uuid) > 8:
        return f"{uuid[:8]}..."
    return uuid


def wrap_line(line: str, max_width: int = MAX_LINE_WIDTH) -> list[str]:
    """Split a line into word-wrapped pieces; a line that fits is kept as is."""
    if len(line) <= max_width:
        return [line]
    pieces: list[str] = []
    current = ""
    for word in line.split():
        if len(current) + len(word) < max_width:
            current = f"{current} {word}" if current else word
        elif current:
            pieces.append(current)
            current = word
        else:
            pieces.append(word)
    if current:
        pieces.append(current)
    return pieces


def _lines(content: str) -> list[str]:
    if not content:
        return []
    parts = content.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [p[:-1] if p.endswith("\r") else p for p in parts]


class VisualOutput:
    """Writes human-readable progress lines while thoughts are captured."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _emit(self, text: str) -> None:
        print(text, file=self._stream if self._stream is not None else sys.stderr)

    def thought_start(self, thought_number: int, total_thoughts: int) -> None:
        self._emit(
            colored("🧠", "blue")
            + " "
            + colored("Thought ", "light_blue")
            + colored(f"{thought_number}/{total_thoughts}", "white")
            + colored(":", "light_blue")
        )

    def thought_content(self, content: str) -> None:
        for line in _lines(content):
            for piece in wrap_line(line):
                self._emit(f"   {colored(piece, 'light_grey')}")

    def framework_state(self, state: WorkflowState) -> None:
        icon, label, note = _STATE_BANNERS[state]
        banner = f"   {colored(icon, 'white')} {colored(label, 'white')}"
        if note is not None:
            banner += f" ({colored(note, attrs=['dark'])})"
        self._emit(banner)

    def chain_info(self, chain_id: str, is_new: bool) -> None:
        if is_new:
            text = colored(f"New chain: {truncate_uuid(chain_id)}", "light_green")
        else:
            text = colored(f"Chain: {truncate_uuid(chain_id)}", "green")
        self._emit(f"   {colored('⛓️', 'green')} {text}")

    def thought_stored(self, thought_id: str) -> None:
        self._emit(
            f"   {colored('✅', 'light_green')} "
            + colored(f"Stored: {truncate_uuid(thought_id)}", "green")
        )

    def search_results(self, count: int, query: str) -> None:
        icon = colored("🔍", "yellow")
        if count > 0:
            self._emit(
                f"{icon} {colored(f'Found {count} thoughts', 'light_yellow')} "
                + colored(f"for: {query}", "yellow")
            )
        else:
            self._emit(f"{icon} {colored(f'No thoughts found for: {query}', 'yellow')}")

    def thinking_complete(self) -> None:
        self._emit(
            f"   {colored('🎯', 'light_blue')} {colored('Thinking complete', 'light_blue')}"
        )

    def next_thought_indicator(self, next_needed: bool) -> None:
        if next_needed:
            self._emit(
                f"   {colored('➡️', 'light_cyan')} "
                + colored("Next thought needed...", "light_cyan")
            )

    def progress_bar(self, current: int, total: int) -> None:
        if total == 0:
            raise ValueError("total must not be zero")
        progress = max(int(current / total * PROGRESS_WIDTH), 0)
        if progress > PROGRESS_WIDTH:
            raise ValueError("current exceeds total")
        filled = "█" * progress
        empty = "░" * (PROGRESS_WIDTH - progress)
        self._emit(
            f"   {colored('📊', 'light_blue')} "
            f"[{colored(filled, 'light_blue')}{colored(empty, attrs=['dark'])}] "
            f"{current}/{total}"
        )