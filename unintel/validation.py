"""Input validation for thoughts, chains and instance identifiers."""

from __future__ import annotations

import os
import re

DEFAULT_MAX_THOUGHT_LENGTH = 10_000
DEFAULT_MAX_THOUGHTS_PER_CHAIN = 1_000
MAX_INSTANCE_ID_LENGTH = 50

_UNSIGNED = re.compile(r"\+?[0-9]+")
_SIGNED = re.compile(r"[+-]?[0-9]+")


class ValidationError(ValueError):
    """Base class of every input validation failure."""


class EmptyThoughtError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Thought content cannot be empty")


class ThoughtTooLongError(ValidationError):
    def __init__(self, actual: int, max_length: int) -> None:
        self.actual = actual
        self.max = max_length
        super().__init__(f"Thought content too long: {actual} chars (max: {max_length})")


class InvalidChainIdError(ValidationError):
    def __init__(self, chain_id: str) -> None:
        self.chain_id = chain_id
        super().__init__(f"Invalid chain ID format: {chain_id}")


class InvalidThoughtNumberError(ValidationError):
    def __init__(self, number: int, max_number: int) -> None:
        self.number = number
        self.max = max_number
        super().__init__(f"Invalid thought number: {number} (must be 1-{max_number})")


class InvalidInstanceIdError(ValidationError):
    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Invalid instance ID: {instance_id}")


def _env_int(name: str, default: int, pattern: re.Pattern[str]) -> int:
    raw = os.environ.get(name)
    if raw is None or not pattern.fullmatch(raw):
        return default
    return int(raw)


class InputValidator:
    """Checks tool input against configurable limits.

    Limits not given explicitly come from the MAX_THOUGHT_LENGTH and
    MAX_THOUGHTS_PER_CHAIN environment variables, falling back to defaults.
    """

    def __init__(
        self,
        max_thought_length: int | None = None,
        max_thoughts_per_chain: int | None = None,
    ) -> None:
        if max_thought_length is None:
            max_thought_length = _env_int(
                "MAX_THOUGHT_LENGTH", DEFAULT_MAX_THOUGHT_LENGTH, _UNSIGNED
            )
        if max_thoughts_per_chain is None:
            max_thoughts_per_chain = _env_int(
                "MAX_THOUGHTS_PER_CHAIN", DEFAULT_MAX_THOUGHTS_PER_CHAIN, _SIGNED
            )
        self.max_thought_length = max_thought_length
        self.max_thoughts_per_chain = max_thoughts_per_chain

    def validate_thought_content(self, content: str) -> None:
        trimmed = content.strip()
        if not trimmed:
            raise EmptyThoughtError()
        length = len(trimmed.encode("utf-8"))
        if length > self.max_thought_length:
            raise ThoughtTooLongError(length, self.max_thought_length)

    def validate_chain_id(self, chain_id: str) -> None:
        # Any non-empty identifier is accepted, not only UUIDs.
        if not chain_id:
            raise InvalidChainIdError(chain_id)

    def validate_thought_numbers(self, number: int, total: int) -> None:
        if total < 1 or total > self.max_thoughts_per_chain:
            raise InvalidThoughtNumberError(total, self.max_thoughts_per_chain)
        if number < 1 or number > total:
            raise InvalidThoughtNumberError(number, total)

    def validate_instance_id(self, instance_id: str) -> None:
        size = len(instance_id.encode("utf-8"))
        if size == 0 or size > MAX_INSTANCE_ID_LENGTH:
            raise InvalidInstanceIdError(instance_id)
        if not all(c.isalnum() or c == "-" for c in instance_id):
            raise InvalidInstanceIdError(instance_id)
        if ".." in instance_id or "/" in instance_id or "\\" in instance_id:
            raise InvalidInstanceIdError(instance_id)