"""Thought records, memory search and scoring, RediSearch memory tools and LLM synthesis."""

__version__ = "2.0.0"