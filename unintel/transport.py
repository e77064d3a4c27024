"""HTTP transport for the chat-completion API used by the synthesizer."""

from __future__ import annotations

import abc
import asyncio
import logging
import random
import time

import httpx

from unintel.models import GroqRequest, GroqResponse

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
MAX_RETRIES = 5
MAX_RETRY_DURATION_SECS = 300.0
MAX_DELAY_SECS = 30.0
BASE_DELAY_MS = 200

log = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a chat request cannot be completed."""


def backoff_delay(attempt: int, jitter: float = 1.0) -> float:
    """Seconds to wait after the given (1-based) failed attempt.

    The base delay doubles from 200 ms with each attempt, is scaled by
    ``jitter`` and is capped at 30 seconds.
    """
    base_ms = BASE_DELAY_MS * 2 ** max(attempt - 1, 0)
    delay_ms = int(base_ms * jitter)
    return min(delay_ms / 1000.0, MAX_DELAY_SECS)


class Transport(abc.ABC):
    """Something that can answer a chat-completion request."""

    @abc.abstractmethod
    async def chat(self, request: GroqRequest) -> GroqResponse:
        """Send the request and return the parsed response."""


class GroqTransport(Transport):
    """Chat transport over HTTPS with retries and jittered exponential backoff."""

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        url: str = GROQ_API_URL,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._url = url

    async def chat(self, request: GroqRequest) -> GroqResponse:
        if self._client is not None:
            return await self._chat_with(self._client, request)
        async with httpx.AsyncClient() as client:
            return await self._chat_with(client, request)

    async def _chat_with(
        self, client: httpx.AsyncClient, request: GroqRequest
    ) -> GroqResponse:
        start = time.monotonic()
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body = request.to_dict()

        for attempt in range(1, MAX_RETRIES + 1):
            if time.monotonic() - start > MAX_RETRY_DURATION_SECS:
                raise TransportError(
                    "Groq API request timed out after "
                    f"{int(MAX_RETRY_DURATION_SECS)} seconds (max retry duration exceeded)"
                )

            try:
                response = await client.post(self._url, headers=headers, json=body)
            except httpx.HTTPError as exc:
                if attempt >= MAX_RETRIES:
                    raise TransportError(
                        "Failed to send request to Groq API after "
                        f"{attempt} attempts: {exc}"
                    ) from exc
                log.debug("Groq request attempt %d failed: %s", attempt, exc)
            else:
                if response.is_success:
                    try:
                        return GroqResponse.from_dict(response.json())
                    except (ValueError, TypeError, AttributeError) as exc:
                        raise TransportError(
                            f"Failed to parse Groq API response: {exc}"
                        ) from exc
                if attempt >= MAX_RETRIES:
                    try:
                        text = response.text
                    except (UnicodeDecodeError, httpx.HTTPError):
                        text = "Unknown error"
                    raise TransportError(
                        f"Groq API error after {attempt} attempts: {text}"
                    )
                log.debug(
                    "Groq request attempt %d returned status %d",
                    attempt,
                    response.status_code,
                )

            await asyncio.sleep(backoff_delay(attempt, random.uniform(0.8, 1.2)))

        raise TransportError(f"Groq API request failed after {MAX_RETRIES} attempts")