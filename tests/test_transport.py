import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from unintel.models import ChatMessage, GroqRequest, GroqResponse
from unintel.transport import (
    GROQ_API_URL,
    MAX_RETRIES,
    GroqTransport,
    Transport,
    TransportError,
    backoff_delay,
)

OK_BODY = {
    "choices": [{"message": {"role": "assistant", "content": "Paris"}}],
    "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
}


def make_request() -> GroqRequest:
    return GroqRequest(
        model="llama3-8b-8192",
        messages=[ChatMessage(role="user", content="What is the capital of France?")],
        temperature=0.0,
        max_tokens=100,
    )


def test_backoff_first_attempt_is_base_delay():
    assert backoff_delay(1, 1.0) == pytest.approx(0.2)


def test_backoff_doubles_per_attempt():
    delays = [backoff_delay(n, 1.0) for n in range(1, 6)]
    for earlier, later in zip(delays, delays[1:]):
        assert later == pytest.approx(earlier * 2)


def test_backoff_is_capped():
    assert backoff_delay(20, 1.2) == 30.0


def test_backoff_jitter_scales_delay():
    low = backoff_delay(3, 0.8)
    high = backoff_delay(3, 1.2)
    mid = backoff_delay(3, 1.0)
    assert low < mid < high


def test_backoff_attempt_zero_matches_attempt_one():
    assert backoff_delay(0, 1.0) == backoff_delay(1, 1.0)


def test_transport_is_abstract():
    with pytest.raises(TypeError):
        Transport()


@pytest.mark.asyncio
async def test_chat_success_parses_response_and_sends_body():
    with respx.mock(assert_all_called=False) as router:
        route = router.post(GROQ_API_URL).mock(
            return_value=httpx.Response(200, json=OK_BODY)
        )
        async with httpx.AsyncClient() as client:
            transport = GroqTransport("placeholder", client)
            response = await transport.chat(make_request())
    assert isinstance(response, GroqResponse)
    assert response.choices[0].message.content == "Paris"
    assert response.usage.total_tokens == 4
    sent = route.calls.last.request
    assert sent.headers["Authorization"] == "Bearer placeholder"
    assert json.loads(sent.content) == make_request().to_dict()


@pytest.mark.asyncio
async def test_chat_uses_custom_url_without_client():
    url = "http://localhost/v1/chat"
    with respx.mock(assert_all_called=False) as router:
        route = router.post(url).mock(return_value=httpx.Response(200, json=OK_BODY))
        transport = GroqTransport("placeholder", url=url)
        response = await transport.chat(make_request())
    assert route.call_count == 1
    assert response.choices[0].message.role == "assistant"


@pytest.mark.asyncio
async def test_chat_retries_until_success():
    responses = [httpx.Response(500, text="boom")] * 3 + [
        httpx.Response(200, json=OK_BODY)
    ]
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        with respx.mock(assert_all_called=False) as router:
            route = router.post(GROQ_API_URL).mock(side_effect=responses)
            async with httpx.AsyncClient() as client:
                response = await GroqTransport("placeholder", client).chat(make_request())
    assert route.call_count == 4
    assert sleep.await_count == 3
    assert response.choices[0].message.content == "Paris"


@pytest.mark.asyncio
async def test_chat_gives_up_on_repeated_http_errors():
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        with respx.mock(assert_all_called=False) as router:
            route = router.post(GROQ_API_URL).mock(
                return_value=httpx.Response(503, text="overloaded")
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(TransportError) as info:
                    await GroqTransport("placeholder", client).chat(make_request())
    assert route.call_count == MAX_RETRIES
    assert sleep.await_count == MAX_RETRIES - 1
    assert f"after {MAX_RETRIES} attempts" in str(info.value)
    assert "overloaded" in str(info.value)


@pytest.mark.asyncio
async def test_chat_sleeps_with_growing_bounded_delays():
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        with respx.mock(assert_all_called=False) as router:
            router.post(GROQ_API_URL).mock(return_value=httpx.Response(500))
            async with httpx.AsyncClient() as client:
                with pytest.raises(TransportError):
                    await GroqTransport("placeholder", client).chat(make_request())
    delays = [call.args[0] for call in sleep.await_args_list]
    for attempt, delay in enumerate(delays, start=1):
        assert backoff_delay(attempt, 0.8) <= delay <= backoff_delay(attempt, 1.2)


@pytest.mark.asyncio
async def test_chat_gives_up_on_network_errors():
    with patch("asyncio.sleep", new_callable=AsyncMock):
        with respx.mock(assert_all_called=False) as router:
            route = router.post(GROQ_API_URL).mock(
                side_effect=httpx.ConnectError("refused")
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(TransportError) as info:
                    await GroqTransport("placeholder", client).chat(make_request())
    assert route.call_count == MAX_RETRIES
    assert str(info.value).startswith("Failed to send request to Groq API")


@pytest.mark.asyncio
async def test_chat_reports_unparseable_response():
    with respx.mock(assert_all_called=False) as router:
        route = router.post(GROQ_API_URL).mock(
            return_value=httpx.Response(200, text="not json")
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(TransportError) as info:
                await GroqTransport("placeholder", client).chat(make_request())
    assert route.call_count == 1
    assert "Failed to parse Groq API response" in str(info.value)