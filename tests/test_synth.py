import uuid
from datetime import datetime, timedelta, timezone

import pytest

from unintel.models import (
    ChatMessage,
    Choice,
    GroqResponse,
    GroqUsage,
    QueryIntent,
    Thought,
)
from unintel.synth import (
    GroqSynth,
    SynthesisError,
    build_context,
    system_prompt,
)
from unintel.transport import Transport, TransportError


class MockTransport(Transport):
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def chat(self, request):
        self.requests.append(request)
        if not self.responses:
            raise TransportError("No more mock responses")
        return self.responses.pop()


def make_thought(content, days_ago):
    moment = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return Thought(
        id=uuid.uuid4(),
        content=content,
        instance_id="test_instance",
        created_at=moment,
        updated_at=moment,
        semantic_score=0.8,
    )


def response(text, usage=None):
    return GroqResponse(
        choices=[Choice(message=ChatMessage(role="assistant", content=text))],
        usage=usage,
    )


def make_synth(transport):
    return GroqSynth(transport, "fast-model", "deep-model")


@pytest.mark.asyncio
async def test_groq_synth_basic():
    transport = MockTransport([response("Synthesized response content.")])
    synth = make_synth(transport)
    intent = QueryIntent(original_query="Test query.")
    thoughts = [make_thought("Thought 1", 1), make_thought("Thought 2", 2)]

    result = await synth.synth(intent, thoughts)

    assert result.text == "Synthesized response content."
    assert result.usage is None
    assert result.model_used == "fast-model"
    request = transport.requests[0]
    assert request.max_tokens == 1500
    assert request.temperature == 0.3
    user = request.messages[1].content
    assert user.startswith("Original Query: Test query.\n\nRetrieved Memories:\n")
    assert user.endswith("\n\nSynthesized Answer:")
    assert user.index("Thought 2") < user.index("Thought 1")


@pytest.mark.asyncio
async def test_groq_synth_token_truncation():
    transport = MockTransport([response("Synthesized response content.")])
    synth = make_synth(transport)
    intent = QueryIntent(original_query="Test query.")
    thoughts = [
        make_thought(f"This is a very long thought content number {i}. " * 50, i)
        for i in range(50)
    ]

    result = await synth.synth(intent, thoughts)

    assert result.text == "Synthesized response content."
    user = transport.requests[0].messages[1].content
    assert "number 0. " in user
    assert "number 1. " not in user


@pytest.mark.asyncio
async def test_groq_synth_deep_model():
    transport = MockTransport([response("Deep synthesized response content.")])
    synth = make_synth(transport)
    intent = QueryIntent(original_query="Test query.", synthesis_style="deep")

    result = await synth.synth(intent, [make_thought("Thought 1", 1)])

    assert result.text == "Deep synthesized response content."
    assert result.model_used == "deep-model"
    assert transport.requests[0].max_tokens == 2000


@pytest.mark.asyncio
async def test_usage_is_passed_through():
    usage = GroqUsage(prompt_tokens=3, completion_tokens=4, total_tokens=7)
    synth = make_synth(MockTransport([response("ok", usage)]))
    result = await synth.synth(QueryIntent(original_query="q"), [])
    assert result.usage.total_tokens == 7


@pytest.mark.asyncio
async def test_empty_choices_raise():
    synth = make_synth(MockTransport([GroqResponse(choices=[])]))
    with pytest.raises(SynthesisError, match="empty choices"):
        await synth.synth(QueryIntent(original_query="q"), [])


@pytest.mark.asyncio
async def test_transport_error_propagates():
    synth = make_synth(MockTransport([]))
    with pytest.raises(TransportError):
        await synth.synth(QueryIntent(original_query="q"), [])


@pytest.mark.asyncio
async def test_chronological_style_prompt():
    transport = MockTransport([response("ok")])
    synth = make_synth(transport)
    result = await synth.synth(
        QueryIntent(original_query="q", synthesis_style="Chronological"), []
    )
    assert result.model_used == "fast-model"
    assert "chronological order" in transport.requests[0].messages[0].content
    assert transport.requests[0].messages[0].role == "system"


def test_system_prompt_default_and_unknown_style():
    assert system_prompt(None) == system_prompt("terse")
    assert "chronological order" not in system_prompt(None)
    assert "chronological order" in system_prompt("CHRONOLOGICAL")


def test_build_context_format():
    thought_id = uuid.UUID("00000000-0000-0000-0000-000000000001")
    moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    thought = Thought(
        id=thought_id,
        content="hello",
        instance_id="CC",
        created_at=moment,
        updated_at=moment,
    )
    assert build_context([thought], 1000) == (
        "\nThought ID: 00000000-0000-0000-0000-000000000001"
        "\nContent: hello\nCreated At: 2024-01-02 03:04:05 UTC"
    )


def test_build_context_zero_budget_is_empty():
    assert build_context([make_thought("something long enough", 0)], 0) == ""


def test_build_context_orders_oldest_first():
    newer = make_thought("newer", 1)
    older = make_thought("older", 5)
    context = build_context([newer, older], 1000)
    assert context.index("older") < context.index("newer")