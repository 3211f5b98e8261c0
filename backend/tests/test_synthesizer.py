"""Tests for answer synthesis and its retry policy."""

from __future__ import annotations

import pytest

from askdocs.core.errors import RateLimitedError, ServiceResponseError, SynthesisError
from askdocs.models.entities import RetrievalResult
from askdocs.rag.synthesizer import AnswerSynthesizer, SynthesisConfig, build_turns

CONTEXT = [
    RetrievalResult(chunk_id="c1", document_id="d1", ordinal=0, text="Cats are mammals", similarity=0.9),
    RetrievalResult(chunk_id="c2", document_id="d1", ordinal=1, text="Dogs are mammals too", similarity=0.8),
]


def test_prompt_has_system_context_then_user_query() -> None:
    turns = build_turns("Are cats mammals?", CONTEXT)
    assert [turn.role for turn in turns] == ["system", "user"]
    assert "Cats are mammals\n\nDogs are mammals too" in turns[0].content
    assert turns[1].content == "Are cats mammals?"


@pytest.mark.asyncio
async def test_answer_uses_sampling_parameters(fake_service, sleeps) -> None:
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(), sleep=sleeps)

    answer = await synthesizer.synthesize("Are cats mammals?", CONTEXT)

    assert answer == fake_service.answer
    messages, params = fake_service.complete_calls[0]
    assert messages[0]["role"] == "system"
    assert messages[1] == {"role": "user", "content": "Are cats mammals?"}
    assert params == {"max_tokens": 1024, "temperature": 0.1, "top_p": 0.9}


@pytest.mark.asyncio
async def test_rate_limits_exhaust_attempts(fake_service, sleeps) -> None:
    fake_service.complete_errors = [RateLimitedError("busy") for _ in range(5)]
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(max_attempts=3), sleep=sleeps)

    with pytest.raises(SynthesisError):
        await synthesizer.synthesize("question", CONTEXT)

    assert len(fake_service.complete_calls) == 3
    assert sleeps.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_rate_limit_backoff_is_capped(fake_service, sleeps) -> None:
    fake_service.complete_errors = [RateLimitedError("busy") for _ in range(4)]
    config = SynthesisConfig(max_attempts=4, backoff_base=1.0, backoff_cap=1.5)
    synthesizer = AnswerSynthesizer(fake_service, config, sleep=sleeps)

    with pytest.raises(SynthesisError):
        await synthesizer.synthesize("question", CONTEXT)
    assert sleeps.delays == [1.0, 1.5, 1.5]


@pytest.mark.asyncio
async def test_recovers_after_rate_limit(fake_service, sleeps) -> None:
    fake_service.complete_errors = [RateLimitedError("busy")]
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(), sleep=sleeps)

    assert await synthesizer.synthesize("question", CONTEXT) == fake_service.answer
    assert len(fake_service.complete_calls) == 2
    assert sleeps.delays == [1.0]


@pytest.mark.asyncio
async def test_transient_errors_back_off_linearly(fake_service, sleeps) -> None:
    fake_service.complete_errors = [ServiceResponseError(503, "unavailable") for _ in range(3)]
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(max_attempts=3), sleep=sleeps)

    with pytest.raises(SynthesisError) as excinfo:
        await synthesizer.synthesize("question", CONTEXT)

    assert isinstance(excinfo.value.__cause__, ServiceResponseError)
    assert len(fake_service.complete_calls) == 3
    assert sleeps.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_client_error_fails_immediately(fake_service, sleeps) -> None:
    fake_service.complete_errors = [ServiceResponseError(400, "bad request")]
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(), sleep=sleeps)

    with pytest.raises(SynthesisError):
        await synthesizer.synthesize("question", CONTEXT)
    assert len(fake_service.complete_calls) == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_non_text_answer_is_a_synthesis_error(fake_service, sleeps) -> None:
    fake_service.answer = None
    synthesizer = AnswerSynthesizer(fake_service, SynthesisConfig(), sleep=sleeps)

    with pytest.raises(SynthesisError):
        await synthesizer.synthesize("question", CONTEXT)
    assert len(fake_service.complete_calls) == 1
