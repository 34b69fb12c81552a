"""Tests for the retry loop, response validators and the client wrapper."""

from __future__ import annotations

import pytest

from sketchweave.errors import LLMNotConfiguredError, TransportFailure
from sketchweave.llm.client import AnthropicTextGenerator, _content_text
from sketchweave.llm.model_router import get_model_for_task
from sketchweave.llm.retry import (
    contains_json_array,
    extract_json_array,
    has_keys,
    is_json,
    not_empty,
    send_with_retry,
)
from tests.conftest import ScriptedTextGenerator

MESSAGES = [{"role": "user", "content": "hi"}]


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def test_not_empty():
    assert not_empty("hello")
    assert not not_empty("   ")
    assert not not_empty(" [] ")
    assert not not_empty("{}")


def test_is_json():
    assert is_json(' {"a": 1} ')
    assert not is_json("not json")


def test_extract_json_array_sources():
    assert extract_json_array('["a", "b"]') == ["a", "b"]
    assert extract_json_array('Here you go:\n```json\n["x"]\n```') == ["x"]
    assert extract_json_array('Sure! ["p", "q"] hope that helps') == ["p", "q"]
    assert extract_json_array('{"not": "an array"}') is None


def test_contains_json_array_needs_items():
    assert contains_json_array("[1]")
    assert not contains_json_array("[]")
    assert not contains_json_array("no array here")


def test_has_keys():
    validator = has_keys("summary", "keyPoints")
    assert validator('{"summary": "s", "keyPoints": []}')
    assert not validator('{"summary": "s"}')
    assert not validator('["summary", "keyPoints"]')


# ---------------------------------------------------------------------------
# send_with_retry
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_first_valid_response_wins():
    client = ScriptedTextGenerator(["ok"])
    response = await send_with_retry(client, MESSAGES, "system", retry_delay=0)
    assert response.content == "ok"
    assert client.call_count == 1
    assert client.calls[0] == (MESSAGES, "system")


@pytest.mark.asyncio
async def test_retries_until_validator_accepts():
    client = ScriptedTextGenerator(["", "[]", "[1, 2]"])
    retries: list[int] = []
    response = await send_with_retry(
        client,
        MESSAGES,
        validator=contains_json_array,
        retry_delay=0,
        on_retry=lambda attempt, reason: retries.append(attempt),
    )
    assert response.content == "[1, 2]"
    assert client.call_count == 3
    assert retries == [1, 2]


@pytest.mark.asyncio
async def test_exhausted_validation_returns_last_response(caplog):
    client = ScriptedTextGenerator(["first", "second", "third"])
    reasons: list[str] = []
    response = await send_with_retry(
        client,
        MESSAGES,
        max_retries=3,
        retry_delay=0,
        validator=lambda content: False,
        on_retry=lambda attempt, reason: reasons.append(reason),
    )
    assert client.call_count == 3
    assert response.content == "third"
    assert len(reasons) == 3
    assert reasons[0].startswith("Response validation failed on attempt 1")
    assert "All 3 attempts failed validation, returning last response" in caplog.text


@pytest.mark.asyncio
async def test_errors_count_as_failed_attempts():
    client = ScriptedTextGenerator([TransportFailure("timeout"), "recovered"])
    response = await send_with_retry(client, MESSAGES, retry_delay=0)
    assert response.content == "recovered"
    assert client.call_count == 2


@pytest.mark.asyncio
async def test_last_error_raised_when_nothing_arrives():
    client = ScriptedTextGenerator([TransportFailure("down")])
    with pytest.raises(TransportFailure, match="down"):
        await send_with_retry(client, MESSAGES, max_retries=2, retry_delay=0)
    assert client.call_count == 2


@pytest.mark.asyncio
async def test_last_response_preferred_over_later_error():
    client = ScriptedTextGenerator(["", TransportFailure("down")])
    response = await send_with_retry(client, MESSAGES, max_retries=3, retry_delay=0)
    assert response.content == ""
    assert client.call_count == 3


@pytest.mark.asyncio
async def test_delay_only_between_attempts(monkeypatch):
    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr("sketchweave.llm.retry.asyncio.sleep", fake_sleep)
    client = ScriptedTextGenerator([""])
    await send_with_retry(client, MESSAGES, max_retries=3, retry_delay=0.5)
    assert sleeps == [0.5, 0.5]


@pytest.mark.asyncio
async def test_defaults_come_from_settings(monkeypatch):
    from sketchweave.config import settings

    monkeypatch.setattr(settings, "ai_max_retries", 2)
    monkeypatch.setattr(settings, "ai_retry_delay_ms", 0)
    client = ScriptedTextGenerator([""])
    await send_with_retry(client, MESSAGES)
    assert client.call_count == 2


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generator_without_key_is_not_configured():
    generator = AnthropicTextGenerator(task="summarize", api_key="")
    assert not generator.configured
    with pytest.raises(LLMNotConfiguredError):
        await generator.generate(MESSAGES)


def test_generator_model_follows_task():
    assert AnthropicTextGenerator(task="summarize", api_key="k").model == get_model_for_task("summarize")
    assert get_model_for_task("summarize") != get_model_for_task("generate")


def test_content_text_joins_blocks():
    assert _content_text("plain") == "plain"
    assert _content_text([{"type": "text", "text": "a"}, {"type": "tool_use"}, "b"]) == "ab"
