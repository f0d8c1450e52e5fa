"""Tests for turning transcripts into todo drafts."""
from __future__ import annotations

import asyncio
from datetime import datetime
from types import SimpleNamespace

import httpx
import openai
import pytest
from pydantic import ValidationError

from mentorme.services.voice.transcript_parser import (
    LLMTranscriptParser,
    VoiceCaptureResult,
    parse_transcript,
)

# Wednesday
NOW = datetime(2026, 10, 14, 9, 30)


@pytest.mark.parametrize(
    ("transcript", "title", "due", "priority"),
    [
        ("Call mom tomorrow urgent", "Call mom", "2026-10-15T23:59:00", "high"),
        ("remind me to buy milk not urgent", "Buy milk", None, "low"),
        ("I need to call the dentist on friday", "Call the dentist", "2026-10-16T23:59:00", None),
        ("pay rent today asap", "Pay rent", "2026-10-14T23:59:00", "high"),
        ("file taxes this week", "File taxes", "2026-10-18T23:59:00", None),
        ("plan the trip next week", "Plan the trip", "2026-10-21T23:59:00", None),
        ("water plants wednesday", "Water plants", "2026-10-21T23:59:00", None),
        ("stretch when I have time", "Stretch", None, "low"),
    ],
)
def test_keyword_parse(transcript, title, due, priority) -> None:
    result = parse_transcript(transcript, now=NOW)

    assert result.title == title
    assert result.due_date == due
    assert result.priority == priority
    assert result.original_transcript == transcript


def test_title_falls_back_to_transcript_when_only_keywords() -> None:
    assert parse_transcript("tomorrow", now=NOW).title == "tomorrow"


def test_capture_result_rejects_blank_title_and_bad_date() -> None:
    with pytest.raises(ValidationError):
        VoiceCaptureResult(title="   ")
    with pytest.raises(ValidationError):
        VoiceCaptureResult(title="ok", due_date="next tuesday")


class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_llm_parser_uses_model_output() -> None:
    completions = _Completions(content='{"title": "Book flights", "due_date": "2026-10-20T23:59:00", "priority": "HIGH"}')
    parser = LLMTranscriptParser(_client(completions), model="gpt-test")

    result = asyncio.run(parser.parse("book flights by tuesday, it's urgent"))

    assert result.title == "Book flights"
    assert result.priority == "HIGH"
    assert result.original_transcript == "book flights by tuesday, it's urgent"
    assert completions.calls[0]["model"] == "gpt-test"


def test_llm_parser_falls_back_on_invalid_output() -> None:
    parser = LLMTranscriptParser(_client(_Completions(content='{"title": ""}')), model="gpt-test")

    result = asyncio.run(parser.parse("call mom urgent"))

    assert result.title == "Call mom"
    assert result.priority == "high"


def test_llm_parser_falls_back_on_api_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.APIConnectionError(request=request)
    parser = LLMTranscriptParser(_client(_Completions(error=error)), model="gpt-test")

    result = asyncio.run(parser.parse("buy milk"))

    assert result.title == "Buy milk"
