"""Turn a spoken transcript into a todo draft."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Protocol

import openai
from pydantic import BaseModel, Field, ValidationError, field_validator

from mentorme.core.config import settings
from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import trace

logger = logging.getLogger(__name__)

HIGH_PRIORITY_PATTERN = re.compile(r"\s*\b(urgent|important|asap)\b\s*", re.IGNORECASE)
LOW_PRIORITY_PATTERN = re.compile(r"\s*\b(low priority|when i have time|not urgent)\b\s*", re.IGNORECASE)
FILLER_PATTERN = re.compile(r"^(remind me to|i need to|i have to|i should|i want to|add)\b\s*", re.IGNORECASE)
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class VoiceCaptureResult(BaseModel):
    """Parsed quick-capture; consumed once to build a todo."""

    title: str = Field(..., min_length=1)
    due_date: Optional[str] = Field(default=None, description="ISO-8601 date or datetime.")
    priority: Optional[str] = Field(default=None, description="high, medium or low; any case.")
    original_transcript: str = ""

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def _due_date_iso(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        datetime.fromisoformat(value)
        return value


class TranscriptParser(Protocol):
    async def parse(self, transcript: str) -> VoiceCaptureResult: ...


def _end_of_day(day: datetime) -> datetime:
    return day.replace(hour=23, minute=59, second=0, microsecond=0)


def _strip(pattern: str, text: str) -> str:
    return re.sub(rf"\s*\b{pattern}\b\s*", " ", text, flags=re.IGNORECASE).strip()


def parse_transcript(transcript: str, now: Optional[datetime] = None) -> VoiceCaptureResult:
    """Keyword parse: priority words, relative due dates, leading fillers.

    Due dates land at 23:59 local time. Weekday names always mean the next
    occurrence, never today.
    """
    now = now or datetime.now()
    title = transcript.strip()
    lowered = title.lower()
    priority: Optional[str] = None
    due: Optional[datetime] = None

    # "not urgent" must win over "urgent"
    if LOW_PRIORITY_PATTERN.search(title):
        priority = "low"
        title = LOW_PRIORITY_PATTERN.sub(" ", title).strip()
    elif HIGH_PRIORITY_PATTERN.search(title):
        priority = "high"
        title = HIGH_PRIORITY_PATTERN.sub(" ", title).strip()

    if re.search(r"\btoday\b", lowered):
        due = _end_of_day(now)
        title = _strip("today", title)
    elif re.search(r"\btomorrow\b", lowered):
        due = _end_of_day(now + timedelta(days=1))
        title = _strip("tomorrow", title)
    elif re.search(r"\bthis week\b", lowered):
        due = _end_of_day(now + timedelta(days=6 - now.weekday()))
        title = _strip("this week", title)
    elif re.search(r"\bnext week\b", lowered):
        due = _end_of_day(now + timedelta(days=7))
        title = _strip("next week", title)
    else:
        for index, day_name in enumerate(WEEKDAYS):
            if re.search(rf"\b{day_name}\b", lowered):
                days_until = index - now.weekday()
                if days_until <= 0:
                    days_until += 7
                due = _end_of_day(now + timedelta(days=days_until))
                title = _strip(rf"(on )?{day_name}", title)
                break

    title = re.sub(r"\s{2,}", " ", FILLER_PATTERN.sub("", title)).strip()
    if title:
        title = title[0].upper() + title[1:]

    return VoiceCaptureResult(
        title=title or transcript.strip(),
        due_date=due.isoformat() if due else None,
        priority=priority,
        original_transcript=transcript,
    )


class RuleTranscriptParser:
    async def parse(self, transcript: str) -> VoiceCaptureResult:
        return parse_transcript(transcript)


LLM_SYSTEM_PROMPT = (
    "You turn short spoken reminders into a todo. Reply with JSON only: "
    '{"title": str, "due_date": ISO-8601 datetime or null, "priority": "high"|"medium"|"low"|null}. '
    "Drop filler such as 'remind me to'. Resolve relative dates against the provided current time "
    "and use 23:59 when no time is given."
)


class LLMTranscriptParser:
    """Chat-completion parser with the keyword parser as fallback."""

    def __init__(self, client: "openai.AsyncOpenAI", *, model: str, fallback: Optional[RuleTranscriptParser] = None) -> None:
        self.client = client
        self.model = model
        self.fallback = fallback or RuleTranscriptParser()

    async def parse(self, transcript: str) -> VoiceCaptureResult:
        with trace("voice.transcript.llm_parse", metadata={"model": self.model, "length": len(transcript)}):
            try:
                completion = await self.client.chat.completions.create(
                    model=self.model,
                    response_format={"type": "json_object"},
                    messages=[
                        {"role": "system", "content": LLM_SYSTEM_PROMPT},
                        {
                            "role": "user",
                            "content": f"Current time: {datetime.now().isoformat(timespec='minutes')}\n"
                            f"Transcript: {transcript}",
                        },
                    ],
                )
                content = completion.choices[0].message.content or "{}"
                result = VoiceCaptureResult.model_validate_json(content)
            except (openai.OpenAIError, ValidationError) as exc:
                logger.warning("LLM transcript parse failed, using keyword parser: %s", exc)
                log_metric("voice.transcript.llm_fallback", 1)
                return await self.fallback.parse(transcript)

        log_metric("voice.transcript.llm_fallback", 0)
        return result.model_copy(update={"original_transcript": transcript})


def build_transcript_parser() -> TranscriptParser:
    if settings.openai_api_key:
        return LLMTranscriptParser(openai.AsyncOpenAI(api_key=settings.openai_api_key), model=settings.transcript_model)
    return RuleTranscriptParser()
