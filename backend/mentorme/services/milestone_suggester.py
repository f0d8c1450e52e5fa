"""Milestone suggestions for a draft goal.

The model is asked for a short ranked list. When no API key is configured, or
the call fails, or the reply does not validate, a category template is used
so the add dialog always gets something to start from.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import openai
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from mentorme.core.config import settings
from mentorme.db.models.enums import GoalCategory
from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import trace

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_WEEKS = 12
MAX_SUGGESTIONS = 8


class MilestoneSuggestion(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    suggested_weeks_from_now: int = Field(
        ...,
        ge=0,
        le=104,
        validation_alias=AliasChoices("suggested_weeks_from_now", "suggestedWeeksFromNow"),
    )


class MilestonePlan(BaseModel):
    milestones: List[MilestoneSuggestion] = Field(..., min_length=1, max_length=MAX_SUGGESTIONS)


@dataclass(frozen=True)
class GoalDraft:
    title: str
    description: str = ""
    category: GoalCategory = GoalCategory.OTHER
    target_date: Optional[date] = None
    guidance: Optional[str] = None


@dataclass(frozen=True)
class RankedMilestone:
    title: str
    description: str
    suggested_weeks_from_now: int
    target_date: date


@dataclass(frozen=True)
class MilestoneSuggestions:
    milestones: List[RankedMilestone]
    source: str


# (title, description) per step; "{goal}" is the draft title
CATEGORY_TEMPLATES: Dict[GoalCategory, List[tuple]] = {
    GoalCategory.HEALTH: [
        ("Set a baseline for {goal}", "Write down where you are today so progress is visible."),
        ("Build a weekly routine", "Pick two fixed slots a week and protect them in your calendar."),
        ("Hold the routine for a month", "Keep the routine going for four weeks, adjusting what does not fit."),
        ("Review and reach {goal}", "Compare against the baseline and close the remaining gap."),
    ],
    GoalCategory.FITNESS: [
        ("Measure your starting point", "Record a simple benchmark such as distance, reps or time."),
        ("Train three times a week", "Follow a beginner plan with one rest day between sessions."),
        ("Hit the halfway benchmark", "Retest the benchmark and push the plan one step harder."),
        ("Complete {goal}", "Taper the week before and do the final attempt."),
    ],
    GoalCategory.CAREER: [
        ("Define success for {goal}", "Write the concrete outcome and who needs to see it."),
        ("Close the biggest skill gap", "Pick the one skill that blocks you most and practise it weekly."),
        ("Ship a visible result", "Deliver one piece of work that shows the new skill."),
        ("Make the ask", "Use the result to request the role, raise or project you want."),
    ],
    GoalCategory.LEARNING: [
        ("Choose one resource", "Pick a single course or book and a fixed study slot."),
        ("Finish the fundamentals", "Work through the basics and take notes in your own words."),
        ("Build a small project", "Apply what you learned to something you can show."),
        ("Teach it back", "Explain {goal} to someone else or write it up."),
    ],
    GoalCategory.FINANCE: [
        ("Track a month of spending", "Log every expense for four weeks to see where money goes."),
        ("Set a monthly target", "Decide the amount to set aside and automate the transfer."),
        ("Reach the halfway amount", "Check the balance and trim one recurring cost if behind."),
        ("Reach {goal}", "Hit the full amount and decide what the next target is."),
    ],
}

GENERIC_TEMPLATE: List[tuple] = [
    ("Define what done looks like for {goal}", "Write one sentence that describes the finished result."),
    ("Take the first small step", "Do the smallest piece of work that moves {goal} forward."),
    ("Reach the halfway point", "Check progress and adjust the plan for the second half."),
    ("Finish {goal}", "Complete the remaining work and celebrate the result."),
]

SYSTEM_PROMPT = (
    "You break personal goals into milestones. Reply with JSON only in the form "
    '{"milestones": [{"title": str, "description": str, "suggestedWeeksFromNow": int}]}. '
    "Titles are short and actionable, descriptions are 1-2 sentences with specific steps. "
    "Be encouraging but realistic and make milestones build on each other."
)


def suggest_milestones(
    draft: GoalDraft,
    *,
    client: Optional[Any] = None,
    request_id: Optional[str] = None,
    today: Optional[date] = None,
) -> MilestoneSuggestions:
    """Ranked milestones for ``draft``, earliest first."""
    today = today or date.today()
    horizon = _horizon_weeks(draft.target_date, today)
    if client is None and settings.openai_api_key:
        client = openai.OpenAI(api_key=settings.openai_api_key)

    source = "template"
    suggestions: Optional[List[MilestoneSuggestion]] = None
    if client is not None:
        suggestions = _suggest_via_llm(client, draft, request_id)
        if suggestions is not None:
            source = "llm"
    else:
        logger.info("OPENAI_API_KEY missing; using milestone template")
    if suggestions is None:
        log_metric("goal.milestones.fallback", 1, metadata={"category": draft.category.value})
        suggestions = _template_suggestions(draft, horizon)

    ranked = sorted(suggestions, key=lambda item: item.suggested_weeks_from_now)
    milestones = [
        RankedMilestone(
            title=item.title.strip(),
            description=item.description.strip(),
            suggested_weeks_from_now=item.suggested_weeks_from_now,
            target_date=_clamp(today + timedelta(weeks=item.suggested_weeks_from_now), draft.target_date),
        )
        for item in ranked
    ]
    log_metric("goal.milestones.suggested", len(milestones), metadata={"source": source})
    return MilestoneSuggestions(milestones=milestones, source=source)


def _suggest_via_llm(client: Any, draft: GoalDraft, request_id: Optional[str]) -> Optional[List[MilestoneSuggestion]]:
    metadata = {"category": draft.category.value, "has_guidance": bool(draft.guidance), "request_id": request_id}
    try:
        with trace("goal.milestones.generate", metadata=metadata, request_id=request_id):
            completion = client.chat.completions.create(
                model=settings.milestone_model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": _user_prompt(draft)},
                ],
            )
        content = completion.choices[0].message.content or "{}"
        return MilestonePlan.model_validate_json(content).milestones
    except (openai.OpenAIError, ValidationError) as exc:
        logger.warning("Milestone suggestion failed, using template: %s", exc)
        return None


def _user_prompt(draft: GoalDraft) -> str:
    target = draft.target_date.isoformat() if draft.target_date else "Not specified"
    lines = [
        f"Goal: {draft.title}",
        f"Description: {draft.description or '-'}",
        f"Category: {draft.category.value}",
        f"Target Date: {target}",
    ]
    if draft.guidance and draft.guidance.strip():
        lines.append(f"User's instructions (follow these exactly): {draft.guidance.strip()}")
    else:
        lines.append("Create 3-5 specific, measurable milestones with realistic timeframes.")
    return "\n".join(lines)


def _template_suggestions(draft: GoalDraft, horizon: int) -> List[MilestoneSuggestion]:
    steps = CATEGORY_TEMPLATES.get(draft.category, GENERIC_TEMPLATE)
    goal = draft.title.strip()
    suggestions = []
    for index, (title, description) in enumerate(steps, start=1):
        suggestions.append(
            MilestoneSuggestion(
                title=title.format(goal=goal),
                description=description.format(goal=goal),
                suggested_weeks_from_now=max(1, round(horizon * index / len(steps))),
            )
        )
    return suggestions


def _horizon_weeks(target_date: Optional[date], today: date) -> int:
    if target_date is None or target_date <= today:
        return DEFAULT_HORIZON_WEEKS
    return max(1, (target_date - today).days // 7)


def _clamp(candidate: date, target_date: Optional[date]) -> date:
    if target_date is not None and candidate > target_date:
        return target_date
    return candidate
