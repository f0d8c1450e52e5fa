"""Enumerations stored as plain strings on ORM rows."""
from __future__ import annotations

from enum import Enum


class TrackStatus(str, Enum):
    """Lifecycle shared by goals and habits."""

    ACTIVE = "active"
    BACKLOG = "backlog"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class GoalCategory(str, Enum):
    HEALTH = "health"
    FITNESS = "fitness"
    CAREER = "career"
    LEARNING = "learning"
    RELATIONSHIPS = "relationships"
    FINANCE = "finance"
    PERSONAL = "personal"
    OTHER = "other"


class HabitFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class TodoStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TodoPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str | None) -> "TodoPriority":
        """Case-insensitive lookup; anything unrecognised is medium."""
        if raw:
            try:
                return cls(raw.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM
