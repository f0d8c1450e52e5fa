"""ORM models exposed for metadata discovery."""
from mentorme.db.models.action_log import ActionLog
from mentorme.db.models.goal import Goal
from mentorme.db.models.habit import Habit
from mentorme.db.models.todo import Todo
from mentorme.db.models.user import User

__all__ = [
    "ActionLog",
    "Goal",
    "Habit",
    "Todo",
    "User",
]
