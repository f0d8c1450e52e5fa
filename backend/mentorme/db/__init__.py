"""Database utilities and models."""

from mentorme.db.base import Base
from mentorme.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
