"""Goal ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from mentorme.db.base import Base


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_user_id", "user_id"),
        Index("ix_goals_user_status", "user_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(length=50), nullable=False, default="other")
    status = Column(String(length=50), nullable=False, default="active", server_default=sa_text("'active'"))
    target_date = Column(Date, nullable=True)
    # ordered list of {id, title, description, target_date, order, completed, completed_date}
    milestones = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    current_progress = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    sort_order = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
