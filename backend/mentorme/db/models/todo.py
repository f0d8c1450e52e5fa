"""Todo ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from mentorme.db.base import Base


class Todo(Base):
    __tablename__ = "todos"
    __table_args__ = (
        Index("ix_todos_user_id", "user_id"),
        Index("ix_todos_status", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=False), nullable=True)
    priority = Column(String(length=20), nullable=False, default="medium", server_default=sa_text("'medium'"))
    status = Column(String(length=20), nullable=False, default="pending", server_default=sa_text("'pending'"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    was_voice_captured = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    voice_transcript = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
