"""Audit trail of user-visible mutations, including undoable ones."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from mentorme.db.base import Base


class ActionLog(Base):
    __tablename__ = "action_log"
    __table_args__ = (
        Index("ix_action_log_user_id", "user_id"),
        Index("ix_action_log_action_type", "action_type"),
        Index("ix_action_log_type_subject", "action_type", "subject_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), nullable=True)
    action_type = Column(Text, nullable=False)
    action_payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    undo_available = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    undone_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
