"""Route parsed voice captures into the todo store."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mentorme.services import todo_service
from mentorme.services.voice.session import NoticeKind, VoiceSession
from mentorme.services.voice.transcript_parser import VoiceCaptureResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedTodo:
    todo_id: UUID
    title: str
    result: Optional[VoiceCaptureResult] = None


class VoiceTodoCapture:
    """Creates a todo for every result a session produces and remembers
    recent ones so the user can undo them.

    Database work runs in a worker thread; the event loop only waits on it.
    """

    def __init__(self, session_factory: Callable[[], Session], *, history: int = 10) -> None:
        self.session_factory = session_factory
        self._recent: Dict[UUID, Deque[CapturedTodo]] = defaultdict(lambda: deque(maxlen=history))

    def bind(self, session: VoiceSession) -> Callable[[], None]:
        """Start consuming ``session`` results; returns the unsubscribe hook."""
        if session.user_id is None:
            raise ValueError("voice capture needs a session bound to a user")

        async def _handle(result: VoiceCaptureResult) -> CapturedTodo:
            return await self.handle(session, result)

        return session.handle_results(_handle)

    async def handle(self, session: VoiceSession, result: VoiceCaptureResult) -> CapturedTodo:
        captured = await asyncio.to_thread(self._store, session.user_id, result)
        self._recent[session.user_id].append(captured)
        logger.info("Voice todo %s created", captured.todo_id)
        session.notify(NoticeKind.TODO_CREATED, f'Added "{captured.title}"', todo_id=captured.todo_id)
        return captured

    def latest(self, user_id: UUID) -> Optional[CapturedTodo]:
        recent = self._recent.get(user_id)
        return recent[-1] if recent else None

    def todo_for(self, user_id: UUID, result: VoiceCaptureResult) -> Optional[UUID]:
        """Id of the todo created from ``result``, if it was persisted."""
        for item in reversed(self._recent.get(user_id) or ()):
            if item.result is result:
                return item.todo_id
        return None

    async def undo(self, user_id: UUID, todo_id: UUID, request_id: Optional[str] = None) -> bool:
        """Delete exactly the given voice-created todo; False if it is not ours."""
        removed = await asyncio.to_thread(self._remove, user_id, todo_id, request_id)
        recent = self._recent.get(user_id)
        match = next((item for item in recent or () if item.todo_id == todo_id), None)
        if match is not None:
            recent.remove(match)
        return removed

    def _store(self, user_id: UUID, result: VoiceCaptureResult) -> CapturedTodo:
        with self.session_factory() as db:
            todo = todo_service.create_voice_todo(db, user_id, result)
            return CapturedTodo(todo_id=todo.id, title=todo.title, result=result)

    def _remove(self, user_id: UUID, todo_id: UUID, request_id: Optional[str]) -> bool:
        with self.session_factory() as db:
            return todo_service.undo_voice_todo(db, user_id, todo_id, request_id=request_id)
