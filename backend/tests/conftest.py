from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mentorme import main
from mentorme.core.config import settings
from mentorme.db import Base
from mentorme.db.deps import get_db
from mentorme.services.voice.capture import VoiceTodoCapture
from mentorme.services.voice.registry import VoiceSessionRegistry
from mentorme.services.voice.transcript_parser import RuleTranscriptParser


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture()
def client(session_factory, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def build_test_registry() -> VoiceSessionRegistry:
        return VoiceSessionRegistry(
            settings=settings,
            parser=RuleTranscriptParser(),
            capture=VoiceTodoCapture(session_factory),
        )

    # startup wires this registry and shutdown closes its sessions
    monkeypatch.setattr(main, "build_voice_registry", build_test_registry)
    # looked up per test: test_observability reloads mentorme.main
    app = main.app
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, session_factory
    app.dependency_overrides.clear()
