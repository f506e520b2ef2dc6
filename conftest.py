import os

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from decision import PolicyDecision


class StaticClassifier:
    """Classifier double returning a fixed decision and recording calls."""

    def __init__(self, decision=None, error=None):
        self.decision = decision or PolicyDecision.allow()
        self.error = error
        self.calls = []

    async def evaluate(self, caller, role, tier):
        self.calls.append((caller, role, tier))
        if self.error is not None:
            raise self.error
        return self.decision


@pytest.fixture
def fake_redis():
    # A private server per test; instances otherwise share state by host/port
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def db_session_factory():
    import models  # noqa: F401
    from db import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield TestingSession
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def app_client(db_session_factory):
    """
    TestClient over the real app with an isolated database and an
    allow-all classifier. Tests swap main.gate.classifier as needed.
    """
    from fastapi.testclient import TestClient
    from unittest.mock import patch

    from db import get_db
    from main import app, gate

    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with patch.object(gate, "classifier", StaticClassifier()):
        with TestClient(app) as client:
            yield client
    app.dependency_overrides.clear()
