from concurrent.futures import Executor, Future
from typing import List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from abbanner.core.db import get_db, init_db
from abbanner.core.storage import InMemoryKeyValueStore
from abbanner.models.schemas.action_log import ActionLogCreateModel
from abbanner.services.action_logger import ActionLogError, ActionLogger


class ImmediateExecutor(Executor):
    """Runs submitted calls inline so their outcome is known on return."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Holds submitted calls until ``run_pending`` is called."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self):
        for future, fn, args, kwargs in self.pending:
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)
        self.pending = []


class RecordingActionLogger(ActionLogger):
    def __init__(self, fail: bool = False):
        self.calls: List[ActionLogCreateModel] = []
        self.fail = fail

    def log_action(self, payload: ActionLogCreateModel) -> None:
        self.calls.append(payload)
        if self.fail:
            raise ActionLogError("logging endpoint unavailable")


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def action_logger():
    return RecordingActionLogger()


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory, action_logger, executor, monkeypatch):
    from abbanner.core.settings import config_settings
    from abbanner.main import app, get_action_logger, get_executor

    monkeypatch.setattr(config_settings, "TOKENS", ["test-token"])
    monkeypatch.setattr(config_settings, "SITE_BASE_PATH", "/s")

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_action_logger] = lambda: action_logger
    app.dependency_overrides[get_executor] = lambda: executor

    yield TestClient(app)

    app.dependency_overrides.clear()
