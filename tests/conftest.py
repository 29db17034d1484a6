# tests/conftest.py

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from datetime import date
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from sqlmodel import Session

from pomodoro_milestones.bus import ChangeNotificationBus
from pomodoro_milestones.db import get_session, init_db, make_engine
from pomodoro_milestones.local_store import DeviceStorage
from pomodoro_milestones.main import app
from pomodoro_milestones.models import Project, Task
from pomodoro_milestones.remote_store import RemoteApi


@pytest.fixture()
def storage(tmp_path: Path) -> DeviceStorage:
    return DeviceStorage(tmp_path / "device")


@pytest.fixture()
def local_bus() -> ChangeNotificationBus:
    """A private bus per test so subscriptions never leak between tests."""
    return ChangeNotificationBus()


@pytest.fixture()
def api_engine(tmp_path: Path) -> Iterator:
    """
    FastAPI app wired to a throwaway SQLite file.

    ASGITransport does not run startup hooks, so tables are created here.
    """
    engine = make_engine(f"sqlite:///{tmp_path / 'api.sqlite3'}")
    init_db(engine)

    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    yield engine
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture()
def seed(api_engine):
    """seed(deadline=None, tasks=[(title, due_date), ...]) -> (project_id, [task ids])"""

    def _seed(*, deadline: date | None = None, tasks: list[tuple[str, date | None]] = ()) -> tuple[str, list[str]]:
        with Session(api_engine) as session:
            project = Project(title="Thesis", deadline=deadline)
            session.add(project)
            session.commit()
            session.refresh(project)
            ids: list[str] = []
            for title, due in tasks:
                t = Task(project_id=project.id, title=title, due_date=due)
                session.add(t)
                session.commit()
                session.refresh(t)
                ids.append(str(t.id))
            return str(project.id), ids

    return _seed


@pytest_asyncio.fixture()
async def remote_api(api_engine) -> AsyncIterator[RemoteApi]:
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    api = RemoteApi(client)
    yield api
    await api.aclose()
