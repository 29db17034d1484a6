# tests/test_api.py

from __future__ import annotations

from datetime import date, timezone

import httpx
import pytest
from sqlmodel import Session

from pomodoro_milestones.main import app
from pomodoro_milestones.models import Milestone, Project, Task


@pytest.fixture()
def client(api_engine):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_create_uses_camel_case_and_next_position(client, seed) -> None:
    project_id, _ = seed()
    async with client:
        r1 = await client.post(f"/projects/{project_id}/milestones", json={"title": "Plan", "dueDate": "2024-06-05"})
        r2 = await client.post(
            f"/projects/{project_id}/milestones", json={"title": "Later", "dueDate": "2024-06-05", "position": 10}
        )
        r3 = await client.post(f"/projects/{project_id}/milestones", json={"title": "Next", "dueDate": "2024-06-01"})

    assert r1.status_code == 201
    body = r1.json()
    assert body["dueDate"] == "2024-06-05"
    assert body["projectId"] == int(project_id)
    assert body["kind"] == "user-created"
    assert body["sourceTaskId"] is None
    assert body["position"] == 0
    assert r2.json()["position"] == 10
    assert r3.json()["position"] == 11


@pytest.mark.asyncio
async def test_list_is_ordered_by_due_date_then_position(client, seed) -> None:
    project_id, _ = seed()
    async with client:
        for title, due, pos in [("c", "2024-06-09", 0), ("b", "2024-06-02", 5), ("a", "2024-06-02", 1)]:
            await client.post(
                f"/projects/{project_id}/milestones", json={"title": title, "dueDate": due, "position": pos}
            )
        listed = (await client.get(f"/projects/{project_id}/milestones")).json()

    assert [m["title"] for m in listed] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_completion_toggle_stamps_completed_date(client, seed) -> None:
    project_id, _ = seed()
    async with client:
        mid = (await client.post(f"/projects/{project_id}/milestones", json={"title": "x", "dueDate": "2024-06-05"})).json()["id"]
        done = (await client.put(f"/milestones/{mid}", json={"completed": True})).json()
        undone = (await client.put(f"/milestones/{mid}", json={"completed": False})).json()

    assert done["completed"] is True
    assert done["completedDate"] is not None
    assert undone["completedDate"] is None


@pytest.mark.asyncio
async def test_not_found_and_validation_statuses(client, seed) -> None:
    project_id, _ = seed()
    async with client:
        missing_project = await client.get("/projects/777/milestones")
        missing_delete = await client.delete("/milestones/777")
        blank = await client.post(f"/projects/{project_id}/milestones", json={"title": " ", "dueDate": "2024-06-05"})
        no_date = await client.post(f"/projects/{project_id}/milestones", json={"title": "x"})
        orphan = await client.post(
            f"/projects/{project_id}/milestones",
            json={"title": "x", "dueDate": "2024-06-05", "kind": "derived-task-due"},
        )
        bogus_kind = await client.post(
            f"/projects/{project_id}/milestones", json={"title": "x", "dueDate": "2024-06-05", "kind": "nope"}
        )

    assert missing_project.status_code == 404
    assert missing_project.json()["message"] == "Project not found"
    assert missing_delete.status_code == 404
    assert [r.status_code for r in (blank, no_date, orphan, bogus_kind)] == [400, 400, 400, 400]


def test_table_timestamps_default_to_aware_utc() -> None:
    rows = [
        Project(title="Thesis"),
        Task(project_id=1, title="Write"),
        Milestone(project_id=1, title="Plan", due_date=date(2024, 6, 5)),
    ]
    for row in rows:
        assert row.created_at.tzinfo is timezone.utc
        assert row.updated_at.tzinfo is timezone.utc


@pytest.mark.asyncio
async def test_update_refreshes_timestamps_without_error(client, seed, api_engine) -> None:
    project_id, _ = seed()
    async with client:
        mid = (await client.post(f"/projects/{project_id}/milestones", json={"title": "x", "dueDate": "2024-06-05"})).json()["id"]
        r = await client.put(f"/milestones/{mid}", json={"title": "y"})

    assert r.status_code == 200
    with Session(api_engine) as session:
        row = session.get(Milestone, mid)
        assert row.updated_at >= row.created_at
