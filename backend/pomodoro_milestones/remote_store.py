# backend/pomodoro_milestones/remote_store.py

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from .errors import BackendUnavailable, Forbidden, NotFound, ValidationError
from .milestones import Milestone, MilestoneKind, TaskRef
from .utils import to_date_obj, to_iso

logger = logging.getLogger(__name__)

_PATCH_FIELDS = {
    "title": "title",
    "due_date": "dueDate",
    "completed": "completed",
    "position": "position",
}


class RemoteApi:
    """
    Thin async wrapper around the milestone HTTP API.

    Maps transport failures and non-2xx responses onto the shared error taxonomy,
    so callers see the same errors as with the on-device backend.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def connect(cls, base_url: str, *, token: str | None = None, timeout: float = 10.0) -> RemoteApi:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return cls(httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, url: str, *, json: Any = None) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise BackendUnavailable(f"{method} {url}: {e}") from e
        self._raise_for_status(method, url, resp)
        return resp

    @staticmethod
    def _raise_for_status(method: str, url: str, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        detail = str(payload.get("detail")) if isinstance(payload, dict) else resp.text
        msg = f"{method} {url} -> {resp.status_code}: {detail}"
        if resp.status_code == 404:
            raise NotFound(msg)
        if resp.status_code == 403:
            raise Forbidden(msg)
        if resp.status_code in (400, 422):
            raise ValidationError(msg)
        logger.warning("Milestone API error %s", msg)
        raise BackendUnavailable(msg)


class RemoteMilestoneStore:
    """MilestoneStore backed by the REST API (signed-in users)."""

    def __init__(self, api: RemoteApi) -> None:
        self._api = api

    async def list(self, project_id: str) -> list[Milestone]:
        resp = await self._api.request("GET", f"/projects/{project_id}/milestones")
        milestones = [Milestone.from_record(r) for r in resp.json()]
        milestones.sort(key=Milestone.sort_key)
        logger.debug("Received %d milestones for project %s", len(milestones), project_id)
        return milestones

    async def get(self, milestone_id: str) -> Milestone:
        resp = await self._api.request("GET", f"/milestones/{milestone_id}")
        return Milestone.from_record(resp.json())

    async def create(
        self,
        project_id: str,
        *,
        title: str,
        due_date: date,
        kind: MilestoneKind = MilestoneKind.USER_CREATED,
        source_task_id: str | None = None,
        completed: bool = False,
    ) -> Milestone:
        body: dict[str, Any] = {
            "title": title,
            "dueDate": to_iso(to_date_obj(due_date)),
            "kind": MilestoneKind(kind).value,
            "completed": completed,
        }
        if source_task_id is not None:
            body["sourceTaskId"] = source_task_id
        resp = await self._api.request("POST", f"/projects/{project_id}/milestones", json=body)
        milestone = Milestone.from_record(resp.json())
        logger.debug("Milestone created id=%s project=%s", milestone.id, project_id)
        return milestone

    async def update(self, milestone_id: str, patch: dict[str, Any]) -> Milestone:
        body: dict[str, Any] = {}
        for key, wire in _PATCH_FIELDS.items():
            if patch.get(key) is None:
                continue
            value = patch[key]
            body[wire] = to_iso(to_date_obj(value)) if key == "due_date" else value
        resp = await self._api.request("PUT", f"/milestones/{milestone_id}", json=body)
        return Milestone.from_record(resp.json())

    async def remove(self, milestone_id: str) -> None:
        try:
            await self._api.request("DELETE", f"/milestones/{milestone_id}")
        except NotFound:
            logger.debug("Milestone %s already removed", milestone_id)


class RemoteTaskSource:
    def __init__(self, api: RemoteApi) -> None:
        self._api = api

    async def tasks_of(self, project_id: str) -> list[TaskRef]:
        resp = await self._api.request("GET", f"/projects/{project_id}/tasks")
        return [TaskRef.from_record(r) for r in resp.json()]


class RemoteProjectSource:
    def __init__(self, api: RemoteApi) -> None:
        self._api = api

    async def deadline_of(self, project_id: str) -> date | None:
        resp = await self._api.request("GET", f"/projects/{project_id}")
        return to_date_obj(resp.json().get("deadline"))
