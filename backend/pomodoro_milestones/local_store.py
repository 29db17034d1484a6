# backend/pomodoro_milestones/local_store.py

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

from .errors import BackendUnavailable, NotFound, ValidationError
from .milestones import (
    Milestone,
    MilestoneKind,
    TaskRef,
    next_position,
    validate_new_milestone,
)
from .utils import sanitize_for_json, to_date_obj, utc_now

logger = logging.getLogger(__name__)

MILESTONES_KEY = "pomodoroMilestones"
TASKS_KEY = "pomodoroTasks"
PROJECTS_KEY = "pomodoroProjects"


class DeviceStorage:
    """
    On-device key/value storage: one JSON document per key, stored as <key>.json.

    Writes go to a temp file first and are moved into place with os.replace,
    so readers never observe a half-written collection.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._dir = Path(data_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def get_item(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            raise BackendUnavailable(f"cannot read {path}: {e}") from e

    def set_item(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            tmp_path.write_text(json.dumps(sanitize_for_json(value), ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise BackendUnavailable(f"cannot write {path}: {e}") from e

    def get_list(self, key: str) -> list[dict[str, Any]]:
        raw = self.get_item(key)
        if not isinstance(raw, list):
            return []
        return [r for r in raw if isinstance(r, dict)]


class LocalMilestoneStore:
    """
    MilestoneStore over a single serialized collection covering all projects.

    Reads filter by projectId; every mutation rewrites the whole collection.
    The methods never await between reading and writing the collection, so each
    read-modify-write is atomic with respect to other coroutines on the same loop.
    Concurrent writers in other processes are not coordinated.
    """

    def __init__(self, storage: DeviceStorage, *, today: Callable[[], date] = date.today) -> None:
        self._storage = storage
        self._today = today

    def _load(self) -> list[dict[str, Any]]:
        return self._storage.get_list(MILESTONES_KEY)

    def _save(self, records: list[dict[str, Any]]) -> None:
        self._storage.set_item(MILESTONES_KEY, records)

    @staticmethod
    def _project_milestones(records: list[dict[str, Any]], project_id: str) -> list[Milestone]:
        out: list[Milestone] = []
        for r in records:
            if str(r.get("projectId")) != project_id:
                continue
            try:
                out.append(Milestone.from_record(r))
            except (ValueError, TypeError, ValidationError):
                logger.warning("Skipping malformed milestone record id=%s", r.get("id"))
        out.sort(key=Milestone.sort_key)
        return out

    async def list(self, project_id: str) -> list[Milestone]:
        return self._project_milestones(self._load(), str(project_id))

    async def get(self, milestone_id: str) -> Milestone:
        for r in self._load():
            if str(r.get("id")) == str(milestone_id):
                return Milestone.from_record(r)
        raise NotFound(f"milestone {milestone_id} not found")

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
        project_id = str(project_id)
        due = to_date_obj(due_date)
        clean_title = validate_new_milestone(
            title=title, due_date=due, kind=kind, source_task_id=source_task_id
        )

        records = self._load()
        existing = self._project_milestones(records, project_id)
        milestone = Milestone(
            id=uuid.uuid4().hex,
            project_id=project_id,
            title=clean_title,
            due_date=due,
            completed=completed,
            completed_date=self._today() if completed else None,
            position=next_position(existing),
            kind=MilestoneKind(kind),
            source_task_id=source_task_id,
            created_at=utc_now(),
        )
        records.append(milestone.to_record())
        self._save(records)
        logger.debug(
            "Milestone added id=%s project=%s kind=%s due=%s",
            milestone.id,
            project_id,
            milestone.kind.value,
            milestone.due_date,
        )
        return milestone

    async def update(self, milestone_id: str, patch: dict[str, Any]) -> Milestone:
        records = self._load()
        for idx, r in enumerate(records):
            if str(r.get("id")) != str(milestone_id):
                continue
            updated = apply_patch(Milestone.from_record(r), patch, today=self._today())
            records[idx] = {**r, **updated.to_record()}
            self._save(records)
            logger.debug("Milestone updated id=%s fields=%s", milestone_id, sorted(patch))
            return updated
        raise NotFound(f"milestone {milestone_id} not found")

    async def remove(self, milestone_id: str) -> None:
        records = self._load()
        kept = [r for r in records if str(r.get("id")) != str(milestone_id)]
        if len(kept) == len(records):
            logger.debug("Milestone %s already removed", milestone_id)
            return
        self._save(kept)
        logger.debug("Milestone removed id=%s", milestone_id)


def apply_patch(milestone: Milestone, patch: dict[str, Any], *, today: date) -> Milestone:
    """Apply an update patch (title, due_date, completed, position) to a milestone."""
    out = milestone
    if patch.get("title") is not None:
        title = str(patch["title"]).strip()
        if not title:
            raise ValidationError("title cannot be empty")
        out = replace(out, title=title)
    if patch.get("due_date") is not None:
        out = replace(out, due_date=to_date_obj(patch["due_date"]))
    if patch.get("position") is not None:
        out = replace(out, position=int(patch["position"]))
    if patch.get("completed") is not None:
        completed = bool(patch["completed"])
        if completed != out.completed:
            out = out.with_completion(completed, today)
    return out


class LocalTaskSource:
    def __init__(self, storage: DeviceStorage) -> None:
        self._storage = storage

    async def tasks_of(self, project_id: str) -> list[TaskRef]:
        out: list[TaskRef] = []
        for r in self._storage.get_list(TASKS_KEY):
            if str(r.get("projectId")) != str(project_id):
                continue
            try:
                out.append(TaskRef.from_record(r))
            except (ValueError, TypeError):
                logger.warning("Skipping malformed task record id=%s", r.get("id"))
        return out


class LocalProjectSource:
    def __init__(self, storage: DeviceStorage) -> None:
        self._storage = storage

    async def deadline_of(self, project_id: str) -> date | None:
        for p in self._storage.get_list(PROJECTS_KEY):
            if str(p.get("id")) == str(project_id):
                return to_date_obj(p.get("deadline"))
        return None
