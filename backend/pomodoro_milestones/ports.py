# backend/pomodoro_milestones/ports.py

"""
Ports (interfaces) used by the synchronizer and the view.

Both persistence modes (remote API for signed-in users, on-device files for anonymous users)
implement these Protocols, so callers never branch on the backend.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from .milestones import Milestone, MilestoneKind, TaskRef


class MilestoneStore(Protocol):
    async def list(self, project_id: str) -> list[Milestone]:
        """All milestones of a project, ordered by (due_date, position)."""
        ...

    async def create(
        self,
        project_id: str,
        *,
        title: str,
        due_date: date,
        kind: MilestoneKind = MilestoneKind.USER_CREATED,
        source_task_id: str | None = None,
        completed: bool = False,
    ) -> Milestone: ...

    async def update(self, milestone_id: str, patch: dict[str, Any]) -> Milestone:
        """
        Patch keys: title, due_date, completed, position.

        Raises NotFound for an unknown id.
        """
        ...

    async def remove(self, milestone_id: str) -> None:
        """Idempotent: removing an unknown or already removed id is a no-op."""
        ...

    async def get(self, milestone_id: str) -> Milestone: ...


class TaskSource(Protocol):
    async def tasks_of(self, project_id: str) -> list[TaskRef]: ...


class ProjectSource(Protocol):
    async def deadline_of(self, project_id: str) -> date | None: ...
