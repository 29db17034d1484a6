# backend/pomodoro_milestones/sync.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .milestones import Milestone, MilestoneKind, TaskRef, derived_title
from .ports import MilestoneStore, TaskSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncReport:
    created: int = 0
    updated: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.removed)


class TaskDueSynchronizer:
    """
    Keep a project's derived milestones equal to its tasks-with-due-dates.

    Derived milestones are matched to tasks by sourceTaskId and upserted in place,
    never deleted and recreated, so running synchronize() repeatedly (or twice
    back to back) converges on the same set. User-created milestones are never touched.

    A failure part-way leaves the steps already applied in place; re-running
    finishes the job.
    """

    def __init__(self, store: MilestoneStore, tasks: TaskSource) -> None:
        self._store = store
        self._tasks = tasks
        self.last_report = SyncReport()

    async def synchronize(self, project_id: str) -> list[Milestone]:
        tasks = await self._tasks.tasks_of(project_id)
        existing = await self._store.list(project_id)

        due_tasks = {t.id: t for t in tasks if t.due_date is not None}

        # existing is sorted by (due_date, position): the first one per task wins
        derived_by_task: dict[str, Milestone] = {}
        duplicates: list[Milestone] = []
        for m in existing:
            if m.kind != MilestoneKind.DERIVED_TASK_DUE or m.source_task_id is None:
                continue
            if m.source_task_id in derived_by_task:
                duplicates.append(m)
            else:
                derived_by_task[m.source_task_id] = m

        report = SyncReport()

        for task in due_tasks.values():
            current = derived_by_task.get(task.id)
            if current is None:
                await self._store.create(
                    project_id,
                    title=derived_title(task),
                    due_date=task.due_date,
                    kind=MilestoneKind.DERIVED_TASK_DUE,
                    source_task_id=task.id,
                    completed=task.completed,
                )
                report.created += 1
                continue

            patch = self._diff(current, task)
            if patch:
                await self._store.update(current.id, patch)
                report.updated += 1

        stale = [m for task_id, m in derived_by_task.items() if task_id not in due_tasks]
        for m in stale + duplicates:
            await self._store.remove(m.id)
            report.removed += 1

        self.last_report = report
        if report.changed:
            logger.info(
                "Synchronized project %s: created=%d updated=%d removed=%d",
                project_id,
                report.created,
                report.updated,
                report.removed,
            )
        else:
            logger.debug("Synchronized project %s: no changes", project_id)

        return await self._store.list(project_id)

    @staticmethod
    def _diff(milestone: Milestone, task: TaskRef) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        if milestone.due_date != task.due_date:
            patch["due_date"] = task.due_date
        if milestone.completed != task.completed:
            patch["completed"] = task.completed
        title = derived_title(task)
        if milestone.title != title:
            patch["title"] = title
        return patch
