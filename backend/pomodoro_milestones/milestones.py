# backend/pomodoro_milestones/milestones.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from .errors import ValidationError
from .utils import to_date_obj, to_iso

TASK_DUE_PREFIX = "Task Due: "
DEADLINE_TITLE = "Deadline"


class MilestoneKind(StrEnum):
    """
    Where a milestone comes from.

    - user-created: created/edited/deleted by the user
    - derived-task-due: owned by a task's due date, written only by the synchronizer
    - deadline: the project deadline, synthesized per render and never stored
    """

    USER_CREATED = "user-created"
    DERIVED_TASK_DUE = "derived-task-due"
    DEADLINE = "deadline"

    @classmethod
    def from_db(cls, raw: str | None) -> MilestoneKind:
        if not raw:
            return cls.USER_CREATED
        try:
            return cls(raw)
        except ValueError:
            return cls.USER_CREATED


@dataclass(frozen=True, slots=True)
class TaskRef:
    """Read-only view of a task, as handed over by the task subsystem."""

    id: str
    title: str
    due_date: date | None = None
    completed: bool = False

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> TaskRef:
        return cls(
            id=str(data.get("id") if data.get("id") is not None else data.get("_id")),
            title=str(data.get("title") or ""),
            due_date=to_date_obj(data.get("dueDate")),
            completed=bool(data.get("completed", False)),
        )


@dataclass(frozen=True, slots=True)
class Milestone:
    id: str
    project_id: str
    title: str
    due_date: date
    completed: bool = False
    completed_date: date | None = None
    position: int = 0
    kind: MilestoneKind = MilestoneKind.USER_CREATED
    source_task_id: str | None = None
    created_at: datetime | None = None

    @property
    def is_derived(self) -> bool:
        return self.kind == MilestoneKind.DERIVED_TASK_DUE

    @property
    def identity_key(self) -> tuple[str, str]:
        """Deduplication key. Titles never participate: they may legitimately repeat."""
        if self.is_derived and self.source_task_id is not None:
            return (MilestoneKind.DERIVED_TASK_DUE.value, self.source_task_id)
        return (self.kind.value, self.id)

    def sort_key(self) -> tuple[date, int]:
        return (self.due_date, self.position)

    def overdue(self, today: date) -> bool:
        return not self.completed and self.due_date < today

    def with_completion(self, completed: bool, today: date) -> Milestone:
        return replace(
            self,
            completed=completed,
            completed_date=today if completed else None,
        )

    # ---- record shape shared by the on-device collection and the HTTP API ----

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "dueDate": to_iso(self.due_date),
            "completed": self.completed,
            "completedDate": to_iso(self.completed_date),
            "position": self.position,
            "kind": self.kind.value,
            "sourceTaskId": self.source_task_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Milestone:
        due = to_date_obj(data.get("dueDate"))
        if due is None:
            raise ValidationError(f"milestone {data.get('id')!r} has no dueDate")
        created_raw = data.get("createdAt")
        source = data.get("sourceTaskId")
        return cls(
            id=str(data.get("id") if data.get("id") is not None else data.get("_id")),
            project_id=str(data.get("projectId") if data.get("projectId") is not None else data.get("project")),
            title=str(data.get("title") or ""),
            due_date=due,
            completed=bool(data.get("completed", False)),
            completed_date=to_date_obj(data.get("completedDate")),
            position=int(data.get("position") or 0),
            kind=MilestoneKind.from_db(data.get("kind")),
            source_task_id=str(source) if source is not None else None,
            created_at=datetime.fromisoformat(created_raw) if isinstance(created_raw, str) else None,
        )


def derived_title(task: TaskRef) -> str:
    return f"{TASK_DUE_PREFIX}{task.title.strip()}".strip()


def deadline_marker(project_id: str, deadline: date) -> Milestone:
    return Milestone(
        id=f"deadline-{project_id}",
        project_id=project_id,
        title=DEADLINE_TITLE,
        due_date=deadline,
        kind=MilestoneKind.DEADLINE,
    )


def validate_new_milestone(
    *,
    title: str | None,
    due_date: date | None,
    kind: MilestoneKind = MilestoneKind.USER_CREATED,
    source_task_id: str | None = None,
) -> str:
    """
    Check the fields of a milestone about to be stored.

    Returns the stripped title. Raises ValidationError on:
    - a blank title or a missing due date
    - an attempt to persist a deadline marker
    - a derived milestone without its source task (or a source task on any other kind)
    """
    clean = (title or "").strip()
    if not clean:
        raise ValidationError("title is required")
    if due_date is None:
        raise ValidationError("dueDate is required")
    if kind == MilestoneKind.DEADLINE:
        raise ValidationError("deadline markers are not stored", user_message="Deadlines are set on the project")
    if kind == MilestoneKind.DERIVED_TASK_DUE and not source_task_id:
        raise ValidationError("derived milestones need sourceTaskId")
    if kind != MilestoneKind.DERIVED_TASK_DUE and source_task_id:
        raise ValidationError("sourceTaskId is only allowed on derived milestones")
    return clean


def next_position(existing: list[Milestone]) -> int:
    return max((m.position for m in existing), default=-1) + 1
