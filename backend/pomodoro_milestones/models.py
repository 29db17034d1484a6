from datetime import datetime, date
from typing import Optional

from sqlmodel import SQLModel, Field, Relationship

from .utils import utc_now


# =========================
# Project
# =========================
class Project(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    status: str = "open"
    description: Optional[str] = None
    deadline: Optional[date] = None
    position: int = 0

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    tasks: list["Task"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    milestones: list["Milestone"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )


# =========================
# Task (read-only here; owned by the task subsystem)
# =========================
class Task(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)

    title: str
    completed: bool = False
    due_date: Optional[date] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    project: Optional[Project] = Relationship(back_populates="tasks")


# =========================
# Milestone
# =========================
class Milestone(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="project.id", index=True)

    title: str
    due_date: date
    completed: bool = False
    completed_date: Optional[date] = None
    position: int = 0

    # user-created | derived-task-due (deadline markers are never stored)
    kind: str = "user-created"
    source_task_id: Optional[str] = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    project: Optional[Project] = Relationship(back_populates="milestones")
