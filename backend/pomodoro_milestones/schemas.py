from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # Wire format is camelCase (dueDate, sourceTaskId, ...); python side stays snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MilestoneCreate(CamelModel):
    title: Optional[str] = None
    due_date: Optional[date] = None
    position: Optional[int] = None
    completed: bool = False
    kind: str = "user-created"
    source_task_id: Optional[str] = None


class MilestoneUpdate(CamelModel):
    title: Optional[str] = None
    due_date: Optional[date] = None
    completed: Optional[bool] = None
    position: Optional[int] = None


class MilestoneOut(CamelModel):
    id: int
    project_id: int
    title: str
    due_date: date
    completed: bool
    completed_date: Optional[date] = None
    position: int
    kind: str
    source_task_id: Optional[str] = None
    created_at: datetime


class TaskOut(CamelModel):
    id: int
    project_id: int
    title: str
    due_date: Optional[date] = None
    completed: bool


class ProjectOut(CamelModel):
    id: int
    title: str
    status: str
    deadline: Optional[date] = None
