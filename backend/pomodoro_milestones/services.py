import logging
from datetime import date
from typing import List

from sqlmodel import Session, select, func

from .errors import NotFound, ValidationError
from .milestones import MilestoneKind, validate_new_milestone
from .models import Milestone, Project, Task
from .schemas import MilestoneCreate, MilestoneUpdate
from .utils import utc_now

logger = logging.getLogger(__name__)


def get_project(session: Session, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if not project:
        raise NotFound(f"project {project_id} not found", user_message="Project not found")
    return project


def get_milestone(session: Session, milestone_id: int) -> Milestone:
    m = session.get(Milestone, milestone_id)
    if not m:
        raise NotFound(f"milestone {milestone_id} not found")
    return m


def list_milestones(session: Session, project_id: int) -> List[Milestone]:
    get_project(session, project_id)
    stmt = (
        select(Milestone)
        .where(Milestone.project_id == project_id)
        .order_by(Milestone.due_date, Milestone.position)
    )
    return session.exec(stmt).all()


def list_tasks(session: Session, project_id: int) -> List[Task]:
    get_project(session, project_id)
    return session.exec(select(Task).where(Task.project_id == project_id).order_by(Task.id)).all()


def create_milestone(session: Session, project_id: int, body: MilestoneCreate) -> Milestone:
    get_project(session, project_id)

    try:
        kind = MilestoneKind(body.kind)
    except ValueError:
        raise ValidationError(f"unknown milestone kind {body.kind!r}")
    title = validate_new_milestone(
        title=body.title, due_date=body.due_date, kind=kind, source_task_id=body.source_task_id
    )

    # Highest position + 1 unless the caller picked one
    position = body.position
    if position is None:
        highest = session.exec(
            select(func.max(Milestone.position)).where(Milestone.project_id == project_id)
        ).one()
        position = highest + 1 if highest is not None else 0

    m = Milestone(
        project_id=project_id,
        title=title,
        due_date=body.due_date,
        completed=body.completed,
        completed_date=date.today() if body.completed else None,
        position=position,
        kind=kind.value,
        source_task_id=body.source_task_id,
        created_at=utc_now(),
        updated_at=utc_now(),
    )
    session.add(m)
    session.commit()
    session.refresh(m)
    logger.debug("Milestone created id=%s project=%s kind=%s", m.id, project_id, m.kind)
    return m


def update_milestone(session: Session, milestone_id: int, body: MilestoneUpdate) -> Milestone:
    m = get_milestone(session, milestone_id)
    patch = body.model_dump(exclude_unset=True)

    if "title" in patch:
        # blank titles go through the same check as on create
        m.title = validate_new_milestone(
            title=patch["title"],
            due_date=m.due_date,
            kind=MilestoneKind.from_db(m.kind),
            source_task_id=m.source_task_id,
        )
    if patch.get("due_date") is not None:
        m.due_date = patch["due_date"]
    if patch.get("position") is not None:
        m.position = patch["position"]

    if patch.get("completed") is not None:
        m.completed = patch["completed"]
        m.completed_date = date.today() if m.completed else None

    m.updated_at = utc_now()
    session.add(m)
    session.commit()
    session.refresh(m)
    logger.debug("Milestone updated id=%s fields=%s", milestone_id, sorted(patch))
    return m


def delete_milestone(session: Session, milestone_id: int) -> None:
    m = get_milestone(session, milestone_id)
    session.delete(m)
    session.commit()
    logger.debug("Milestone deleted id=%s", milestone_id)
