import logging
from typing import List

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sqlmodel import Session

from . import services
from .config import get_settings
from .db import init_db, get_session
from .errors import MilestoneError
from .logging_setup import setup_logging
from .schemas import MilestoneCreate, MilestoneOut, MilestoneUpdate, ProjectOut, TaskOut

logger = logging.getLogger(__name__)

app = FastAPI(title="Pomodoro Milestones API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    settings = get_settings()
    setup_logging(level=settings.log_level, log_dir=settings.log_dir)
    init_db()
    logger.info("Milestone API ready db=%s", settings.database_url)


@app.exception_handler(MilestoneError)
async def milestone_error_handler(request: Request, exc: MilestoneError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "message": exc.user_message})


# -----------------------
# Projects / tasks (read-only boundary)
# -----------------------
@app.get("/projects/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, session: Session = Depends(get_session)):
    return services.get_project(session, project_id)


@app.get("/projects/{project_id}/tasks", response_model=List[TaskOut])
def list_tasks(project_id: int, session: Session = Depends(get_session)):
    return services.list_tasks(session, project_id)


# -----------------------
# Milestones
# -----------------------
@app.get("/projects/{project_id}/milestones", response_model=List[MilestoneOut])
def list_milestones(project_id: int, session: Session = Depends(get_session)):
    return services.list_milestones(session, project_id)


@app.post("/projects/{project_id}/milestones", response_model=MilestoneOut, status_code=201)
def create_milestone(project_id: int, body: MilestoneCreate, session: Session = Depends(get_session)):
    return services.create_milestone(session, project_id, body)


@app.get("/milestones/{milestone_id}", response_model=MilestoneOut)
def get_milestone(milestone_id: int, session: Session = Depends(get_session)):
    return services.get_milestone(session, milestone_id)


@app.put("/milestones/{milestone_id}", response_model=MilestoneOut)
def update_milestone(milestone_id: int, body: MilestoneUpdate, session: Session = Depends(get_session)):
    return services.update_milestone(session, milestone_id, body)


@app.delete("/milestones/{milestone_id}")
def delete_milestone(milestone_id: int, session: Session = Depends(get_session)):
    services.delete_milestone(session, milestone_id)
    return {"ok": True}
