# backend/pomodoro_milestones/errors.py
from __future__ import annotations


class MilestoneError(Exception):
    """Base class for every error surfaced by stores, the synchronizer and the view."""

    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail or self.default_message
        self.user_message = user_message or self.default_message


class NotFound(MilestoneError):
    status_code = 404
    default_message = "Milestone not found"


class Forbidden(MilestoneError):
    status_code = 403
    default_message = (
        "Task due milestones cannot be deleted directly. "
        "Delete or edit the associated task to remove this milestone."
    )


class ValidationError(MilestoneError):
    status_code = 400
    default_message = "Title and due date are required"


class BackendUnavailable(MilestoneError):
    status_code = 503
    default_message = "Failed to reach milestone storage. Please try again."
