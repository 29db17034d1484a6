"""Milestone reconciliation and timeline layout for the Pomodoro project tracker."""

from .bus import MILESTONES_CHANGED, TASKS_CHANGED, ChangeEvent, ChangeNotificationBus, bus
from .errors import BackendUnavailable, Forbidden, MilestoneError, NotFound, ValidationError
from .layout import RenderModel, TimelineItem, TimelineLayoutEngine
from .milestones import Milestone, MilestoneKind, TaskRef
from .sync import TaskDueSynchronizer
from .view import MilestoneView, TimelineRegion, open_backend

__version__ = "0.1.0"
