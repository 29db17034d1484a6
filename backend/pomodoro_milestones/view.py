# backend/pomodoro_milestones/view.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date

from .bus import MILESTONES_CHANGED, TASKS_CHANGED, ChangeEvent, ChangeNotificationBus
from .bus import bus as default_bus
from .config import Settings
from .errors import Forbidden, MilestoneError, ValidationError
from .layout import RenderModel, TimelineLayoutEngine
from .local_store import DeviceStorage, LocalMilestoneStore, LocalProjectSource, LocalTaskSource
from .milestones import Milestone, MilestoneKind, validate_new_milestone
from .ports import MilestoneStore, ProjectSource, TaskSource
from .remote_store import RemoteApi, RemoteMilestoneStore, RemoteProjectSource, RemoteTaskSource
from .sync import TaskDueSynchronizer
from .utils import to_date_obj

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Backend:
    store: MilestoneStore
    tasks: TaskSource
    projects: ProjectSource
    api: RemoteApi | None = None

    async def aclose(self) -> None:
        if self.api is not None:
            await self.api.aclose()


def open_backend(settings: Settings, *, signed_in: bool, api: RemoteApi | None = None) -> Backend:
    """Remote API for signed-in users, on-device files for everyone else."""
    if signed_in:
        api = api or RemoteApi.connect(
            settings.api_base_url, token=settings.api_token, timeout=settings.api_timeout
        )
        logger.info("Using remote milestone backend at %s", settings.api_base_url)
        return Backend(
            store=RemoteMilestoneStore(api),
            tasks=RemoteTaskSource(api),
            projects=RemoteProjectSource(api),
            api=api,
        )

    storage = DeviceStorage(settings.data_dir)
    logger.info("Using on-device milestone backend at %s", settings.data_dir)
    return Backend(
        store=LocalMilestoneStore(storage),
        tasks=LocalTaskSource(storage),
        projects=LocalProjectSource(storage),
    )


def _parse_due(value: date | str | None) -> date | None:
    try:
        return to_date_obj(value)
    except ValueError as e:
        raise ValidationError(
            f"dueDate is invalid: {value!r}",
            user_message="Please enter a valid due date",
        ) from e


class MilestoneView:
    """
    Entry point for the UI layer.

    - add/edit/delete/toggle user-created milestones
    - synchronize derived milestones (non-reentrant per project)
    - build the RenderModel for a project's timeline
    - listens for `tasks-changed` and answers with `milestones-changed`

    Errors are re-raised after their user-facing text is stored in `error`.
    Nothing is retried automatically.
    """

    def __init__(
        self,
        backend: Backend,
        *,
        bus: ChangeNotificationBus = default_bus,
        engine: TimelineLayoutEngine | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._backend = backend
        self._store = backend.store
        self._bus = bus
        self._engine = engine or TimelineLayoutEngine()
        self._today = today
        self._synchronizer = TaskDueSynchronizer(backend.store, backend.tasks)
        self._in_flight: dict[str, asyncio.Future[list[Milestone]]] = {}
        self._background: set[asyncio.Task[None]] = set()
        self.error: str | None = None
        self._unsubscribe: Callable[[], None] | None = bus.subscribe(TASKS_CHANGED, self._on_tasks_changed)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        signed_in: bool,
        bus: ChangeNotificationBus = default_bus,
    ) -> MilestoneView:
        engine = TimelineLayoutEngine(
            padding_days=settings.timeline_padding_days,
            min_span_days=settings.timeline_min_span_days,
            proximity_threshold=settings.timeline_proximity,
        )
        return cls(open_backend(settings, signed_in=signed_in), bus=bus, engine=engine)

    # ---- lifecycle ----

    def close(self) -> None:
        """Release the bus subscription (the view is going away)."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def aclose(self) -> None:
        self.close()
        await self.wait_idle()
        await self._backend.aclose()

    async def wait_idle(self) -> None:
        """Wait for synchronizations started from bus notifications."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @contextlib.contextmanager
    def _reporting(self, action: str) -> Iterator[None]:
        try:
            yield
        except MilestoneError as e:
            self.error = e.user_message
            logger.warning("%s failed: %s", action, e.detail)
            raise
        self.error = None

    def _publish(self, project_id: str, milestones: list[Milestone] | None = None) -> None:
        self._bus.publish(MILESTONES_CHANGED, ChangeEvent(project_id=project_id, payload=milestones))

    # ---- user actions ----

    async def add_milestone(self, project_id: str, title: str, due_date: date | str | None) -> Milestone:
        project_id = str(project_id)
        with self._reporting("add milestone"):
            due = _parse_due(due_date)
            clean = validate_new_milestone(title=title, due_date=due)
            milestone = await self._store.create(project_id, title=clean, due_date=due)
            # create() resolves once the record is committed, so list() already sees it
            milestones = await self._store.list(project_id)
        self._publish(project_id, milestones)
        return milestone

    async def delete_milestone(self, milestone_id: str) -> None:
        with self._reporting("delete milestone"):
            milestone = await self._editable(milestone_id, action="deleted")
            await self._store.remove(milestone.id)
            milestones = await self._store.list(milestone.project_id)
        self._publish(milestone.project_id, milestones)

    async def edit_milestone(
        self,
        milestone_id: str,
        *,
        title: str | None = None,
        due_date: date | str | None = None,
    ) -> Milestone:
        with self._reporting("edit milestone"):
            milestone = await self._editable(milestone_id, action="edited")
            patch = {"title": title, "due_date": _parse_due(due_date)}
            updated = await self._store.update(milestone.id, {k: v for k, v in patch.items() if v is not None})
            milestones = await self._store.list(updated.project_id)
        self._publish(updated.project_id, milestones)
        return updated

    async def toggle_completed(self, milestone_id: str) -> Milestone:
        with self._reporting("toggle milestone"):
            milestone = await self._editable(milestone_id, action="completed")
            updated = await self._store.update(milestone.id, {"completed": not milestone.completed})
            milestones = await self._store.list(updated.project_id)
        self._publish(updated.project_id, milestones)
        return updated

    async def _editable(self, milestone_id: str, *, action: str) -> Milestone:
        if str(milestone_id).startswith("deadline-"):
            raise Forbidden(
                f"deadline marker {milestone_id} is not stored",
                user_message="The deadline is set on the project itself.",
            )
        milestone = await self._store.get(str(milestone_id))
        if milestone.kind == MilestoneKind.DERIVED_TASK_DUE:
            raise Forbidden(
                f"milestone {milestone_id} is derived from task {milestone.source_task_id}",
                user_message=(
                    f"Task due milestones cannot be {action} directly. "
                    "Delete or edit the associated task instead."
                ),
            )
        return milestone

    # ---- synchronization ----

    async def synchronize(self, project_id: str) -> list[Milestone]:
        """
        Reconcile derived milestones for a project, then publish `milestones-changed`.

        A call made while another one for the same project is still running
        awaits that one instead of starting a second pass.
        """
        project_id = str(project_id)
        running = self._in_flight.get(project_id)
        if running is None:
            running = asyncio.ensure_future(self._run_sync(project_id))
            self._in_flight[project_id] = running
            running.add_done_callback(lambda fut, pid=project_id: self._sync_done(pid, fut))
        else:
            logger.debug("Synchronize for project %s already running; joining it", project_id)
        with self._reporting("synchronize milestones"):
            return await asyncio.shield(running)

    async def _run_sync(self, project_id: str) -> list[Milestone]:
        milestones = await self._synchronizer.synchronize(project_id)
        self._publish(project_id, milestones)
        return milestones

    def _sync_done(self, project_id: str, fut: asyncio.Future[list[Milestone]]) -> None:
        if self._in_flight.get(project_id) is fut:
            del self._in_flight[project_id]

    async def refresh(self, project_id: str) -> list[Milestone]:
        project_id = str(project_id)
        with self._reporting("refresh milestones"):
            milestones = await self._store.list(project_id)
        self._publish(project_id, milestones)
        return milestones

    def _on_tasks_changed(self, event: ChangeEvent) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._background_sync(event.project_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _background_sync(self, project_id: str) -> None:
        running = self._in_flight.get(project_id)
        if running is not None:
            # that pass may have read the tasks before this change; run another after it
            await asyncio.wait([running])
        try:
            await self.synchronize(project_id)
        except MilestoneError:
            # already recorded in self.error and logged by _reporting
            return
        except Exception:
            logger.exception("Background synchronize failed for project %s", project_id)

    # ---- rendering ----

    async def get_render_model(self, project_id: str, today: date | None = None) -> RenderModel:
        project_id = str(project_id)
        with self._reporting("load timeline"):
            milestones = await self._store.list(project_id)
            deadline = await self._backend.projects.deadline_of(project_id)
        return self._engine.layout(
            milestones,
            deadline,
            today or self._today(),
            project_id=project_id,
        )


class TimelineRegion:
    """
    A UI region showing one project's timeline.

    mount() subscribes to `milestones-changed` for its project and re-renders on
    each notification; unmount() releases the subscription.
    """

    def __init__(self, view: MilestoneView, project_id: str, *, bus: ChangeNotificationBus = default_bus) -> None:
        self._view = view
        self._bus = bus
        self.project_id = str(project_id)
        self.model: RenderModel | None = None
        self.renders = 0
        self._unsubscribe: Callable[[], None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    async def mount(self) -> RenderModel:
        # subscribe after the initial sync, whose own notification would trigger a second render
        await self._view.synchronize(self.project_id)
        if self._unsubscribe is None:
            self._unsubscribe = self._bus.subscribe(MILESTONES_CHANGED, self._on_milestones_changed)
        return await self.render()

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def render(self) -> RenderModel:
        self.model = await self._view.get_render_model(self.project_id)
        self.renders += 1
        return self.model

    async def settled(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_milestones_changed(self, event: ChangeEvent) -> None:
        if event.project_id != self.project_id:
            return
        task = asyncio.get_running_loop().create_task(self._rerender())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _rerender(self) -> None:
        try:
            await self.render()
        except MilestoneError:
            logger.debug("Timeline re-render for project %s failed; keeping previous model", self.project_id)
