# backend/pomodoro_milestones/layout.py

"""
Timeline layout: a pure function from (milestones, project deadline, today)
to a RenderModel of positions in [0, 100] along a horizontal axis.

No I/O, no clock reads: `today` is always passed in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from .milestones import Milestone, MilestoneKind, deadline_marker
from .utils import format_day


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def position(self, d: date) -> float:
        """Map a day onto [0, 100]. Dates outside the range are clamped; a zero-length range maps to 50."""
        span = self.days
        if span <= 0:
            return 50.0
        pct = (d - self.start).days / span * 100.0
        return min(max(pct, 0.0), 100.0)

    @property
    def start_label(self) -> str:
        return format_day(self.start)

    @property
    def end_label(self) -> str:
        return format_day(self.end)


@dataclass(frozen=True, slots=True)
class TimelineItem:
    id: str
    title: str
    due_date: date
    position: float
    is_top: bool
    z_index: int
    kind: MilestoneKind
    completed: bool
    overdue: bool

    @property
    def is_deadline(self) -> bool:
        return self.kind == MilestoneKind.DEADLINE


@dataclass(frozen=True, slots=True)
class RenderModel:
    items: list[TimelineItem]
    today: date
    today_position: float
    today_is_top: bool
    range: DateRange

    @property
    def deadline(self) -> TimelineItem | None:
        for item in self.items:
            if item.is_deadline:
                return item
        return None


def dedupe_by_identity(milestones: Iterable[Milestone]) -> list[Milestone]:
    """Drop repeated records by identity key (sourceTaskId for derived, id otherwise). First one wins."""
    seen: set[tuple[str, str]] = set()
    out: list[Milestone] = []
    for m in milestones:
        key = m.identity_key
        if key in seen:
            continue
        seen.add(key)
        out.append(m)
    return out


class TimelineLayoutEngine:
    def __init__(
        self,
        *,
        padding_days: int = 3,
        min_span_days: int = 7,
        proximity_threshold: float = 5.0,
    ) -> None:
        self.padding = timedelta(days=padding_days)
        self.min_span = timedelta(days=min_span_days)
        self.proximity_threshold = proximity_threshold

    def date_range(self, dates: Sequence[date], today: date) -> DateRange:
        raw_start = min([*dates, today])
        raw_end = max([*dates, today])
        start = raw_start - self.padding
        end = raw_end + self.padding
        if end - start < self.min_span:
            end = start + self.min_span
        return DateRange(start, end)

    def layout(
        self,
        milestones: Sequence[Milestone],
        project_deadline: date | None,
        today: date,
        *,
        project_id: str = "",
    ) -> RenderModel:
        entries = list(milestones)

        # A deadline is synthesized only when nothing already tracks it.
        if project_deadline is not None and not any(m.kind == MilestoneKind.DEADLINE for m in entries):
            owner = project_id or (entries[0].project_id if entries else "")
            entries.append(deadline_marker(owner, project_deadline))

        ordered = sorted(dedupe_by_identity(entries), key=Milestone.sort_key)
        rng = self.date_range([m.due_date for m in ordered], today)

        positions = [rng.position(m.due_date) for m in ordered]
        # ordered is sorted by date, so positions are already non-decreasing
        tops = [i % 2 == 0 for i in range(len(ordered))]

        today_position = rng.position(today)
        today_is_top = True
        near = self._first_near(today_position, positions)
        if near is not None:
            today_is_top = not tops[near]

        for idx, m in enumerate(ordered):
            if m.kind != MilestoneKind.DEADLINE:
                continue
            near = self._first_near(positions[idx], positions, skip=idx)
            if near is not None:
                tops[idx] = not tops[near]

        count = len(ordered)
        items = [
            TimelineItem(
                id=m.id,
                title=m.title,
                due_date=m.due_date,
                position=positions[idx],
                is_top=tops[idx],
                z_index=count - idx,
                kind=m.kind,
                completed=m.completed,
                overdue=m.overdue(today),
            )
            for idx, m in enumerate(ordered)
        ]

        return RenderModel(
            items=items,
            today=today,
            today_position=today_position,
            today_is_top=today_is_top,
            range=rng,
        )

    def _first_near(self, position: float, positions: Sequence[float], *, skip: int = -1) -> int | None:
        for idx, other in enumerate(positions):
            if idx == skip:
                continue
            if abs(other - position) < self.proximity_threshold:
                return idx
        return None
