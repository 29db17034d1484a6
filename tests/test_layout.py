# tests/test_layout.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from pomodoro_milestones.layout import DateRange, TimelineLayoutEngine, dedupe_by_identity
from pomodoro_milestones.milestones import MilestoneKind

from .fakes import milestone

TODAY = date(2024, 6, 1)


def test_deadline_only_project_gets_synthesized_marker_and_today() -> None:
    model = TimelineLayoutEngine().layout([], date(2024, 6, 10), TODAY, project_id="p1")

    assert len(model.items) == 1
    marker = model.items[0]
    assert marker.kind == MilestoneKind.DEADLINE
    assert marker.id == "deadline-p1"
    assert marker.due_date == date(2024, 6, 10)
    assert model.deadline is marker

    assert model.range.start == date(2024, 5, 29)
    assert model.range.end == date(2024, 6, 13)
    assert model.range.days >= 7
    assert model.today_position == pytest.approx(20.0)
    assert model.today_position == model.range.position(TODAY)
    assert marker.position == pytest.approx(80.0)


def test_empty_timeline_still_has_today_and_minimum_span() -> None:
    model = TimelineLayoutEngine().layout([], None, TODAY)

    assert model.items == []
    assert model.range.start == date(2024, 5, 29)
    # 6 padded days widened to the 7 day minimum
    assert model.range.end == date(2024, 6, 5)
    assert model.today_position == pytest.approx(3 / 7 * 100)


def test_position_is_clamped_and_degenerate_range_is_centered() -> None:
    rng = DateRange(date(2024, 6, 1), date(2024, 6, 11))
    assert rng.position(date(2023, 1, 1)) == 0.0
    assert rng.position(date(2030, 1, 1)) == 100.0
    assert rng.position(date(2024, 6, 6)) == pytest.approx(50.0)

    point = DateRange(date(2024, 6, 1), date(2024, 6, 1))
    assert point.position(date(2024, 6, 1)) == 50.0
    assert point.position(date(2020, 6, 1)) == 50.0


def test_positions_are_monotonic_in_due_date() -> None:
    dues = [date(2024, 7, 4), date(2024, 5, 2), date(2024, 6, 1), date(2024, 6, 1), date(2025, 1, 1), date(2023, 12, 24)]
    items = [milestone(f"m{i}", d, position=i) for i, d in enumerate(dues)]

    model = TimelineLayoutEngine().layout(items, date(2024, 8, 15), TODAY)

    assert [i.due_date for i in model.items] == sorted(i.due_date for i in model.items)
    positions = [i.position for i in model.items]
    assert positions == sorted(positions)
    assert all(0.0 <= p <= 100.0 for p in positions + [model.today_position])


def test_ties_on_due_date_are_ordered_by_position() -> None:
    day = date(2024, 6, 3)
    items = [milestone("late", day, position=5), milestone("early", day, position=1)]

    model = TimelineLayoutEngine().layout(items, None, TODAY)

    assert [i.id for i in model.items] == ["early", "late"]
    assert model.items[0].position == model.items[1].position


def test_sides_alternate_and_z_index_favors_earlier_dates() -> None:
    items = [milestone(f"m{i}", TODAY + timedelta(days=10 * i), position=i) for i in range(4)]

    model = TimelineLayoutEngine().layout(items, None, TODAY)

    assert [i.is_top for i in model.items] == [True, False, True, False]
    assert [i.z_index for i in model.items] == [4, 3, 2, 1]


def test_today_marker_flips_away_from_coincident_milestones() -> None:
    items = [milestone("a", TODAY, position=0), milestone("b", TODAY, position=1)]

    model = TimelineLayoutEngine().layout(items, None, TODAY)

    assert model.items[0].position == pytest.approx(model.today_position)
    assert model.today_is_top != model.items[0].is_top


def test_today_marker_stays_on_top_when_nothing_is_close() -> None:
    items = [milestone("far", TODAY + timedelta(days=60))]

    model = TimelineLayoutEngine().layout(items, None, TODAY)

    assert model.today_is_top is True


def test_deadline_marker_flips_away_from_nearby_milestone() -> None:
    items = [
        milestone("a", date(2024, 6, 9), position=0),
        milestone("b", date(2024, 6, 9), position=1),
        milestone("c", date(2024, 6, 30), position=2),
    ]

    model = TimelineLayoutEngine().layout(items, date(2024, 6, 10), TODAY, project_id="p1")

    by_id = {i.id: i for i in model.items}
    deadline = by_id["deadline-p1"]
    # alternating would have put it on top; "a" is within the threshold and on top too
    assert by_id["a"].is_top is True
    assert abs(deadline.position - by_id["a"].position) < 5
    assert deadline.is_top is False


def test_deadline_not_synthesized_twice() -> None:
    tracked = milestone("deadline-p1", date(2024, 6, 10), kind=MilestoneKind.DEADLINE, title="Deadline")

    model = TimelineLayoutEngine().layout([tracked], date(2024, 6, 10), TODAY, project_id="p1")

    assert [i.kind for i in model.items] == [MilestoneKind.DEADLINE]


def test_dedupe_uses_identity_not_title() -> None:
    same_title = [
        milestone("u1", date(2024, 6, 2), title="Review"),
        milestone("u2", date(2024, 6, 3), title="Review"),
    ]
    same_task = [
        milestone("d1", date(2024, 6, 4), kind=MilestoneKind.DERIVED_TASK_DUE, source_task_id="t1"),
        milestone("d2", date(2024, 6, 4), kind=MilestoneKind.DERIVED_TASK_DUE, source_task_id="t1"),
    ]

    kept = dedupe_by_identity(same_title + same_task + same_title[:1])

    assert [m.id for m in kept] == ["u1", "u2", "d1"]


def test_overdue_flag_and_axis_labels() -> None:
    items = [
        milestone("missed", date(2024, 5, 20)),
        milestone("done", date(2024, 5, 21), completed=True),
        milestone("next", date(2024, 6, 20)),
    ]

    model = TimelineLayoutEngine().layout(items, None, TODAY)

    flags = {i.id: i.overdue for i in model.items}
    assert flags == {"missed": True, "done": False, "next": False}
    assert model.range.start_label == "May 17"
    assert model.range.end_label == "Jun 23"


def test_engine_constants_are_configurable() -> None:
    engine = TimelineLayoutEngine(padding_days=0, min_span_days=0, proximity_threshold=1.0)
    items = [milestone("a", date(2024, 6, 11))]

    model = engine.layout(items, None, TODAY)

    assert model.range == DateRange(TODAY, date(2024, 6, 11))
    assert model.today_position == 0.0
    assert model.items[0].position == 100.0
