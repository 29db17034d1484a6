# tests/test_bus.py

from __future__ import annotations

import logging

from pomodoro_milestones.bus import MILESTONES_CHANGED, TASKS_CHANGED, ChangeEvent, ChangeNotificationBus


def test_handlers_run_in_subscription_order() -> None:
    bus = ChangeNotificationBus()
    seen: list[tuple[str, str]] = []
    bus.subscribe(TASKS_CHANGED, lambda e: seen.append(("first", e.project_id)))
    bus.subscribe(TASKS_CHANGED, lambda e: seen.append(("second", e.project_id)))
    bus.subscribe(MILESTONES_CHANGED, lambda e: seen.append(("other-topic", e.project_id)))

    delivered = bus.publish(TASKS_CHANGED, ChangeEvent("p1"))

    assert delivered == 2
    assert seen == [("first", "p1"), ("second", "p1")]


def test_failing_handler_is_logged_and_skipped(caplog) -> None:
    bus = ChangeNotificationBus()
    seen: list[object] = []

    def broken(_event: ChangeEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(MILESTONES_CHANGED, broken)
    bus.subscribe(MILESTONES_CHANGED, lambda e: seen.append(e.payload))

    with caplog.at_level(logging.ERROR, logger="pomodoro_milestones.bus"):
        delivered = bus.publish(MILESTONES_CHANGED, ChangeEvent("p1", payload=["m1"]))

    assert delivered == 1
    assert seen == [["m1"]]
    assert "boom" in caplog.text


def test_unsubscribe_releases_only_that_handler() -> None:
    bus = ChangeNotificationBus()
    calls: list[str] = []

    def handler(_event: ChangeEvent) -> None:
        calls.append("h")

    first = bus.subscribe(TASKS_CHANGED, handler)
    bus.subscribe(TASKS_CHANGED, handler)
    assert bus.subscriber_count(TASKS_CHANGED) == 2

    first()
    first()  # second call is a no-op

    assert bus.subscriber_count(TASKS_CHANGED) == 1
    bus.publish(TASKS_CHANGED, ChangeEvent("p1"))
    assert calls == ["h"]


def test_publish_without_subscribers_is_a_noop() -> None:
    assert ChangeNotificationBus().publish("nobody-listens", ChangeEvent("p1")) == 0
