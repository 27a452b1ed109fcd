from __future__ import annotations

import logging
import threading

from services.scheduler import PeriodicTask


def test_task_runs_immediately_and_repeats() -> None:
    calls: list[int] = []
    reached = threading.Event()

    def action() -> None:
        calls.append(1)
        if len(calls) >= 3:
            reached.set()

    task = PeriodicTask("test-task", 0.01, action)
    task.start()
    try:
        assert reached.wait(timeout=5)
    finally:
        task.stop()

    assert task.running is False
    assert len(calls) >= 3


def test_failing_iteration_does_not_stop_the_task(caplog) -> None:
    attempts: list[int] = []
    recovered = threading.Event()

    def action() -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("provider exploded")
        recovered.set()

    task = PeriodicTask("flaky-task", 0.01, action)
    with caplog.at_level(logging.ERROR):
        task.start()
        try:
            assert recovered.wait(timeout=5)
        finally:
            task.stop()

    failures = [record for record in caplog.records if record.name == "services.scheduler"]
    assert failures
    assert getattr(failures[0], "task", None) == "flaky-task"


def test_stop_before_start_is_harmless() -> None:
    task = PeriodicTask("idle", 60, lambda: None)

    task.stop()

    assert task.running is False
