"""State machine tests for the command arbiter."""

from __future__ import annotations

import random
import threading
from datetime import timedelta

import pytest

from helpers import START
from models.state import Mode
from services.arbiter import CommandArbiter


def test_initial_state_is_auto_and_closed(clock) -> None:
    state = CommandArbiter(clock=clock).snapshot()

    assert state.mode is Mode.AUTO
    assert state.commanded_open is False
    assert state.reported_open is None
    assert state.last_decision_at is None
    assert state.last_updated is None


@pytest.mark.parametrize("open_, mode", [(True, Mode.FORCE_OPEN), (False, Mode.FORCE_CLOSE)])
def test_set_manual_forces_mode_and_command(clock, open_, mode) -> None:
    arbiter = CommandArbiter(clock=clock)

    state = arbiter.set_manual(open_)

    assert state.mode is mode
    assert state.commanded_open is open_
    assert state.last_command_changed_at == START
    assert arbiter.current_command() is open_


def test_manual_override_beats_automatic_decision(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.set_manual(True)

    assert arbiter.apply_automatic_decision(False) is False
    assert arbiter.current_command() is True
    assert arbiter.snapshot().last_decision_at is None


def test_set_auto_mode_keeps_commanded_position(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.set_manual(True)
    clock.advance(5)

    state = arbiter.set_auto_mode()

    assert state.mode is Mode.AUTO
    assert state.commanded_open is True
    assert state.last_command_changed_at == START


def test_automatic_decision_applies_in_auto_mode(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    clock.advance(30)

    assert arbiter.apply_automatic_decision(True) is True

    state = arbiter.snapshot()
    assert state.commanded_open is True
    assert state.last_decision_at == clock()
    assert state.last_command_changed_at == clock()


def test_unchanged_automatic_decision_keeps_change_timestamp(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.apply_automatic_decision(True)
    clock.advance(900)

    arbiter.apply_automatic_decision(True)

    state = arbiter.snapshot()
    assert state.last_decision_at == clock()
    assert state.last_command_changed_at == START


def test_automatic_decision_inside_interval_is_refused(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    interval = timedelta(seconds=900)
    assert arbiter.apply_automatic_decision(True, min_interval=interval) is True

    clock.advance(899)
    assert arbiter.apply_automatic_decision(False, min_interval=interval) is False
    state = arbiter.snapshot()
    assert state.commanded_open is True
    assert state.last_decision_at == START

    clock.advance(1)
    assert arbiter.apply_automatic_decision(False, min_interval=interval) is True
    assert arbiter.snapshot().last_decision_at == clock()


def test_racing_decision_ticks_apply_once_per_interval(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    interval = timedelta(seconds=900)
    results: list[bool] = []
    results_lock = threading.Lock()

    def tick() -> None:
        applied = arbiter.apply_automatic_decision(True, min_interval=interval)
        with results_lock:
            results.append(applied)

    workers = [threading.Thread(target=tick) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=5)

    assert results.count(True) == 1
    assert arbiter.snapshot().last_decision_at == START


def test_report_physical_state_never_changes_policy(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.set_manual(False)
    clock.advance(10)

    state = arbiter.report_physical_state(True, at=clock())

    assert state.reported_open is True
    assert state.last_device_contact_at == clock()
    assert state.mode is Mode.FORCE_CLOSE
    assert state.commanded_open is False
    assert state.in_sync is False
    assert state.last_updated == clock()


def test_hold_position_freezes_reported_position(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.report_physical_state(True)

    state = arbiter.hold_position()

    assert state.mode is Mode.FORCE_OPEN
    assert state.commanded_open is True


def test_hold_position_without_report_uses_commanded(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.apply_automatic_decision(True)

    state = arbiter.hold_position()

    assert state.mode is Mode.FORCE_OPEN
    assert state.commanded_open is True


def test_snapshots_are_not_affected_by_later_writes(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    before = arbiter.snapshot()

    arbiter.set_manual(True)

    assert before.commanded_open is False
    assert before.mode is Mode.AUTO


def test_random_call_sequences_preserve_invariants(clock) -> None:
    rng = random.Random(1234)
    arbiter = CommandArbiter(clock=clock)
    forced: bool | None = None

    for _ in range(2000):
        clock.advance(rng.randint(0, 120))
        before = arbiter.snapshot()
        operation = rng.choice(["manual", "auto", "decision", "report", "hold"])
        if operation == "manual":
            forced = rng.random() < 0.5
            arbiter.set_manual(forced)
        elif operation == "auto":
            forced = None
            arbiter.set_auto_mode()
        elif operation == "decision":
            arbiter.apply_automatic_decision(rng.random() < 0.5)
        elif operation == "report":
            arbiter.report_physical_state(rng.random() < 0.5)
        else:
            arbiter.hold_position()
            forced = arbiter.current_command()

        state = arbiter.snapshot()
        assert state.mode in set(Mode)
        if forced is not None:
            assert state.commanded_open is forced
        if before.mode is not Mode.AUTO and operation == "decision":
            assert state == before
        if state.last_decision_at != before.last_decision_at:
            assert operation == "decision"
            assert before.mode is Mode.AUTO


def test_concurrent_automatic_decisions_never_override_manual(clock) -> None:
    arbiter = CommandArbiter(clock=clock)
    arbiter.set_manual(True)
    stop = threading.Event()
    violations: list[bool] = []

    def automation() -> None:
        while not stop.is_set():
            arbiter.apply_automatic_decision(False)

    def device() -> None:
        while not stop.is_set():
            arbiter.report_physical_state(False)
            if arbiter.current_command() is not True:
                violations.append(True)

    workers = [threading.Thread(target=automation) for _ in range(4)]
    workers.append(threading.Thread(target=device))
    for worker in workers:
        worker.start()
    try:
        for _ in range(500):
            assert arbiter.current_command() is True
    finally:
        stop.set()
        for worker in workers:
            worker.join(timeout=5)

    assert not violations
    assert arbiter.snapshot().mode is Mode.FORCE_OPEN
