"""The single writer of the coordinator state."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from threading import Lock
from typing import Optional

from models.state import CoordinatorState, Mode
from storage.reading_cache import Clock, utcnow

logger = logging.getLogger(__name__)


class CommandArbiter:
    """Resolves manual and automatic writers into one commanded position.

    Every mutation runs under one lock, so an automatic decision always sees
    the mode set by the most recent manual call.
    """

    def __init__(self, clock: Clock = utcnow, initial: Optional[CoordinatorState] = None) -> None:
        self._clock = clock
        self._state = initial or CoordinatorState()
        self._lock = Lock()

    def snapshot(self) -> CoordinatorState:
        with self._lock:
            return self._state

    def current_command(self) -> bool:
        with self._lock:
            return self._state.commanded_open

    def set_manual(self, open_: bool) -> CoordinatorState:
        with self._lock:
            return self._force(open_)

    def set_auto_mode(self) -> CoordinatorState:
        with self._lock:
            if self._state.mode is not Mode.AUTO:
                self._state = replace(self._state, mode=Mode.AUTO)
                logger.info(
                    "Automatic mode enabled",
                    extra={"mode": Mode.AUTO.value, "commanded_open": self._state.commanded_open},
                )
            return self._state

    def hold_position(self) -> CoordinatorState:
        """Leave automatic mode, forcing whatever position the window is in now."""
        with self._lock:
            reported = self._state.reported_open
            target = reported if reported is not None else self._state.commanded_open
            return self._force(target)

    def apply_automatic_decision(self, open_: bool, min_interval: Optional[timedelta] = None) -> bool:
        """Apply an automatic decision while in AUTO mode.

        With ``min_interval`` the decision is also refused when the previous
        accepted one is more recent than that interval.
        """
        with self._lock:
            if self._state.mode is not Mode.AUTO:
                logger.debug(
                    "Automatic decision discarded under manual override",
                    extra={"mode": self._state.mode.value, "decision": open_},
                )
                return False
            now = self._clock()
            last = self._state.last_decision_at
            if min_interval is not None and last is not None and now - last < min_interval:
                logger.debug(
                    "Automatic decision discarded inside decision interval",
                    extra={"decision": open_},
                )
                return False
            changed = self._state.commanded_open != open_
            self._state = replace(
                self._state,
                commanded_open=open_,
                last_decision_at=now,
                last_command_changed_at=now if changed else self._state.last_command_changed_at,
            )
        logger.info(
            "Automatic decision applied",
            extra={"decision": open_, "commanded_open": open_, "reason": "changed" if changed else "unchanged"},
        )
        return True

    def report_physical_state(self, open_: bool, at: Optional[datetime] = None) -> CoordinatorState:
        with self._lock:
            self._state = replace(
                self._state,
                reported_open=open_,
                last_device_contact_at=at or self._clock(),
            )
            return self._state

    def _force(self, open_: bool) -> CoordinatorState:
        mode = Mode.forced(open_)
        self._state = replace(
            self._state,
            mode=mode,
            commanded_open=open_,
            last_command_changed_at=self._clock(),
        )
        logger.info(
            "Manual override applied",
            extra={"mode": mode.value, "commanded_open": open_},
        )
        return self._state
