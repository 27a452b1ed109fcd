"""Coordinator state shared with readers as immutable snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    """Control regime deciding which writer governs the commanded position."""

    AUTO = "AUTO"
    FORCE_OPEN = "FORCE_OPEN"
    FORCE_CLOSE = "FORCE_CLOSE"

    @classmethod
    def forced(cls, open_: bool) -> "Mode":
        return cls.FORCE_OPEN if open_ else cls.FORCE_CLOSE


@dataclass(frozen=True, slots=True)
class CoordinatorState:
    """Point-in-time copy of the arbiter's state.

    ``commanded_open`` is authoritative; ``reported_open`` is whatever the
    device last confirmed and is ``None`` until it reports for the first time.
    """

    mode: Mode = Mode.AUTO
    commanded_open: bool = False
    reported_open: Optional[bool] = None
    last_command_changed_at: Optional[datetime] = None
    last_decision_at: Optional[datetime] = None
    last_device_contact_at: Optional[datetime] = None

    @property
    def auto_mode(self) -> bool:
        return self.mode is Mode.AUTO

    @property
    def in_sync(self) -> bool:
        return self.reported_open is not None and self.reported_open == self.commanded_open

    @property
    def last_updated(self) -> Optional[datetime]:
        stamps = [
            stamp
            for stamp in (self.last_command_changed_at, self.last_device_contact_at)
            if stamp is not None
        ]
        return max(stamps) if stamps else None
