"""Exceptions raised by the coordinator services."""

from __future__ import annotations


class CoordinatorError(Exception):
    """Base class for coordinator failures."""


class FetchError(CoordinatorError):
    """The environmental data provider could not be reached or parsed."""


class UnavailableDataError(CoordinatorError, KeyError):
    """No reading was ever cached for the requested location."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0]) if self.args else ""


class InvalidCommandError(CoordinatorError, ValueError):
    """A manual control request carried neither an action nor a mode switch."""
