"""Errors raised while capturing and saving demarcations."""

from __future__ import annotations


class DemarcationError(Exception):
    """Base class for demarcation failures."""


class PositionUnavailable(DemarcationError):
    """The device could not provide a location fix (permission, signal, timeout)."""


class DemarcationValidationError(DemarcationError, ValueError):
    """A demarcation cannot be saved in its current state."""


class InsufficientPoints(DemarcationValidationError):
    """Fewer points than needed to close a polygon."""

    def __init__(self, count: int, required: int) -> None:
        super().__init__(f"at least {required} points are needed to define an area (have {count})")
        self.count = count
        self.required = required


class MissingProducer(DemarcationValidationError):
    """No producer selected for the parcel."""


class MissingParcelName(DemarcationValidationError):
    """The parcel has no name."""
