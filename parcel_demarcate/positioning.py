"""Positioning collaborators: where device fixes come from."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Iterable, Protocol

from parcel_demarcate.errors import PositionUnavailable
from parcel_demarcate.models import Fix, TrackPoint

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


class PositionProvider(Protocol):
    async def get_current_position(self) -> Fix:
        """Return a high-accuracy fix or raise PositionUnavailable."""
        ...


async def acquire_fix(provider: PositionProvider, timeout_seconds: float = DEFAULT_TIMEOUT_S) -> Fix:
    """Ask ``provider`` for a fix, bounded by ``timeout_seconds``.

    Raises:
        PositionUnavailable: On timeout, device/OS errors, or provider refusal.
    """

    try:
        return await asyncio.wait_for(provider.get_current_position(), timeout=timeout_seconds)
    except PositionUnavailable:
        raise
    except TimeoutError as exc:
        raise PositionUnavailable(f"no fix within {timeout_seconds:g}s") from exc
    except OSError as exc:
        raise PositionUnavailable(str(exc) or exc.__class__.__name__) from exc


class StaticPositionProvider:
    """Always report the same fix."""

    def __init__(self, fix: Fix) -> None:
        self._fix = fix

    async def get_current_position(self) -> Fix:
        return self._fix


class UnavailablePositionProvider:
    """A device without location: every request fails."""

    def __init__(self, reason: str = "location services unavailable") -> None:
        self._reason = reason

    async def get_current_position(self) -> Fix:
        raise PositionUnavailable(self._reason)


class ReplayPositionProvider:
    """Replay recorded fixes in order, e.g. a walk exported from a phone.

    Each request consumes one fix. When the recording is exhausted the
    provider behaves like a device that lost its signal.
    """

    def __init__(self, fixes: Iterable[Fix], delay_s: float = 0.0) -> None:
        self._fixes: deque[Fix] = deque(fixes)
        self._delay_s = delay_s

    @classmethod
    def from_track_points(cls, points: Iterable[TrackPoint], delay_s: float = 0.0) -> ReplayPositionProvider:
        ordered = sorted(points, key=lambda p: p.geo_time_ms)
        return cls((p.to_fix() for p in ordered), delay_s=delay_s)

    @classmethod
    def from_track_csv(cls, csv_path: str | Path, delay_s: float = 0.0) -> ReplayPositionProvider:
        from parcel_demarcate.csv_io import load_track_points

        points, summary = load_track_points(csv_path)
        logger.info("replaying %s fixes from %s", summary.rows_parsed, csv_path)
        return cls.from_track_points(points, delay_s=delay_s)

    @property
    def remaining(self) -> int:
        return len(self._fixes)

    def peek(self) -> Fix | None:
        """The next fix without consuming it."""

        return self._fixes[0] if self._fixes else None

    async def get_current_position(self) -> Fix:
        if self._delay_s > 0:
            await asyncio.sleep(self._delay_s)
        if not self._fixes:
            raise PositionUnavailable("recorded track exhausted")
        return self._fixes.popleft()
