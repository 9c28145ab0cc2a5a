"""Point capture session: the in-progress demarcation of one parcel.

A session owns the ordered vertex list and the capture mode. Every mutation
is followed, synchronously, by a "points changed" call to each subscriber
with an immutable snapshot, so renderers never touch the list itself.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable

from parcel_demarcate.errors import (
    InsufficientPoints,
    MissingParcelName,
    MissingProducer,
    PositionUnavailable,
)
from parcel_demarcate.geo import AreaMethod, Measurement, measure
from parcel_demarcate.models import (
    LOW_ACCURACY_THRESHOLD_M,
    MANUAL_ACCURACY_M,
    MIN_POLYGON_POINTS,
    CaptureMode,
    DemarcationRecord,
    Fix,
    GpsPoint,
)
from parcel_demarcate.notify import Level, LoggingNotifier, Notifier
from parcel_demarcate.positioning import PositionProvider, acquire_fix
from parcel_demarcate.scheduling import AsyncioScheduler, RepeatingTask, Scheduler
from parcel_demarcate.store import DemarcationStore

logger = logging.getLogger(__name__)

PointsListener = Callable[[tuple[GpsPoint, ...]], None]
SavedListener = Callable[[DemarcationRecord], None]

KEEP_LATE_FIXES = "keep"
DISCARD_LATE_FIXES = "discard"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Parameters of a capture session."""

    walking_interval_seconds: float = 5.0
    position_timeout_seconds: float = 10.0
    manual_accuracy_m: float = MANUAL_ACCURACY_M
    low_accuracy_threshold_m: float = LOW_ACCURACY_THRESHOLD_M
    min_points: int = MIN_POLYGON_POINTS
    # What to do with a walking-mode fix that arrives after walking stopped:
    # "keep" appends it (it is still a real reading), "discard" drops it.
    late_fix_policy: str = KEEP_LATE_FIXES
    area_method: AreaMethod = AreaMethod.REFERENCE_LATITUDE
    # Require producer id and parcel name on save.
    require_producer: bool = False

    def __post_init__(self) -> None:
        if self.late_fix_policy not in (KEEP_LATE_FIXES, DISCARD_LATE_FIXES):
            raise ValueError(f"unknown late_fix_policy: {self.late_fix_policy!r}")
        if self.walking_interval_seconds <= 0:
            raise ValueError("walking_interval_seconds must be positive")
        if self.position_timeout_seconds <= 0:
            raise ValueError("position_timeout_seconds must be positive")


def _new_point_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CaptureSession:
    """Capture polygon vertices manually or by walking the boundary.

    Args:
        positioning: Device position source. Without one, device captures fail
            like a phone with location disabled.
        scheduler: Timer used by walking mode.
        notifier: Receives user-facing messages.
        store: Persistence used by ``save_demarcation``.
        config: Session parameters.
        clock: Returns the current timezone-aware time.
    """

    def __init__(
        self,
        positioning: PositionProvider | None = None,
        scheduler: Scheduler | None = None,
        notifier: Notifier | None = None,
        store: DemarcationStore | None = None,
        config: SessionConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._positioning = positioning
        self._scheduler = scheduler or AsyncioScheduler()
        self._notifier = notifier or LoggingNotifier()
        self._store = store
        self._config = config or SessionConfig()
        self._clock = clock

        self._points: list[GpsPoint] = []
        self._mode = CaptureMode.MANUAL
        self._timer: RepeatingTask | None = None
        # bumped every time walking starts; lets late fixes be matched to their walk
        self._walk_generation = 0
        self._acquiring = asyncio.Lock()
        self._listeners: list[PointsListener] = []
        self._saved_listeners: list[SavedListener] = []
        self._closed = False

    # -- read-only views ---------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def points(self) -> tuple[GpsPoint, ...]:
        return tuple(self._points)

    @property
    def mode(self) -> CaptureMode:
        return self._mode

    @property
    def is_walking(self) -> bool:
        return self._mode is CaptureMode.WALKING

    @property
    def closed(self) -> bool:
        return self._closed

    def measurement(self) -> Measurement:
        return measure(self._points, self._config.area_method)

    @property
    def area_ha(self) -> float:
        return self.measurement().area_ha

    @property
    def perimeter_m(self) -> float:
        return self.measurement().perimeter_m

    # -- listeners ---------------------------------------------------------

    def subscribe(self, listener: PointsListener) -> Callable[[], None]:
        """Call ``listener(snapshot)`` after every change. Returns an unsubscribe function."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_saved(self, listener: SavedListener) -> None:
        self._saved_listeners.append(listener)

    def _changed(self) -> None:
        snapshot = tuple(self._points)
        for listener in list(self._listeners):
            listener(snapshot)

    def _notify(self, level: Level, message: str) -> None:
        self._notifier.notify(level, message)

    # -- point operations --------------------------------------------------

    async def add_point(self, lat: float | None = None, lng: float | None = None) -> GpsPoint | None:
        """Append a vertex.

        With both coordinates the point is placed by hand at the nominal manual
        accuracy. Otherwise the current device position is requested.

        Returns:
            The new point, or None if no point could be captured. Failures are
            reported through the notifier and leave the session unchanged.
        """

        if lat is not None and lng is not None:
            return self._append(Fix(latitude=lat, longitude=lng, accuracy_m=self._config.manual_accuracy_m))

        async with self._acquiring:
            fix = await self._request_fix()
            if fix is None:
                return None
            return self._append(fix)

    async def settle(self) -> None:
        """Wait until no device acquisition is in flight."""

        async with self._acquiring:
            pass

    async def _request_fix(self) -> Fix | None:
        try:
            if self._positioning is None:
                raise PositionUnavailable("no positioning available")
            return await acquire_fix(self._positioning, self._config.position_timeout_seconds)
        except PositionUnavailable as exc:
            logger.warning("position unavailable: %s", exc)
            self._notify(Level.ERROR, "Could not capture location")
            return None

    def _append(self, fix: Fix) -> GpsPoint | None:
        try:
            point = GpsPoint(
                point_id=_new_point_id(),
                latitude=fix.latitude,
                longitude=fix.longitude,
                accuracy_m=fix.accuracy_m,
                captured_at=self._clock(),
            )
        except ValueError as exc:
            logger.warning("rejected fix %s: %s", fix, exc)
            self._notify(Level.ERROR, f"Invalid coordinates: {exc}")
            return None

        self._points.append(point)
        index = len(self._points)
        if point.accuracy_m > self._config.low_accuracy_threshold_m:
            self._notify(Level.WARNING, f"Low GPS accuracy: {point.accuracy_m:.1f} m")
        self._notify(Level.SUCCESS, f"Point {index} added")
        self._changed()
        return point

    def remove_last_point(self) -> GpsPoint | None:
        """Drop the most recent vertex. No-op on an empty session."""

        if not self._points:
            return None
        point = self._points.pop()
        self._notify(Level.INFO, "Last point removed")
        self._changed()
        return point

    def clear_all_points(self) -> None:
        self._points.clear()
        self._notify(Level.INFO, "All points cleared")
        self._changed()

    # -- capture mode ------------------------------------------------------

    def set_mode(self, mode: CaptureMode) -> None:
        """Switch capture mode. Points are kept; walking starts/stops its timer."""

        if mode is self._mode:
            return
        if mode is CaptureMode.WALKING:
            self._start_walking()
        else:
            self._stop_walking()

    def toggle_walking_mode(self) -> CaptureMode:
        self.set_mode(CaptureMode.MANUAL if self.is_walking else CaptureMode.WALKING)
        return self._mode

    def _start_walking(self) -> None:
        if self._closed:
            raise RuntimeError("capture session is closed")
        self._walk_generation += 1
        generation = self._walk_generation
        self._timer = self._scheduler.call_every(
            self._config.walking_interval_seconds,
            lambda: self._walking_tick(generation),
        )
        self._mode = CaptureMode.WALKING
        logger.debug("walking started (generation %s)", generation)
        self._notify(Level.SUCCESS, "Walking mode started")

    def _stop_walking(self) -> None:
        self._cancel_timer()
        self._mode = CaptureMode.MANUAL
        self._notify(Level.INFO, "Walking mode stopped")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _walking_tick(self, generation: int) -> GpsPoint | None:
        if self._acquiring.locked():
            logger.debug("walking tick skipped: previous acquisition still in flight")
            return None

        async with self._acquiring:
            fix = await self._request_fix()
            if fix is None:
                return None

            stale = not self.is_walking or generation != self._walk_generation
            if stale and self._config.late_fix_policy == DISCARD_LATE_FIXES:
                logger.info("discarding fix that arrived after walking stopped: %s", fix)
                return None
            return self._append(fix)

    # -- save --------------------------------------------------------------

    async def save_demarcation(self, producer_id: str | None = None, name: str = "") -> DemarcationRecord:
        """Validate the polygon and hand it to the store.

        A saved session starts over with no points, so the same parcel cannot be
        stored twice by accident. Waits for any device acquisition in flight.

        Raises:
            MissingProducer: ``require_producer`` is set and no producer given.
            MissingParcelName: ``require_producer`` is set and the name is blank.
            InsufficientPoints: Fewer than ``min_points`` vertices.
        """

        if self._config.require_producer:
            if not producer_id:
                self._notify(Level.ERROR, "Select a producer before saving")
                raise MissingProducer("no producer selected")
            if not name.strip():
                self._notify(Level.ERROR, "Enter a name for the parcel")
                raise MissingParcelName("parcel name is empty")

        await self.settle()
        count = len(self._points)
        if count < self._config.min_points:
            self._notify(Level.ERROR, f"At least {self._config.min_points} points are needed to define an area")
            raise InsufficientPoints(count, self._config.min_points)

        metrics = self.measurement()
        record = DemarcationRecord(
            points=tuple(self._points),
            area_ha=metrics.area_ha,
            perimeter_m=metrics.perimeter_m,
            created_at=self._clock(),
            producer_id=producer_id,
            name=name.strip(),
        )
        if self._store is not None:
            try:
                record_id = self._store.save(record)
            except OSError:
                self._notify(Level.ERROR, "Error saving parcel")
                raise
            logger.info("demarcation stored as %s", record_id)

        self._points.clear()
        self._notify(Level.SUCCESS, "Parcel saved")
        self._changed()
        for listener in list(self._saved_listeners):
            listener(record)
        return record

    # -- teardown ----------------------------------------------------------

    def close(self) -> None:
        """Stop any walking timer. The session keeps its points but cannot walk again."""

        if self._closed:
            return
        self._cancel_timer()
        self._mode = CaptureMode.MANUAL
        self._closed = True

    async def __aenter__(self) -> CaptureSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
