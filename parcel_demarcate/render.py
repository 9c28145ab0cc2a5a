"""Map rendering of a demarcation in progress.

``MapScene`` is a plain description of what to draw for a point snapshot.
``FoliumMapAdapter`` draws scenes onto a folium map it owns; it only ever
reads snapshots and never mutates a session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

import folium

from parcel_demarcate.models import MIN_POLYGON_POINTS, GpsPoint

if TYPE_CHECKING:
    from parcel_demarcate.session import CaptureSession

logger = logging.getLogger(__name__)

DEFAULT_CENTER: tuple[float, float] = (0.0, 0.0)
DEFAULT_ZOOM = 17


@dataclass(frozen=True, slots=True)
class Marker:
    label: str
    latitude: float
    longitude: float
    accuracy_m: float


@dataclass(frozen=True, slots=True)
class MapScene:
    """What to draw for one snapshot of points."""

    markers: tuple[Marker, ...]
    line: tuple[tuple[float, float], ...]
    polygon: tuple[tuple[float, float], ...]

    @classmethod
    def from_points(cls, points: Sequence[GpsPoint]) -> MapScene:
        """Markers labelled 1..n, a line once there are 2 points, a polygon from 3."""

        coords = tuple((p.latitude, p.longitude) for p in points)
        markers = tuple(
            Marker(label=str(i), latitude=p.latitude, longitude=p.longitude, accuracy_m=p.accuracy_m)
            for i, p in enumerate(points, start=1)
        )
        return cls(
            markers=markers,
            line=coords if len(coords) >= 2 else (),
            polygon=coords if len(coords) >= MIN_POLYGON_POINTS else (),
        )

    @property
    def empty(self) -> bool:
        return not self.markers

    def center(self) -> tuple[float, float] | None:
        if not self.markers:
            return None
        lat = sum(m.latitude for m in self.markers) / len(self.markers)
        lon = sum(m.longitude for m in self.markers) / len(self.markers)
        return lat, lon

    def bounds(self) -> list[list[float]] | None:
        """[[south, west], [north, east]] or None when empty."""

        if not self.markers:
            return None
        lats = [m.latitude for m in self.markers]
        lons = [m.longitude for m in self.markers]
        return [[min(lats), min(lons)], [max(lats), max(lons)]]


def _remove_children(element: folium.FeatureGroup) -> None:
    # branca keeps children in a private ordered dict and has no public remove
    element._children.clear()


class FoliumMapAdapter:
    """Draw demarcation scenes on a folium map.

    The adapter owns the map and a single feature group holding everything it
    drew; redraws replace that group only.
    """

    def __init__(
        self,
        center: tuple[float, float] = DEFAULT_CENTER,
        zoom_start: int = DEFAULT_ZOOM,
        color: str = "#2e7d32",
    ) -> None:
        self._color = color
        self._map = folium.Map(location=list(center), zoom_start=zoom_start, control_scale=True)
        self._layer = self._new_layer()
        self._scene = MapScene.from_points(())
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def map(self) -> folium.Map:
        return self._map

    @property
    def scene(self) -> MapScene:
        return self._scene

    def _new_layer(self) -> folium.FeatureGroup:
        layer = folium.FeatureGroup(name="Demarcation", show=True)
        layer.add_to(self._map)
        return layer

    def attach(self, session: CaptureSession) -> None:
        """Redraw after every change of ``session``."""

        self.detach()
        self._unsubscribe = session.subscribe(self.render_points)
        self.render_points(session.points)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def render_points(self, points: Sequence[GpsPoint]) -> MapScene:
        scene = MapScene.from_points(points)
        self.update(scene)
        return scene

    def clear(self) -> None:
        _remove_children(self._layer)
        self._scene = MapScene.from_points(())

    def update(self, scene: MapScene) -> None:
        self.clear()
        self._scene = scene

        if scene.polygon:
            folium.Polygon(
                locations=[list(c) for c in scene.polygon],
                color=self._color,
                weight=2,
                fill=True,
                fill_opacity=0.25,
            ).add_to(self._layer)
        if scene.line:
            folium.PolyLine(locations=[list(c) for c in scene.line], color=self._color, weight=3).add_to(self._layer)

        for m in scene.markers:
            folium.Marker(
                location=[m.latitude, m.longitude],
                tooltip=f"Point {m.label} ({m.accuracy_m:.1f} m)",
                icon=folium.DivIcon(html=f'<div style="font-weight:bold;color:{self._color}">{m.label}</div>'),
            ).add_to(self._layer)

        center = scene.center()
        if center is not None:
            self._map.location = list(center)
        logger.debug("rendered %s markers", len(scene.markers))
