"""CSV input/output: recorded tracks, vertex lists and point exports."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from parcel_demarcate.models import MANUAL_ACCURACY_M, GpsPoint, TrackPoint
from parcel_demarcate.timeutils import dt_from_epoch_ms, to_local

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _summary(rows_total: int, rows_parsed: int, fieldnames: Sequence[str], csv_path: Path) -> CsvSummary:
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=rows_parsed,
        rows_skipped=rows_total - rows_parsed,
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("%s: skipped %s unparseable rows", csv_path, summary.rows_skipped)
    return summary


def load_track_points(csv_path: str | Path) -> tuple[list[TrackPoint], CsvSummary]:
    """Load a recorded track export into memory.

    The export uses these columns (observed):
      - geoTime: epoch milliseconds
      - latitude/longitude: decimal degrees
      - altitude/speed/horizontalAccuracy/locationType, etc.

    Args:
        csv_path: Path to the exported CSV.

    Returns:
        (points, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[TrackPoint] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    TrackPoint(
                        geo_time_ms=_parse_int(row["geoTime"]),
                        latitude=_parse_float(row["latitude"]),
                        longitude=_parse_float(row["longitude"]),
                        altitude_m=_parse_float(row.get("altitude", "0") or "0"),
                        speed_mps=_parse_float(row.get("speed", "0") or "0"),
                        horizontal_accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
                        location_type=_parse_int(row.get("locationType", "0") or "0"),
                    )
                )
            except (KeyError, ValueError, TypeError, AttributeError):
                continue

    return parsed, _summary(rows_total, len(parsed), fieldnames, p)


def load_vertices(csv_path: str | Path) -> tuple[list[GpsPoint], CsvSummary]:
    """Load a hand-made vertex list (``latitude,longitude[,accuracy]``).

    Rows are polygon vertices in order. Accuracy defaults to the nominal
    manual-placement value.

    Raises:
        KeyError: If the latitude/longitude columns are missing.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[GpsPoint] = []

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        missing = {"latitude", "longitude"} - set(fieldnames)
        if missing:
            raise KeyError(f"CSV is missing required columns: {sorted(missing)}. Found: {list(fieldnames)}")

        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    GpsPoint(
                        point_id=str(rows_total),
                        latitude=_parse_float(row["latitude"]),
                        longitude=_parse_float(row["longitude"]),
                        accuracy_m=_parse_float(row.get("accuracy") or str(MANUAL_ACCURACY_M)),
                    )
                )
            except (ValueError, TypeError, AttributeError):
                # damaged row, blank line or out-of-range coordinate
                continue

    return parsed, _summary(rows_total, len(parsed), fieldnames, p)


def export_points_csv(points: Iterable[GpsPoint], out_path: str | Path, tz_name: str) -> int:
    """Export captured points to a human-readable CSV.

    Output columns:
        - index: 1-based vertex number (the map label)
        - time_local: ISO datetime in ``tz_name``
        - point_id, latitude, longitude, accuracy_m, low_accuracy

    Returns:
        Number of rows written.
    """

    p = Path(out_path)
    n = 0
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "index",
                "time_local",
                "point_id",
                "latitude",
                "longitude",
                "accuracy_m",
                "low_accuracy",
            ],
        )
        w.writeheader()
        for n, pt in enumerate(points, start=1):
            w.writerow(
                {
                    "index": n,
                    "time_local": to_local(pt.captured_at, tz_name).isoformat(sep=" "),
                    "point_id": pt.point_id,
                    "latitude": pt.latitude,
                    "longitude": pt.longitude,
                    "accuracy_m": pt.accuracy_m,
                    "low_accuracy": int(pt.low_accuracy),
                }
            )
    return n


def track_time_range(points: Sequence[TrackPoint], tz_name: str) -> tuple[str, str] | None:
    """Readable first/last time of a recorded track, or None if empty."""

    if not points:
        return None
    times = sorted(p.geo_time_ms for p in points)
    return (
        dt_from_epoch_ms(times[0], tz_name).isoformat(sep=" "),
        dt_from_epoch_ms(times[-1], tz_name).isoformat(sep=" "),
    )
