from __future__ import annotations

import argparse
import csv
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "UTC"
METERS_PER_DEGREE: Final[float] = 111_320.0


@dataclass(frozen=True, slots=True)
class Parcel:
    """A rectangular field: south-west corner plus size in meters."""

    lat: float
    lon: float
    width_m: float
    height_m: float

    def corners(self) -> list[tuple[float, float]]:
        dlat = self.height_m / METERS_PER_DEGREE
        dlon = self.width_m / (METERS_PER_DEGREE * math.cos(math.radians(self.lat)))
        return [
            (self.lat, self.lon),
            (self.lat + dlat, self.lon),
            (self.lat + dlat, self.lon + dlon),
            (self.lat, self.lon + dlon),
        ]


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def generate_walk(
    *,
    parcel: Parcel,
    per_edge: int,
    seed: int,
    start_local: datetime,
    interval_s: float,
) -> list[dict[str, str]]:
    """Walk the parcel boundary once, clockwise from the south-west corner."""

    rng = random.Random(seed)
    cur = start_local.replace(tzinfo=ZoneInfo(TZ))
    corners = parcel.corners()

    out: list[dict[str, str]] = []
    for i, (lat1, lon1) in enumerate(corners):
        lat2, lon2 = corners[(i + 1) % len(corners)]
        for k in range(per_edge):
            t = k / per_edge
            # GPS jitter of a few meters
            lat = lat1 + (lat2 - lat1) * t + rng.gauss(0.0, 2.0) / METERS_PER_DEGREE
            lon = lon1 + (lon2 - lon1) * t + rng.gauss(0.0, 2.0) / METERS_PER_DEGREE
            hacc = rng.choice([3.0, 4.0, 5.0, 6.0, 8.0, 12.0, 20.0])
            cur = cur + timedelta(seconds=interval_s + rng.uniform(-0.5, 0.5))
            out.append(
                {
                    "geoTime": str(_epoch_ms(cur)),
                    "latitude": f"{lat:.7f}",
                    "longitude": f"{lon:.7f}",
                    "altitude": f"{rng.uniform(100, 120):.1f}",
                    "horizontalAccuracy": f"{hacc:.1f}",
                    "speed": f"{rng.uniform(0.8, 1.5):.1f}",
                    "locationType": "1",
                }
            )
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake recorded walk around a rectangular parcel.")
    p.add_argument("--out", type=str, default="sample_data/walk.csv", help="Output CSV path")
    p.add_argument("--lat", type=float, default=-25.9655, help="South-west corner latitude")
    p.add_argument("--lon", type=float, default=32.5832, help="South-west corner longitude")
    p.add_argument("--width-m", type=float, default=200.0, help="East-west size in meters")
    p.add_argument("--height-m", type=float, default=100.0, help="North-south size in meters")
    p.add_argument("--per-edge", type=int, default=8, help="Fixes recorded along each edge")
    p.add_argument("--interval", type=float, default=5.0, help="Seconds between fixes")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--start", type=str, default="2025-01-01 08:00:00", help="Start time (UTC)")
    args = p.parse_args()

    parcel = Parcel(args.lat, args.lon, args.width_m, args.height_m)
    rows = generate_walk(
        parcel=parcel,
        per_edge=args.per_edge,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        interval_s=args.interval,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        w.writeheader()
        w.writerows(rows)

    expected_ha = args.width_m * args.height_m / 10_000.0
    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed}, expected area ~{expected_ha:.2f} ha)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
