"""Command-line interface for parcel_demarcate.

Run:
    python -m parcel_demarcate measure --csv vertices.csv
    python -m parcel_demarcate replay --track Path.csv --producer-id P1 --name "North field" --interval 0.05
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from parcel_demarcate.csv_io import export_points_csv, load_track_points, load_vertices, track_time_range
from parcel_demarcate.errors import DemarcationValidationError
from parcel_demarcate.geo import (
    SQUARE_METERS_PER_HECTARE,
    AreaMethod,
    format_area,
    format_distance,
    measure,
)
from parcel_demarcate.models import DEFAULT_TZ
from parcel_demarcate.notify import LoggingNotifier
from parcel_demarcate.positioning import DEFAULT_TIMEOUT_S, ReplayPositionProvider
from parcel_demarcate.session import DISCARD_LATE_FIXES, KEEP_LATE_FIXES, CaptureSession, SessionConfig
from parcel_demarcate.store import JsonParcelStore
from parcel_demarcate.timeutils import format_local

logger = logging.getLogger(__name__)


def _print_metrics(points: int, area_ha: float, perimeter_m: float) -> None:
    print(f"points={points}, area={area_ha:.2f} ha, perimeter={perimeter_m / 1000.0:.2f} km ({perimeter_m:.1f} m)")


def _cmd_measure(args: argparse.Namespace) -> int:
    points, summary = load_vertices(args.csv)
    res = measure(points, AreaMethod(args.method))

    print("### Rows")
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")
    print()

    print("### Polygon")
    _print_metrics(res.points, res.area_ha, res.perimeter_m)
    if res.points < 3:
        print("note: fewer than 3 vertices, area is 0")
    low = [i for i, p in enumerate(points, start=1) if p.low_accuracy]
    if low:
        print(f"low accuracy vertices (>10 m): {', '.join(map(str, low))}")

    if args.json:
        payload = asdict(res) | {"method": args.method, "rows_skipped": summary.rows_skipped}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


async def _replay(args: argparse.Namespace) -> int:
    track, _ = load_track_points(args.track)
    provider = ReplayPositionProvider.from_track_points(track)
    if provider.remaining == 0:
        print(f"no usable fixes in {args.track}", file=sys.stderr)
        return 2

    span = track_time_range(track, args.tz)
    if span is not None:
        print("### Track")
        print(f"start={span[0]}, end={span[1]}")
        print()

    store = JsonParcelStore(args.store)
    config = SessionConfig(
        walking_interval_seconds=args.interval,
        position_timeout_seconds=args.timeout,
        late_fix_policy=args.late_fixes,
        area_method=AreaMethod(args.method),
        require_producer=True,
    )

    async with CaptureSession(provider, notifier=LoggingNotifier(), store=store, config=config) as session:
        session.toggle_walking_mode()
        poll_s = min(0.05, args.interval / 2.0)
        while provider.remaining > 0:
            if args.max_points is not None and len(session.points) >= args.max_points:
                break
            await asyncio.sleep(poll_s)
        await session.settle()
        session.toggle_walking_mode()

        _print_metrics(len(session.points), session.area_ha, session.perimeter_m)
        if args.export:
            n = export_points_csv(session.points, args.export, args.tz)
            print(f"exported {n} points: {args.export}")

        try:
            record = await session.save_demarcation(producer_id=args.producer_id, name=args.name)
        except DemarcationValidationError as exc:
            print(f"not saved: {exc}", file=sys.stderr)
            return 2

    store.flush()
    print(f"saved '{record.name}' for producer {record.producer_id}: {store.path}")
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    return asyncio.run(_replay(args))


def _cmd_parcels(args: argparse.Namespace) -> int:
    store = JsonParcelStore(args.store)
    records = store.list_records(producer_id=args.producer_id)
    if args.json:
        print(json.dumps({k: r.to_dict() for k, r in records}, ensure_ascii=False, indent=2))
        return 0

    if not records:
        who = f" for producer {args.producer_id}" if args.producer_id else ""
        print(f"no demarcations{who} in {args.store}")
        return 0
    for record_id, r in records:
        print(
            f"{record_id}  {format_local(r.created_at, args.tz)}  producer={r.producer_id}  name={r.name!r}  "
            f"points={len(r.points)}  area={format_area(r.area_ha * SQUARE_METERS_PER_HECTARE)}  "
            f"perimeter={format_distance(r.perimeter_m)}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="parcel_demarcate")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (notifications are logged at INFO)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    methods = [m.value for m in AreaMethod]

    p_ms = sub.add_parser("measure", help="Area and perimeter of a vertex CSV (latitude,longitude[,accuracy])")
    p_ms.add_argument("--csv", type=str, required=True, help="Input CSV path, one vertex per row in boundary order")
    p_ms.add_argument(
        "--method",
        type=str,
        default=AreaMethod.REFERENCE_LATITUDE.value,
        choices=methods,
        help="Area method: reference-latitude (legacy planar) or geodesic (WGS84, needs pyproj)",
    )
    p_ms.add_argument("--json", action="store_true", help="Also print JSON")
    p_ms.set_defaults(func=_cmd_measure)

    p_rp = sub.add_parser("replay", help="Walk a recorded track in walking mode and save the parcel")
    p_rp.add_argument("--track", type=str, required=True, help="Recorded track CSV (geoTime,latitude,longitude,...)")
    p_rp.add_argument("--producer-id", type=str, required=True, help="Producer that owns the parcel")
    p_rp.add_argument("--name", type=str, required=True, help="Parcel name")
    p_rp.add_argument("--store", type=str, default="parcels.json", help="Demarcation store (JSON)")
    p_rp.add_argument(
        "--interval",
        type=float,
        default=5.0,
        help="Walking capture interval in seconds (use a small value to replay quickly)",
    )
    p_rp.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="Position timeout in seconds")
    p_rp.add_argument("--max-points", type=int, default=None, help="Stop walking after this many points")
    p_rp.add_argument(
        "--late-fixes",
        type=str,
        default=KEEP_LATE_FIXES,
        choices=[KEEP_LATE_FIXES, DISCARD_LATE_FIXES],
        help="Fixes that arrive after walking stopped: keep or discard",
    )
    p_rp.add_argument("--method", type=str, default=AreaMethod.REFERENCE_LATITUDE.value, choices=methods)
    p_rp.add_argument("--export", type=str, default=None, help="Also export captured points to this CSV")
    p_rp.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Timezone (IANA) for exported times")
    p_rp.set_defaults(func=_cmd_replay)

    p_ls = sub.add_parser("parcels", help="List saved demarcations")
    p_ls.add_argument("--store", type=str, default="parcels.json", help="Demarcation store (JSON)")
    p_ls.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Timezone (IANA)")
    p_ls.add_argument("--producer-id", type=str, default=None, help="Only this producer's parcels")
    p_ls.add_argument("--json", action="store_true", help="Print JSON")
    p_ls.set_defaults(func=_cmd_parcels)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
