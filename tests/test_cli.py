from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

from parcel_demarcate.cli import main
from parcel_demarcate.models import DemarcationRecord, GpsPoint
from parcel_demarcate.store import JsonParcelStore


def _vertices(tmp_path):
    path = tmp_path / "vertices.csv"
    path.write_text(
        "latitude,longitude\n0.0,0.0\n0.0,0.001\n0.001,0.001\n0.001,0.0\n",
        encoding="utf-8",
    )
    return path


def test_measure(tmp_path, capsys):
    assert main(["measure", "--csv", str(_vertices(tmp_path)), "--json"]) == 0
    out = capsys.readouterr().out
    assert "points=4, area=1.24 ha, perimeter=0.44 km" in out
    payload = json.loads(out[out.index("{") :])
    assert payload["points"] == 4
    assert payload["method"] == "reference-latitude"


def test_replay_saves_parcel(tmp_path, capsys, track_csv):
    store_path = tmp_path / "parcels.json"
    export_path = tmp_path / "points.csv"
    rc = main(
        [
            "replay",
            "--track",
            str(track_csv),
            "--producer-id",
            "p1",
            "--name",
            "North field",
            "--store",
            str(store_path),
            "--interval",
            "0.01",
            "--export",
            str(export_path),
        ]
    )

    assert rc == 0
    out = capsys.readouterr().out
    assert "### Track" in out
    assert "start=2025-01-01 08:00:00+00:00, end=2025-01-01 08:00:15+00:00" in out
    assert "points=4" in out
    records = JsonParcelStore(store_path).list_records()
    assert len(records) == 1
    record = records[0][1]
    assert record.name == "North field"
    assert record.producer_id == "p1"
    assert len(record.points) == 4
    assert export_path.exists()


def test_replay_with_too_few_fixes_is_not_saved(tmp_path, capsys):
    track = tmp_path / "short.csv"
    track.write_text(
        "geoTime,latitude,longitude\n1735718400000,0.0,0.0\n1735718405000,0.0,0.001\n",
        encoding="utf-8",
    )
    store_path = tmp_path / "parcels.json"
    rc = main(
        [
            "replay",
            "--track",
            str(track),
            "--producer-id",
            "p1",
            "--name",
            "Tiny",
            "--store",
            str(store_path),
            "--interval",
            "0.01",
        ]
    )

    assert rc == 2
    assert "not saved" in capsys.readouterr().err
    assert JsonParcelStore(store_path).list_records() == []


def test_parcels_listing(tmp_path, capsys, track_csv):
    store_path = tmp_path / "parcels.json"
    assert main(["parcels", "--store", str(store_path)]) == 0
    assert "no demarcations" in capsys.readouterr().out

    main(
        [
            "replay",
            "--track",
            str(track_csv),
            "--producer-id",
            "p9",
            "--name",
            "East",
            "--store",
            str(store_path),
            "--interval",
            "0.01",
        ]
    )
    capsys.readouterr()
    assert main(["parcels", "--store", str(store_path)]) == 0
    out = capsys.readouterr().out
    assert "producer=p9" in out and "name='East'" in out and "points=4" in out


def test_parcels_for_one_producer_with_readable_units(tmp_path, capsys):
    store_path = tmp_path / "parcels.json"
    store = JsonParcelStore(store_path)
    t0 = datetime(2025, 1, 1, 8, 0, tzinfo=UTC)
    point = GpsPoint(point_id="a", latitude=0.0, longitude=0.0, accuracy_m=5.0, captured_at=t0)
    big = DemarcationRecord(
        points=(point,) * 3, area_ha=12.5, perimeter_m=1520.0, created_at=t0, producer_id="p1", name="Big"
    )
    small = DemarcationRecord(
        points=(point,) * 3,
        area_ha=0.05,
        perimeter_m=90.4,
        created_at=t0 + timedelta(minutes=1),
        producer_id="p2",
        name="Small",
    )
    store.save(big)
    store.save(small)
    store.flush()

    assert main(["parcels", "--store", str(store_path), "--producer-id", "p1"]) == 0
    out = capsys.readouterr().out
    assert "name='Big'" in out and "name='Small'" not in out
    assert "area=12.50 ha" in out and "perimeter=1.52 km" in out

    assert main(["parcels", "--store", str(store_path), "--producer-id", "p2"]) == 0
    out = capsys.readouterr().out
    assert "name='Small'" in out and "name='Big'" not in out
    assert "area=500 m²" in out and "perimeter=90 m" in out

    assert main(["parcels", "--store", str(store_path), "--producer-id", "nobody"]) == 0
    assert "no demarcations for producer nobody" in capsys.readouterr().out
