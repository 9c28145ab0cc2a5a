from __future__ import annotations

from datetime import UTC, datetime, timedelta

from parcel_demarcate.models import DemarcationRecord, GpsPoint
from parcel_demarcate.store import JsonParcelStore


def _record(name: str, minutes: int = 0, producer_id: str = "p1") -> DemarcationRecord:
    t0 = datetime(2025, 1, 1, 8, 0, tzinfo=UTC) + timedelta(minutes=minutes)
    points = tuple(
        GpsPoint(point_id=str(i), latitude=lat, longitude=lon, accuracy_m=5.0, captured_at=t0)
        for i, (lat, lon) in enumerate([(0.0, 0.0), (0.0, 0.001), (0.001, 0.001)])
    )
    return DemarcationRecord(
        points=points,
        area_ha=0.62,
        perimeter_m=379.6,
        created_at=t0,
        producer_id=producer_id,
        name=name,
    )


def test_saved_record_survives_without_flush(tmp_path):
    path = tmp_path / "parcels.json"
    store = JsonParcelStore(path)
    record_id = store.save(_record("North"))

    assert (tmp_path / "parcels.journal.jsonl").exists()
    reopened = JsonParcelStore(path)
    assert reopened.get(record_id) == _record("North")


def test_flush_writes_snapshot_and_clears_journal(tmp_path):
    path = tmp_path / "parcels.json"
    store = JsonParcelStore(path)
    record_id = store.save(_record("North"))
    store.flush()

    assert path.exists()
    assert not (tmp_path / "parcels.journal.jsonl").exists()
    assert JsonParcelStore(path).get(record_id) == _record("North")


def test_list_records_oldest_first(tmp_path):
    store = JsonParcelStore(tmp_path / "parcels.json")
    store.save(_record("later", minutes=30))
    store.save(_record("earlier", minutes=0))

    assert [r.name for _, r in store.list_records()] == ["earlier", "later"]



def test_list_records_for_one_producer(tmp_path):
    store = JsonParcelStore(tmp_path / "parcels.json")
    store.save(_record("North", producer_id="p1"))
    store.save(_record("South", minutes=5, producer_id="p2"))
    store.save(_record("East", minutes=10, producer_id="p1"))

    assert [r.name for _, r in store.list_records(producer_id="p1")] == ["North", "East"]
    assert [r.name for _, r in store.list_records(producer_id="p2")] == ["South"]
    assert store.list_records(producer_id="p3") == []
    assert len(store.list_records()) == 3


def test_corrupted_snapshot_is_backed_up(tmp_path):
    path = tmp_path / "parcels.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonParcelStore(path)
    assert store.list_records() == []
    assert (tmp_path / "parcels.json.broken").read_text(encoding="utf-8") == "{not json"


def test_broken_journal_tail_is_ignored(tmp_path):
    path = tmp_path / "parcels.json"
    JsonParcelStore(path).save(_record("North"))
    with (tmp_path / "parcels.journal.jsonl").open("a", encoding="utf-8") as f:
        f.write('{"k": "half')

    assert [r.name for _, r in JsonParcelStore(path).list_records()] == ["North"]


def test_missing_record(tmp_path):
    assert JsonParcelStore(tmp_path / "parcels.json").get("nope") is None
