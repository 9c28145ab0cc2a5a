"""Persistence of finished demarcations.

The JSON store keeps a snapshot file plus an append-only journal, so a save
survives a crash between two snapshots.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

from parcel_demarcate.models import DemarcationRecord

logger = logging.getLogger(__name__)


class DemarcationStore(Protocol):
    def save(self, record: DemarcationRecord) -> str:
        """Persist ``record`` and return its id."""
        ...


class MemoryParcelStore:
    """Keep records in memory (tests, previews)."""

    def __init__(self) -> None:
        self.records: dict[str, DemarcationRecord] = {}

    def save(self, record: DemarcationRecord) -> str:
        record_id = uuid.uuid4().hex
        self.records[record_id] = record
        return record_id


class JsonParcelStore:
    """Demarcations persisted as JSON on disk (id -> record dict)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        # Example: parcels.json -> parcels.journal.jsonl
        self._journal_path = self._path.with_name(f"{self._path.stem}.journal.jsonl")
        self._data: dict[str, dict[str, Any]] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load the store from disk (no-op if file does not exist)."""

        if self._loaded:
            return
        self._data = {}
        if self._path.exists():
            text = self._path.read_text(encoding="utf-8").strip()
            if text:
                try:
                    self._data = json.loads(text)
                except json.JSONDecodeError:
                    # Snapshot corrupted: keep a backup and start fresh
                    backup = self._path.with_suffix(self._path.suffix + ".broken")
                    backup.write_text(text, encoding="utf-8")
                    logger.warning("%s is corrupted, backed up to %s", self._path, backup)
                    self._data = {}

        self._replay_journal()
        self._loaded = True

    def save(self, record: DemarcationRecord) -> str:
        self.load()
        record_id = uuid.uuid4().hex
        value = record.to_dict()
        self._data[record_id] = value
        self._append_journal(record_id, value)
        logger.info("saved demarcation %s (%s points) to %s", record_id, len(record.points), self._journal_path)
        return record_id

    def get(self, record_id: str) -> DemarcationRecord | None:
        self.load()
        data = self._data.get(record_id)
        return None if data is None else DemarcationRecord.from_dict(data)

    def list_records(self, producer_id: str | None = None) -> list[tuple[str, DemarcationRecord]]:
        """All records, oldest first. With ``producer_id`` only that producer's."""

        self.load()
        out = [(k, DemarcationRecord.from_dict(v)) for k, v in self._data.items()]
        if producer_id is not None:
            out = [(k, r) for k, r in out if r.producer_id == producer_id]
        out.sort(key=lambda kv: kv[1].created_at)
        return out

    def flush(self) -> None:
        """Persist the full snapshot to disk (atomic-ish) and clear the journal."""

        self.load()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)
        self._clear_journal()

    def _append_journal(self, key: str, value: dict[str, Any]) -> None:
        self._journal_path.parent.mkdir(parents=True, exist_ok=True)
        record = {"k": key, "v": value}
        with self._journal_path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")

    def _replay_journal(self) -> None:
        """Replay journal entries into memory (best-effort)."""

        if not self._journal_path.exists():
            return
        try:
            with self._journal_path.open("r", encoding="utf-8") as f:
                for line in f:
                    s = line.strip()
                    if not s:
                        continue
                    try:
                        rec = json.loads(s)
                    except json.JSONDecodeError:
                        # ignore broken tail lines
                        continue
                    k = rec.get("k")
                    v = rec.get("v")
                    if isinstance(k, str) and isinstance(v, dict):
                        self._data[k] = v
        except OSError:
            logger.warning("could not read journal %s", self._journal_path)

    def _clear_journal(self) -> None:
        try:
            if self._journal_path.exists():
                self._journal_path.unlink()
        except OSError:
            logger.warning("could not remove journal %s", self._journal_path)
