from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from travelmap.core.ids import IdProvider, new_id
from travelmap.core.time import Clock, today, utc_now
from travelmap.domain.models import TravelRecord, sort_by_date
from travelmap.record.importer import export_data

"""
On-disk JSON store for the travel record.

One record lives in one JSON file (the native backup format). Every command is a
read-modify-write of the whole value (`RecordStore.update`), serialized by a
process-local lock; concurrent processes writing the same file are last-writer-wins.

Loading also repairs records written by older versions:
- visited cities without an id or date get one (id provider / clock)
- visited cities are re-sorted by date
"""

logger = logging.getLogger(__name__)

Command = Callable[[TravelRecord], TravelRecord]


class RecordStoreError(RuntimeError):
    """Raised when the stored record cannot be read or parsed."""


class RecordStore:
    """A filesystem-backed holder of the single authoritative TravelRecord."""

    def __init__(self, path: Path, *, clock: Clock = utc_now, ids: IdProvider = new_id):
        self._path = path
        self._clock = clock
        self._ids = ids
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def ids(self) -> IdProvider:
        return self._ids

    def _repair(self, raw: dict[str, Any]) -> dict[str, Any]:
        cities = []
        for city in raw.get("visitedCities") or []:
            if not isinstance(city, dict):
                cities.append(city)
                continue
            city = dict(city)
            if not city.get("id"):
                city["id"] = self._ids()
            if not city.get("date"):
                city["date"] = today(self._clock).isoformat()
            cities.append(city)
        return {**raw, "visitedCities": cities}

    def load(self) -> TravelRecord:
        """Read the stored record (an empty record when the file does not exist)."""
        if not self._path.exists():
            return TravelRecord()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise RecordStoreError(f"Cannot read travel record {self._path}: {e}") from e
        if not isinstance(raw, dict):
            raise RecordStoreError(f"Invalid travel record {self._path}: expected a JSON object.")

        try:
            record = TravelRecord.model_validate(self._repair(raw))
        except ValidationError as e:
            raise RecordStoreError(f"Invalid travel record {self._path}: {e}") from e
        return record.model_copy(update={"visited_cities": tuple(sort_by_date(record.visited_cities))})

    def save(self, record: TravelRecord) -> None:
        """Write the full record.

        Notes:
        - Writes via a temporary file + atomic replace to avoid partial/corrupt files.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(export_data(record), encoding="utf-8")
            tmp.replace(self._path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Saved travel record to %s", self._path)

    def update(self, command: Command) -> TravelRecord:
        """Apply `command` to the current record and persist the result."""
        with self._lock:
            current = self.load()
            updated = command(current)
            if updated is not current:
                self.save(updated)
            return updated
