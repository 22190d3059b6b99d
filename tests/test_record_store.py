import json
from datetime import date, datetime, timezone
from functools import partial
from pathlib import Path

import pytest

from travelmap.core.ids import sequential_ids
from travelmap.core.time import fixed_clock
from travelmap.domain.models import City, TravelRecord
from travelmap.record import mutators
from travelmap.store.json_store import RecordStore, RecordStoreError

CLOCK = fixed_clock(datetime(2024, 6, 1, tzinfo=timezone.utc))


def _store(tmp_path) -> RecordStore:
    return RecordStore(tmp_path / "data" / "travel_map.json", clock=CLOCK, ids=sequential_ids("s"))


def test_missing_file_loads_empty_record(tmp_path):
    store = _store(tmp_path)
    assert store.load() == TravelRecord()
    assert not store.path.exists()


def test_update_persists_and_reloads(tmp_path):
    store = _store(tmp_path)
    city = City(name="Tokyo", country="Japan", lat=35.68, lng=139.69)
    updated = store.update(partial(mutators.add_city, city, clock=store.clock, ids=store.ids))

    assert store.path.exists()
    assert not store.path.with_suffix(".tmp").exists()
    assert store.load() == updated
    assert updated.visited_cities[0].id == "s-0001"

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert on_disk["visitedCountries"] == ["Japan"]


def test_noop_command_does_not_write(tmp_path):
    store = _store(tmp_path)
    store.update(lambda record: record)
    assert not store.path.exists()


def test_load_repairs_legacy_cities(tmp_path):
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    legacy = {
        "visitedCities": [
            {"name": "Paris", "country": "France", "lat": 48.85, "lng": 2.35, "date": "2024-05-01"},
            {"id": "old", "name": "Tokyo", "country": "Japan", "lat": 35.68, "lng": 139.69, "date": "2024-01-01"},
            {"id": "", "name": "Lima", "country": "Peru", "lat": -12.05, "lng": -77.04},
        ],
        "visitedCountries": ["France", "Japan", "Peru"],
    }
    store.path.write_text(json.dumps(legacy), encoding="utf-8")

    record = store.load()
    assert [c.name for c in record.visited_cities] == ["Tokyo", "Paris", "Lima"]
    assert [c.id for c in record.visited_cities] == ["old", "s-0001", "s-0002"]
    assert record.visited_cities[-1].date == date(2024, 6, 1)


@pytest.mark.parametrize("content", ["{not json", "[]", '{"visitedCities": [{"name": "X"}]}'])
def test_unreadable_store_raises(tmp_path, content):
    store = _store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")
    with pytest.raises(RecordStoreError):
        store.load()


def test_failed_save_removes_temp_file(tmp_path, monkeypatch):
    store = _store(tmp_path)
    store.save(TravelRecord(visited_countries=("Japan",)))

    def _fail(self, target):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", _fail)
    with pytest.raises(OSError):
        store.save(TravelRecord())

    assert not store.path.with_suffix(".tmp").exists()
    assert store.load().visited_countries == ("Japan",)
