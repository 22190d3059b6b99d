import random
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from travelmap.core.ids import sequential_ids
from travelmap.core.time import fixed_clock
from travelmap.domain.models import City, TravelRecord
from travelmap.quality.report import record_issues
from travelmap.record import mutators

CLOCK = fixed_clock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


def _city(name: str, country: str, day: date | None = None, **extra) -> City:
    return City(name=name, country=country, lat=10.0, lng=20.0, date=day, **extra)


def _errors(record: TravelRecord) -> list[str]:
    return [i.code for i in record_issues(record) if i.severity == "error"]


def test_add_city_assigns_id_and_date_and_visits_country():
    ids = sequential_ids("city")
    record = mutators.add_city(_city("Tokyo", "Japan"), TravelRecord(), clock=CLOCK, ids=ids)

    (city,) = record.visited_cities
    assert city.id == "city-0001"
    assert city.date == date(2024, 6, 1)
    assert record.visited_countries == ("Japan",)


def test_add_city_keeps_given_id_and_date():
    record = mutators.add_city(
        _city("Tokyo", "Japan", date(2023, 2, 1), id="keep-me"), TravelRecord(), clock=CLOCK
    )
    assert record.visited_cities[0].id == "keep-me"
    assert record.visited_cities[0].date == date(2023, 2, 1)


def test_add_city_keeps_cities_sorted_by_date():
    ids = sequential_ids()
    record = TravelRecord()
    for name, day in [("B", date(2024, 3, 1)), ("A", date(2024, 1, 1)), ("C", date(2024, 2, 1))]:
        record = mutators.add_city(_city(name, "Japan", day), record, clock=CLOCK, ids=ids)
    assert [c.name for c in record.visited_cities] == ["A", "C", "B"]
    assert record.visited_countries == ("Japan",)


def test_add_city_removes_country_from_bucket_list():
    record = TravelRecord(
        bucket_list_countries=("Japan", "Peru"),
        bucket_list_cities=(_city("Kyoto", "Japan", id="b1"), _city("Osaka", "Japan", id="b2")),
    )
    record = mutators.add_city(_city("Kyoto", "Japan"), record, clock=CLOCK, ids=sequential_ids())
    assert record.bucket_list_countries == ("Peru",)
    assert [c.name for c in record.bucket_list_cities] == ["Osaka"]
    assert _errors(record) == []


def test_add_city_does_not_modify_input():
    before = TravelRecord()
    after = mutators.add_city(_city("Tokyo", "Japan"), before, clock=CLOCK)
    assert before.visited_cities == ()
    assert after is not before


def test_add_bucket_city():
    ids = sequential_ids("b")
    record = mutators.add_bucket_city(_city("Lima", "Peru"), TravelRecord(), ids=ids)
    assert record.bucket_list_cities[0].id == "b-0001"
    assert record.bucket_list_countries == ("Peru",)

    visited = TravelRecord(visited_countries=("Japan",))
    record = mutators.add_bucket_city(_city("Kyoto", "Japan"), visited, ids=ids)
    assert record.bucket_list_countries == ()
    assert len(record.bucket_list_cities) == 1


def test_remove_city_drops_country_only_when_last_city_goes():
    record = TravelRecord(
        visited_cities=(
            _city("Tokyo", "Japan", date(2024, 1, 1), id="t"),
            _city("Osaka", "Japan", date(2024, 1, 2), id="o"),
        ),
        visited_countries=("Japan",),
    )
    record = mutators.remove_city("t", record)
    assert record.visited_countries == ("Japan",)
    record = mutators.remove_city("o", record)
    assert record.visited_countries == ()
    assert record.visited_cities == ()


def test_unknown_ids_return_the_same_record():
    record = TravelRecord(
        visited_cities=(_city("Tokyo", "Japan", date(2024, 1, 1), id="t"),),
        visited_countries=("Japan",),
    )
    assert mutators.remove_city("missing", record) is record
    assert mutators.remove_bucket_city("missing", record) is record
    assert mutators.update_city("missing", {"notes": "x"}, record) is record
    assert mutators.remove_passport_stamp("missing", record) is record


def test_update_city_merges_fields_and_keeps_id():
    record = TravelRecord(
        visited_cities=(_city("Tokyo", "Japan", date(2024, 1, 1), id="t"),),
        visited_countries=("Japan",),
    )
    record = mutators.update_city("t", {"notes": "ramen", "customEmoji": "🍜", "id": "other"}, record)
    city = record.visited_cities[0]
    assert city.id == "t"
    assert city.notes == "ramen"
    assert city.custom_emoji == "🍜"
    assert city.name == "Tokyo"


def test_update_city_date_change_resorts():
    record = TravelRecord(
        visited_cities=(
            _city("A", "Japan", date(2024, 1, 1), id="a"),
            _city("B", "Japan", date(2024, 2, 1), id="b"),
        ),
        visited_countries=("Japan",),
    )
    record = mutators.update_city("a", {"date": "2024-03-01"}, record)
    assert [c.id for c in record.visited_cities] == ["b", "a"]
    assert record.visited_cities[1].date == date(2024, 3, 1)


def test_update_city_country_change_syncs_countries():
    record = TravelRecord(
        visited_cities=(_city("A", "Japan", date(2024, 1, 1), id="a"),),
        visited_countries=("Japan",),
        bucket_list_countries=("France",),
    )
    record = mutators.update_city("a", {"country": "France"}, record)
    assert record.visited_countries == ("France",)
    assert record.bucket_list_countries == ()
    assert _errors(record) == []


def test_update_city_rejects_invalid_values():
    record = TravelRecord(
        visited_cities=(_city("A", "Japan", date(2024, 1, 1), id="a"),),
        visited_countries=("Japan",),
    )
    with pytest.raises(ValidationError):
        mutators.update_city("a", {"lat": 123.0}, record)


def test_toggle_country_visit_and_unvisit():
    record = TravelRecord(bucket_list_countries=("Japan",))
    record = mutators.toggle_country("Japan", record)
    assert record.visited_countries == ("Japan",)
    assert record.bucket_list_countries == ()
    assert record.visited_cities == ()

    record = mutators.add_city(_city("Tokyo", "Japan"), record, clock=CLOCK)
    record = mutators.add_bucket_city(_city("Kyoto", "Japan"), record)
    record = mutators.toggle_country("Japan", record)
    assert record.visited_countries == ()
    assert record.visited_cities == ()
    assert record.bucket_list_cities == ()


def test_toggle_bucket_list():
    record = TravelRecord(visited_countries=("Japan",))
    assert mutators.toggle_bucket_list("Japan", record) is record

    record = mutators.toggle_bucket_list("Peru", record)
    assert record.bucket_list_countries == ("Peru",)
    record = mutators.add_bucket_city(_city("Lima", "Peru"), record)
    record = mutators.toggle_bucket_list("Peru", record)
    assert record.bucket_list_countries == ()
    assert record.bucket_list_cities == ()


def test_update_settings_shallow_merge():
    record = mutators.update_settings({"mapStyle": "vintage", "showHeatmap": True, "zoom": 3}, TravelRecord())
    assert record.settings.map_style == "vintage"
    assert record.settings.show_heatmap is True
    assert record.settings.global_emoji == "📍"
    assert record.settings.model_dump(by_alias=True)["zoom"] == 3

    with pytest.raises(ValidationError):
        mutators.update_settings({"mapStyle": "neon"}, record)


def test_passport_stamps():
    ids = sequential_ids("s")
    record = mutators.add_passport_stamp("https://example.com/a.png", TravelRecord(), clock=CLOCK, ids=ids)
    record = mutators.add_passport_stamp({"localId": "img-7"}, record, clock=CLOCK, ids=ids)

    first, second = record.passport_stamps
    assert (first.id, first.url, first.local_id) == ("s-0001", "https://example.com/a.png", None)
    assert (second.id, second.url, second.local_id) == ("s-0002", None, "img-7")
    assert first.date == CLOCK()

    record = mutators.remove_passport_stamp("s-0001", record)
    assert [s.id for s in record.passport_stamps] == ["s-0002"]


def test_passport_stamp_requires_a_source():
    with pytest.raises(ValidationError):
        mutators.add_passport_stamp({}, TravelRecord(), clock=CLOCK)


def test_random_mutator_sequences_keep_record_consistent():
    rng = random.Random(1234)
    ids = sequential_ids()
    countries = ["Japan", "France", "Peru", "Kenya", "Canada"]
    record = TravelRecord()

    for _ in range(300):
        op = rng.choice(["add", "bucket", "remove", "update", "toggle", "toggle_bucket"])
        country = rng.choice(countries)
        if op == "add":
            day = date(2024, rng.randint(1, 12), rng.randint(1, 28))
            record = mutators.add_city(_city(f"c{rng.randint(0, 9)}", country, day), record, clock=CLOCK, ids=ids)
        elif op == "bucket":
            record = mutators.add_bucket_city(_city(f"b{rng.randint(0, 9)}", country), record, ids=ids)
        elif op == "remove" and record.visited_cities:
            record = mutators.remove_city(rng.choice(record.visited_cities).id, record)
        elif op == "update" and record.visited_cities:
            target = rng.choice(record.visited_cities)
            updates = rng.choice(
                [{"country": country}, {"date": date(2023, rng.randint(1, 12), 1).isoformat()}, {"notes": "n"}]
            )
            record = mutators.update_city(target.id, updates, record)
        elif op == "toggle":
            record = mutators.toggle_country(country, record)
        elif op == "toggle_bucket":
            record = mutators.toggle_bucket_list(country, record)

        assert _errors(record) == [], op


def test_city_requires_a_country():
    with pytest.raises(ValidationError):
        _city("Nowhere", "")


def test_update_city_cannot_clear_the_date():
    record = TravelRecord(
        visited_cities=(_city("A", "Japan", date(2024, 1, 1), id="a"),),
        visited_countries=("Japan",),
    )
    with pytest.raises(ValueError, match="visit date"):
        mutators.update_city("a", {"date": None}, record)
    assert record.visited_cities[0].date == date(2024, 1, 1)
