"""
Record mutators.

Each mutator takes the command arguments plus the current `TravelRecord` and
returns a new record; the input is never modified and nothing here does I/O.

Invariants kept by every mutator:
- `visited_cities` is sorted by date ascending
- every visited city's country is in `visited_countries`
- `bucket_list_countries` and `visited_countries` are disjoint

Unknown ids are not errors: remove/update with an id that is not present
return the record unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from pydantic import BaseModel

from travelmap.core.ids import IdProvider, new_id
from travelmap.core.time import Clock, today, utc_now
from travelmap.domain.models import City, MapSettings, Stamp, TravelRecord, sort_by_date


def _field_names(model: type[BaseModel], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Translate camelCase alias keys in `updates` to attribute names."""
    by_alias = {(f.alias or name): name for name, f in model.model_fields.items()}
    return {by_alias.get(k, k): v for k, v in updates.items()}


def _ensure_id(city: City, ids: IdProvider) -> City:
    if city.id:
        return city
    return city.model_copy(update={"id": ids()})


def _without(countries: Sequence[str], country: str) -> tuple[str, ...]:
    return tuple(c for c in countries if c != country)


def add_city(
    city: City,
    record: TravelRecord,
    *,
    clock: Clock = utc_now,
    ids: IdProvider = new_id,
) -> TravelRecord:
    """Add a visited city; a newly visited country leaves the bucket list."""
    new_city = _ensure_id(city, ids)
    if new_city.date is None:
        new_city = new_city.model_copy(update={"date": today(clock)})

    update: dict[str, Any] = {
        "visited_cities": tuple(sort_by_date([*record.visited_cities, new_city])),
    }
    if city.country not in record.visited_countries:
        update["visited_countries"] = (*record.visited_countries, city.country)
        update["bucket_list_countries"] = _without(record.bucket_list_countries, city.country)
        update["bucket_list_cities"] = tuple(c for c in record.bucket_list_cities if c.name != city.name)
    return record.model_copy(update=update)


def add_bucket_city(city: City, record: TravelRecord, *, ids: IdProvider = new_id) -> TravelRecord:
    """Add a wished-for city; its country joins the bucket list unless already visited."""
    update: dict[str, Any] = {
        "bucket_list_cities": (*record.bucket_list_cities, _ensure_id(city, ids)),
    }
    if city.country not in record.visited_countries and city.country not in record.bucket_list_countries:
        update["bucket_list_countries"] = (*record.bucket_list_countries, city.country)
    return record.model_copy(update=update)


def remove_city(city_id: str, record: TravelRecord) -> TravelRecord:
    """Remove a visited city; drop its country once no visited city remains there."""
    removed = next((c for c in record.visited_cities if c.id == city_id), None)
    if removed is None:
        return record

    remaining = tuple(c for c in record.visited_cities if c.id != city_id)
    update: dict[str, Any] = {"visited_cities": remaining}
    if not any(c.country == removed.country for c in remaining):
        update["visited_countries"] = _without(record.visited_countries, removed.country)
    return record.model_copy(update=update)


def remove_bucket_city(city_id: str, record: TravelRecord) -> TravelRecord:
    remaining = tuple(c for c in record.bucket_list_cities if c.id != city_id)
    if len(remaining) == len(record.bucket_list_cities):
        return record
    return record.model_copy(update={"bucket_list_cities": remaining})


def update_city(city_id: str, updates: Mapping[str, Any], record: TravelRecord) -> TravelRecord:
    """Merge partial `updates` into the visited city `city_id`.

    Keys may be attribute names or their camelCase aliases; the id itself cannot
    be changed and the date cannot be cleared (ValueError). The merged city is
    re-validated (raises pydantic.ValidationError).
    Cities are re-sorted only when the date changed. Moving a city to another
    country keeps the visited-country set in sync.
    """
    target = next((c for c in record.visited_cities if c.id == city_id), None)
    if target is None:
        return record

    changes = _field_names(City, updates)
    changes.pop("id", None)
    merged = City.model_validate({**target.model_dump(), **changes})
    if merged.date is None:
        raise ValueError(f"visited city {city_id!r} must keep a visit date")

    cities = [merged if c.id == city_id else c for c in record.visited_cities]
    if merged.date != target.date:
        cities = sort_by_date(cities)

    update: dict[str, Any] = {"visited_cities": tuple(cities)}
    if merged.country != target.country:
        visited = tuple(record.visited_countries)
        if merged.country not in visited:
            visited = (*visited, merged.country)
        if not any(c.country == target.country for c in cities):
            visited = _without(visited, target.country)
        update["visited_countries"] = visited
        update["bucket_list_countries"] = _without(record.bucket_list_countries, merged.country)
    return record.model_copy(update=update)


def toggle_country(country: str, record: TravelRecord) -> TravelRecord:
    """Visit or un-visit a whole country.

    Un-visiting also removes every visited and bucket city in that country.
    Visiting only touches the country lists (no cities are created).
    """
    if country in record.visited_countries:
        return record.model_copy(
            update={
                "visited_countries": _without(record.visited_countries, country),
                "visited_cities": tuple(c for c in record.visited_cities if c.country != country),
                "bucket_list_cities": tuple(c for c in record.bucket_list_cities if c.country != country),
            }
        )
    return record.model_copy(
        update={
            "visited_countries": (*record.visited_countries, country),
            "bucket_list_countries": _without(record.bucket_list_countries, country),
        }
    )


def toggle_bucket_list(country: str, record: TravelRecord) -> TravelRecord:
    """Flip bucket-list membership; visited countries are left alone."""
    if country in record.visited_countries:
        return record
    if country in record.bucket_list_countries:
        return record.model_copy(
            update={
                "bucket_list_countries": _without(record.bucket_list_countries, country),
                "bucket_list_cities": tuple(c for c in record.bucket_list_cities if c.country != country),
            }
        )
    return record.model_copy(update={"bucket_list_countries": (*record.bucket_list_countries, country)})


def update_settings(updates: Mapping[str, Any], record: TravelRecord) -> TravelRecord:
    """Shallow-merge display settings (unknown keys are kept as-is)."""
    merged = {**record.settings.model_dump(), **_field_names(MapSettings, updates)}
    return record.model_copy(update={"settings": MapSettings.model_validate(merged)})


def add_passport_stamp(
    source: str | Mapping[str, Any],
    record: TravelRecord,
    *,
    clock: Clock = utc_now,
    ids: IdProvider = new_id,
) -> TravelRecord:
    """Append a stamp from a URL string or a `{"localId": ...}` mapping."""
    if isinstance(source, str):
        stamp = Stamp(id=ids(), date=clock(), url=source)
    else:
        payload = _field_names(Stamp, source)
        stamp = Stamp.model_validate({**payload, "id": ids(), "date": clock()})
    return record.model_copy(update={"passport_stamps": (*record.passport_stamps, stamp)})


def remove_passport_stamp(stamp_id: str, record: TravelRecord) -> TravelRecord:
    remaining = tuple(s for s in record.passport_stamps if s.id != stamp_id)
    if len(remaining) == len(record.passport_stamps):
        return record
    return record.model_copy(update={"passport_stamps": remaining})
