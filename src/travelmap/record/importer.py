"""
Import and export of travel data.

Two payload shapes are accepted. The raw JSON is classified into exactly one
variant before anything is merged:
- `NativeBackup`: a TravelMap backup (object with `visitedCities` or `visitedCountries`)
- `LocationHistory`: a location-history export (object with a `locations` list,
  or a bare list of location items)

Any failure raises `TravelImportError` before a new record is built, so a bad
file never leaves a partially merged record behind.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from travelmap.core.ids import IdProvider, new_id
from travelmap.core.time import Clock, day_from_epoch_ms, parse_day, today, utc_now
from travelmap.domain.models import City, Stamp, TravelRecord, sort_by_date
from travelmap.record.mutators import update_settings

logger = logging.getLogger(__name__)

UNRECOGNIZED_FORMAT = "Unrecognized JSON format. File must be a TravelMap backup or a location history export."


class TravelImportError(ValueError):
    """Raised when an import payload cannot be parsed or merged."""


class NativeBackup(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    visited_cities: list[City] = Field(default_factory=list)
    visited_countries: list[str] = Field(default_factory=list)
    bucket_list_countries: list[str] = Field(default_factory=list)
    bucket_list_cities: list[City] = Field(default_factory=list)
    passport_stamps: list[Stamp] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)


class LocationItem(BaseModel):
    """One entry of a location-history export (loose; most fields optional)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    address: str | None = None
    country: str | None = None
    lat: float | None = None
    lng: float | None = None
    latitude_e7: float | None = Field(default=None, alias="latitudeE7")
    longitude_e7: float | None = Field(default=None, alias="longitudeE7")
    date: str | None = None
    timestamp_ms: int | str | None = Field(default=None, alias="timestampMs")
    timestamp: str | None = None


@dataclass(frozen=True)
class LocationHistory:
    items: list[LocationItem]


ImportPayload = Union[NativeBackup, LocationHistory]


def classify_payload(parsed: Any) -> ImportPayload:
    """Decide which import variant `parsed` JSON is (raises TravelImportError)."""
    try:
        if isinstance(parsed, dict) and ("visitedCities" in parsed or "visitedCountries" in parsed):
            # Older backups wrote null for empty sections.
            return NativeBackup.model_validate({k: v for k, v in parsed.items() if v is not None})

        locations = parsed.get("locations") if isinstance(parsed, dict) else parsed
        if isinstance(locations, list):
            return LocationHistory(items=[LocationItem.model_validate(item) for item in locations])
    except ValidationError as e:
        raise TravelImportError(f"Invalid import data: {e.error_count()} validation error(s): {e}") from e

    raise TravelImportError(UNRECOGNIZED_FORMAT)


def parse_payload(json_text: str) -> ImportPayload:
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise TravelImportError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    return classify_payload(parsed)


def _merge_by_id(existing: tuple[Any, ...], incoming: list[Any]) -> list[Any]:
    """Union by id: later values win, first-seen position is kept."""
    merged: dict[str, Any] = {}
    for item in (*existing, *incoming):
        merged[item.id] = item
    return list(merged.values())


def _merge_native(
    backup: NativeBackup, record: TravelRecord, *, clock: Clock, ids: IdProvider
) -> TravelRecord:
    def _prepare(city: City, *, visited: bool) -> City:
        update: dict[str, Any] = {}
        if not city.id:
            update["id"] = ids()
        if visited and city.date is None:
            update["date"] = today(clock)
        return city.model_copy(update=update) if update else city

    visited_cities = sort_by_date(
        _merge_by_id(record.visited_cities, [_prepare(c, visited=True) for c in backup.visited_cities])
    )
    visited_countries = tuple(
        dict.fromkeys(
            [*record.visited_countries, *backup.visited_countries, *(c.country for c in visited_cities)]
        )
    )
    bucket_countries = tuple(
        c
        for c in dict.fromkeys([*record.bucket_list_countries, *backup.bucket_list_countries])
        if c not in visited_countries
    )
    settings = update_settings(backup.settings, record).settings

    return TravelRecord(
        visited_cities=tuple(visited_cities),
        visited_countries=visited_countries,
        bucket_list_countries=bucket_countries,
        bucket_list_cities=tuple(
            _merge_by_id(record.bucket_list_cities, [_prepare(c, visited=False) for c in backup.bucket_list_cities])
        ),
        passport_stamps=tuple(_merge_by_id(record.passport_stamps, backup.passport_stamps)),
        settings=settings,
    )


def location_to_city(item: LocationItem, *, clock: Clock, ids: IdProvider) -> City:
    """Map one location-history item to a visited City."""
    lat = item.lat if item.lat is not None else (item.latitude_e7 / 1e7 if item.latitude_e7 else 0.0)
    lng = item.lng if item.lng is not None else (item.longitude_e7 / 1e7 if item.longitude_e7 else 0.0)

    if item.date:
        day = parse_day(item.date)
    elif item.timestamp_ms is not None:
        day = day_from_epoch_ms(item.timestamp_ms)
    elif item.timestamp:
        day = parse_day(item.timestamp)
    else:
        day = today(clock)

    return City(
        id=ids(),
        name=item.name or item.address or "Unknown Location",
        country=item.country or "Unknown",
        lat=lat,
        lng=lng,
        date=day,
        notes="Imported Data",
    )


def _merge_history(
    history: LocationHistory, record: TravelRecord, *, clock: Clock, ids: IdProvider
) -> TravelRecord:
    imported = [location_to_city(item, clock=clock, ids=ids) for item in history.items]
    visited_countries = tuple(dict.fromkeys([*record.visited_countries, *(c.country for c in imported)]))
    return record.model_copy(
        update={
            "visited_cities": tuple(sort_by_date([*record.visited_cities, *imported])),
            "visited_countries": visited_countries,
            "bucket_list_countries": tuple(
                c for c in record.bucket_list_countries if c not in visited_countries
            ),
        }
    )


def import_data(
    json_text: str,
    record: TravelRecord,
    *,
    clock: Clock = utc_now,
    ids: IdProvider = new_id,
) -> TravelRecord:
    """Merge an import payload into `record` and return the new record.

    Raises `TravelImportError` for malformed or unrecognized input; `record` is
    never modified.
    """
    payload = parse_payload(json_text)
    try:
        if isinstance(payload, NativeBackup):
            merged = _merge_native(payload, record, clock=clock, ids=ids)
            logger.info("Imported backup: %d visited cities.", len(payload.visited_cities))
        else:
            merged = _merge_history(payload, record, clock=clock, ids=ids)
            logger.info("Imported location history: %d locations.", len(payload.items))
    except (ValidationError, ValueError) as e:
        raise TravelImportError(f"Import failed: {e}") from e
    return merged


def export_data(record: TravelRecord, *, indent: int | None = 2) -> str:
    """Serialize `record` as a native backup that `import_data` reads back."""
    return json.dumps(record.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=indent)
