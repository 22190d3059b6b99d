"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- the travel record (`TravelRecord`) that stores persist and mutators replace
- derived analytics (`DerivedStats`, `WrappedStats`) recomputed on demand

Record types are frozen: a mutation always builds a new value. Python attributes are
snake_case; the native JSON backup uses camelCase aliases (`visitedCities`,
`customEmoji`, ...), so `model_dump(by_alias=True)` produces the on-disk format.
"""

from __future__ import annotations

import calendar
import datetime as dt
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _RecordModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class WeatherSnapshot(_RecordModel):
    """Weather at the time a city was added (already fetched by the caller)."""

    temp: float | None = None
    code: int | None = None
    time: dt.datetime | None = None


class City(_RecordModel):
    """A visited or wished-for city. Identity is `id`."""

    id: str | None = None
    name: str
    country: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    date: dt.date | None = None
    notes: str = ""
    photo: str | None = None
    custom_emoji: str | None = None
    weather: WeatherSnapshot | None = None
    cost: float | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def _none_notes(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("photo", "custom_emoji", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Stamp(_RecordModel):
    """A passport stamp image: a remote `url` or a `local_id` into image storage."""

    id: str
    date: dt.datetime
    url: str | None = None
    local_id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        # Older backups stored millisecond timestamps as numeric ids.
        if isinstance(value, int):
            return str(value)
        return value

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "Stamp":
        if (self.url is None) == (self.local_id is None):
            raise ValueError("stamp must have exactly one of url or localId")
        return self


class MapSettings(_RecordModel):
    """Display preferences. Opaque to the stats engine; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    map_style: Literal["dark", "satellite", "light", "vintage"] = "dark"
    global_emoji: str = "📍"
    show_heatmap: bool = False
    auto_day_night: bool = False


class TravelRecord(_RecordModel):
    """The full travel state. Always replaced wholesale on mutation."""

    visited_cities: tuple[City, ...] = ()
    visited_countries: tuple[str, ...] = ()
    bucket_list_countries: tuple[str, ...] = ()
    bucket_list_cities: tuple[City, ...] = ()
    passport_stamps: tuple[Stamp, ...] = ()
    settings: MapSettings = Field(default_factory=MapSettings)

    @field_validator("visited_countries", "bucket_list_countries")
    @classmethod
    def _unique_countries(cls, countries: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(countries))


class Achievement(BaseModel):
    id: str
    title: str
    description: str
    icon: str


class ContinentStat(BaseModel):
    name: str
    visited_count: int
    total_count: int
    percentage: float


class Trip(BaseModel):
    """A run of visited cities whose consecutive visits are close in time."""

    id: str
    name: str
    start_date: dt.date
    end_date: dt.date
    cities: list[City]
    countries: list[str]


class DerivedStats(BaseModel):
    """Analytics snapshot over one TravelRecord. Never stored."""

    visited_count: int
    total_count: int
    percentage: float
    total_distance_km: int
    achievements: list[Achievement] = Field(default_factory=list)
    continent_stats: list[ContinentStat] = Field(default_factory=list)
    trips: list[Trip] = Field(default_factory=list)


class PersonaRule(BaseModel):
    """One row of the recap persona table; bounds are inclusive, None means unbounded."""

    label: str
    min_cities: int | None = Field(default=None, ge=0)
    max_cities: int | None = Field(default=None, ge=0)
    min_countries: int | None = Field(default=None, ge=0)
    max_countries: int | None = Field(default=None, ge=0)

    def matches(self, *, city_count: int, country_count: int) -> bool:
        if self.min_cities is not None and city_count < self.min_cities:
            return False
        if self.max_cities is not None and city_count > self.max_cities:
            return False
        if self.min_countries is not None and country_count < self.min_countries:
            return False
        if self.max_countries is not None and country_count > self.max_countries:
            return False
        return True


class WrappedStats(BaseModel):
    """Single-year travel recap."""

    year: int
    distance_km: int
    city_count: int
    country_count: int
    continent_count: int
    peak_month: int = Field(..., ge=1, le=12)
    top_city: str
    persona: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def peak_month_name(self) -> str:
        return calendar.month_name[self.peak_month]


def sort_by_date(cities: Iterable[City]) -> list[City]:
    """Stable ascending sort by visit date; undated cities go first."""
    return sorted(cities, key=lambda c: c.date or dt.date.min)
