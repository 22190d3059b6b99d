from datetime import date

import pytest

from travelmap.core.geo import haversine_km
from travelmap.domain.models import City, PersonaRule, TravelRecord
from travelmap.stats.wrapped import DEFAULT_PERSONAS, compute_wrapped_stats, pick_persona


def _city(name: str, country: str, lat: float, lng: float, day: date) -> City:
    return City(id=name.lower(), name=name, country=country, lat=lat, lng=lng, date=day)


@pytest.fixture()
def record() -> TravelRecord:
    cities = (
        _city("Seoul", "South Korea", 37.57, 126.98, date(2023, 12, 30)),
        _city("Tokyo", "Japan", 35.68, 139.69, date(2024, 1, 10)),
        _city("Paris", "France", 48.85, 2.35, date(2024, 1, 20)),
        _city("Lyon", "France", 45.76, 4.84, date(2024, 3, 3)),
        _city("Rome", "Italy", 41.9, 12.5, date(2024, 3, 15)),
    )
    return TravelRecord(
        visited_cities=cities,
        visited_countries=("South Korea", "Japan", "France", "Italy"),
    )


def test_wrapped_stats_for_year(record):
    recap = compute_wrapped_stats(record, 2024)
    assert recap is not None
    assert recap.year == 2024
    assert recap.city_count == 4
    assert recap.country_count == 3
    assert recap.continent_count == 2
    # January and March both have two visits: ties go to the earliest month.
    assert recap.peak_month == 1
    assert recap.peak_month_name == "January"
    # Most recent city of the year, not the most frequent one.
    assert recap.top_city == "Rome"
    assert recap.persona == "Border Hopper"


def test_wrapped_distance_only_covers_that_year(record):
    recap = compute_wrapped_stats(record, 2024)
    expected = (
        haversine_km(35.68, 139.69, 48.85, 2.35)
        + haversine_km(48.85, 2.35, 45.76, 4.84)
        + haversine_km(45.76, 4.84, 41.9, 12.5)
    )
    assert recap.distance_km == round(expected)


def test_wrapped_single_city_year(record):
    recap = compute_wrapped_stats(record, 2023)
    assert recap.distance_km == 0
    assert recap.top_city == "Seoul"
    assert recap.peak_month == 12
    assert recap.persona == "Weekend Wanderer"


def test_wrapped_returns_none_without_visits(record):
    assert compute_wrapped_stats(record, 2022) is None
    assert compute_wrapped_stats(TravelRecord(), 2024) is None


def test_wrapped_serializes_month_name(record):
    data = compute_wrapped_stats(record, 2024).model_dump(mode="json")
    assert data["peak_month_name"] == "January"


@pytest.mark.parametrize(
    "cities, countries, label",
    [
        (5, 5, "Globetrotter"),
        (30, 7, "Globetrotter"),
        (8, 1, "Deep Diver"),
        (12, 2, "Deep Diver"),
        (7, 2, "City Collector"),
        (3, 3, "Border Hopper"),
        (2, 2, "Weekend Wanderer"),
        (6, 2, "City Collector"),
        (4, 1, "City Collector"),
        (1, 1, "Weekend Wanderer"),
    ],
)
def test_default_persona_table(cities, countries, label):
    assert pick_persona(cities, countries, DEFAULT_PERSONAS) == label


def test_custom_persona_rules(record):
    rules = [PersonaRule(label="Jet Setter", min_cities=4), PersonaRule(label="Homebody")]
    assert compute_wrapped_stats(record, 2024, personas=rules).persona == "Jet Setter"
    assert compute_wrapped_stats(record, 2023, personas=rules).persona == "Homebody"
    assert pick_persona(1, 1, []) == "Traveler"
