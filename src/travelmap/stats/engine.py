"""
Derived statistics for a travel record.

`compute_stats` is a pure function of the record: no clock, no I/O. Callers
recompute after every mutation instead of storing the result.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from travelmap.core.geo import path_length_km
from travelmap.core.ids import IdProvider, new_id
from travelmap.domain.continents import CONTINENTS, TOTAL_COUNTRIES
from travelmap.domain.models import (
    Achievement,
    City,
    ContinentStat,
    DerivedStats,
    TravelRecord,
    sort_by_date,
)
from travelmap.trips.segment import DEFAULT_TRIP_GAP_DAYS, group_trips

FIRST_STEP = Achievement(
    id="first_step", title="First Step", description="Visited your first country!", icon="👣"
)
EXPLORER = Achievement(
    id="explorer", title="Explorer", description="Reached 5% world coverage", icon="🗺️"
)
TOTAL_NOMAD = Achievement(
    id="nomad", title="Total Nomad", description="Reached 10% world coverage", icon="🌎"
)
CONTINENT_HOPPER = Achievement(
    id="continent_hopper",
    title="Continent Hopper",
    description="Visited 3 different continents",
    icon="✈️",
)


def world_percentage(visited_count: int) -> float:
    return visited_count / TOTAL_COUNTRIES * 100


def continent_stats(visited_countries: Sequence[str]) -> list[ContinentStat]:
    """One entry per continent, in the fixed table order."""
    visited = set(visited_countries)
    out: list[ContinentStat] = []
    for name, members in CONTINENTS.items():
        count = sum(1 for c in members if c in visited)
        out.append(
            ContinentStat(
                name=name,
                visited_count=count,
                total_count=len(members),
                percentage=round(count / len(members) * 100, 1),
            )
        )
    return out


def evaluate_achievements(visited_count: int, continents: Sequence[ContinentStat]) -> list[Achievement]:
    """Achievements unlocked by the current state only (no history)."""
    pct = world_percentage(visited_count)
    unlocked: list[Achievement] = []
    if visited_count >= 1:
        unlocked.append(FIRST_STEP)
    if pct >= 5:
        unlocked.append(EXPLORER)
    if pct >= 10:
        unlocked.append(TOTAL_NOMAD)
    if sum(1 for s in continents if s.visited_count >= 1) >= 3:
        unlocked.append(CONTINENT_HOPPER)
    return unlocked


def total_distance_km(cities: Iterable[City]) -> int:
    """Haversine distance over consecutive visits in date order, rounded to km."""
    return round(path_length_km(sort_by_date(cities)))


def compute_stats(
    record: TravelRecord,
    *,
    trip_gap_days: int = DEFAULT_TRIP_GAP_DAYS,
    ids: IdProvider = new_id,
) -> DerivedStats:
    """Compute coverage, achievements, distance and trips for `record`."""
    visited_count = len(record.visited_countries)
    continents = continent_stats(record.visited_countries)
    ordered = sort_by_date(record.visited_cities)
    dated = [c for c in ordered if c.date is not None]

    return DerivedStats(
        visited_count=visited_count,
        total_count=TOTAL_COUNTRIES,
        percentage=round(world_percentage(visited_count), 1),
        total_distance_km=total_distance_km(ordered),
        achievements=evaluate_achievements(visited_count, continents),
        continent_stats=continents,
        trips=group_trips(dated, gap_days=trip_gap_days, ids=ids),
    )
