"""
Trip segmentation.

A trip is a run of visited cities where each visit is at most `gap_days` after
the previous one. Grouping law, for the returned trips:
- inside one trip, consecutive visits are <= `gap_days` apart
- between trips, the last visit of one and the first of the next are > `gap_days` apart
"""

from __future__ import annotations

from typing import Sequence

from travelmap.core.ids import IdProvider, new_id
from travelmap.domain.models import City, Trip

DEFAULT_TRIP_GAP_DAYS = 14


def trip_name(countries: Sequence[str]) -> str:
    """`"{first} Trip"` for a single-country trip, `"{first} & More"` otherwise."""
    if len(countries) == 1:
        return f"{countries[0]} Trip"
    return f"{countries[0]} & More"


def split_by_gap(cities: Sequence[City], gap_days: int = DEFAULT_TRIP_GAP_DAYS) -> list[list[City]]:
    """Split date-sorted cities into groups at every gap longer than `gap_days`."""
    groups: list[list[City]] = []
    current: list[City] = []
    for city in cities:
        if city.date is None:
            raise ValueError(f"city {city.id!r} has no visit date")
        if current and (city.date - current[-1].date).days > gap_days:  # type: ignore[operator]
            groups.append(current)
            current = []
        current.append(city)
    if current:
        groups.append(current)
    return groups


def group_trips(
    cities: Sequence[City],
    *,
    gap_days: int = DEFAULT_TRIP_GAP_DAYS,
    ids: IdProvider = new_id,
) -> list[Trip]:
    """Group date-sorted visited cities into trips, most recent trip first.

    Trip ids come from `ids` and are not stable across calls.
    """
    trips: list[Trip] = []
    for group in split_by_gap(cities, gap_days):
        countries = list(dict.fromkeys(c.country for c in group))
        trips.append(
            Trip(
                id=ids(),
                name=trip_name(countries),
                start_date=group[0].date,
                end_date=group[-1].date,
                cities=list(group),
                countries=countries,
            )
        )
    trips.reverse()
    return trips
