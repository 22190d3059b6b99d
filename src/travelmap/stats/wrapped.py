"""
Yearly recap ("wrapped") statistics.

The year is an explicit argument: callers decide "this year" from their clock.
A year without visits yields None so the presentation layer can tell the user
instead of rendering an empty recap.

Notes:
- `distance_km` only covers that year's visits, not the lifetime running total.
- `top_city` is the most recent city of the year, not the most frequent one.
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from travelmap.domain.continents import continents_touched
from travelmap.domain.models import PersonaRule, TravelRecord, WrappedStats, sort_by_date
from travelmap.stats.engine import total_distance_km

# First match wins; the last row must match everything.
DEFAULT_PERSONAS: tuple[PersonaRule, ...] = (
    PersonaRule(label="Globetrotter", min_countries=5),
    PersonaRule(label="Deep Diver", min_cities=8, max_countries=2),
    PersonaRule(label="Border Hopper", min_countries=3),
    PersonaRule(label="City Collector", min_cities=4),
    PersonaRule(label="Weekend Wanderer"),
)

FALLBACK_PERSONA = "Traveler"


def pick_persona(
    city_count: int, country_count: int, personas: Sequence[PersonaRule] = DEFAULT_PERSONAS
) -> str:
    for rule in personas:
        if rule.matches(city_count=city_count, country_count=country_count):
            return rule.label
    return FALLBACK_PERSONA


def compute_wrapped_stats(
    record: TravelRecord,
    year: int,
    *,
    personas: Sequence[PersonaRule] = DEFAULT_PERSONAS,
) -> WrappedStats | None:
    """Summarize the visits dated in `year`, or return None when there are none."""
    cities = sort_by_date(c for c in record.visited_cities if c.date is not None and c.date.year == year)
    if not cities:
        return None

    countries = list(dict.fromkeys(c.country for c in cities))
    months = Counter(c.date.month for c in cities)  # type: ignore[union-attr]
    # Highest count, ties to the earliest month.
    peak_month = min(months, key=lambda m: (-months[m], m))

    return WrappedStats(
        year=year,
        distance_km=total_distance_km(cities),
        city_count=len(cities),
        country_count=len(countries),
        continent_count=len(continents_touched(countries)),
        peak_month=peak_month,
        top_city=cities[-1].name,
        persona=pick_persona(len(cities), len(countries), personas),
    )
