"""
Record consistency report.

Goal: a deterministic, offline answer to "does this travel record still satisfy
the invariants the mutators promise?"
Used by:
- CLI `travelmap check`
- API status endpoint
- tests asserting invariants after mutator sequences
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from travelmap.domain.continents import continent_of
from travelmap.domain.models import TravelRecord


@dataclass(frozen=True)
class Issue:
    severity: str  # "info" | "warning" | "error"
    code: str
    message: str
    count: int = 1
    sample: list[str] | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "count": int(self.count),
            "sample": list(self.sample or []),
        }


def _duplicates(values: list[str]) -> list[str]:
    seen: set[str] = set()
    dup: list[str] = []
    for v in values:
        if v in seen and v not in dup:
            dup.append(v)
        seen.add(v)
    return dup


def record_issues(record: TravelRecord) -> list[Issue]:
    issues: list[Issue] = []

    ids = [c.id or "" for c in (*record.visited_cities, *record.bucket_list_cities)]
    dup = _duplicates(ids)
    if dup:
        issues.append(
            Issue(
                severity="error",
                code="DUPLICATE_CITY_ID",
                message="City ids must be unique.",
                count=len(dup),
                sample=dup[:10],
            )
        )

    missing_id = [c.name for c in record.visited_cities if not c.id]
    if missing_id:
        issues.append(
            Issue(
                severity="error",
                code="CITY_WITHOUT_ID",
                message="Visited cities must carry an id.",
                count=len(missing_id),
                sample=missing_id[:10],
            )
        )

    visited = set(record.visited_countries)
    orphaned = sorted({c.country for c in record.visited_cities if c.country not in visited})
    if orphaned:
        issues.append(
            Issue(
                severity="error",
                code="CITY_COUNTRY_NOT_VISITED",
                message="Visited cities reference countries missing from the visited list.",
                count=len(orphaned),
                sample=orphaned[:10],
            )
        )

    overlap = sorted(visited.intersection(record.bucket_list_countries))
    if overlap:
        issues.append(
            Issue(
                severity="error",
                code="BUCKET_LIST_OVERLAP",
                message="Countries cannot be both visited and on the bucket list.",
                count=len(overlap),
                sample=overlap[:10],
            )
        )

    undated = [c.name for c in record.visited_cities if c.date is None]
    if undated:
        issues.append(
            Issue(
                severity="warning",
                code="CITY_WITHOUT_DATE",
                message="Visited cities without a date are left out of trips.",
                count=len(undated),
                sample=undated[:10],
            )
        )

    dates = [c.date for c in record.visited_cities if c.date is not None]
    if any(a > b for a, b in zip(dates, dates[1:])):
        issues.append(
            Issue(severity="error", code="CITIES_NOT_SORTED", message="Visited cities must be sorted by date.")
        )

    unknown = sorted(c for c in visited if continent_of(c) is None)
    if unknown:
        issues.append(
            Issue(
                severity="info",
                code="COUNTRY_OUTSIDE_TAXONOMY",
                message="Visited countries not in the continent table (counted in totals only).",
                count=len(unknown),
                sample=unknown[:10],
            )
        )

    return issues


def build_quality_report(record: TravelRecord) -> dict[str, Any]:
    issues = record_issues(record)
    return {
        "ok": not any(i.severity == "error" for i in issues),
        "counts": {
            "visited_cities": len(record.visited_cities),
            "visited_countries": len(record.visited_countries),
            "bucket_list_cities": len(record.bucket_list_cities),
            "bucket_list_countries": len(record.bucket_list_countries),
            "passport_stamps": len(record.passport_stamps),
        },
        "issues": [i.as_dict() for i in issues],
    }
