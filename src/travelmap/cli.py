"""
TravelMap CLI entrypoint.

Every mutating command is one read-modify-write through `RecordStore.update`;
reporting commands recompute statistics from the stored record.
"""

from __future__ import annotations

import argparse
import json
import sys
from functools import partial
from pathlib import Path
from typing import Any

from travelmap.config.settings import Settings, get_settings
from travelmap.core.env import resolve_project_path
from travelmap.core.logging import configure_logging
from travelmap.core.time import parse_day, zoned_clock
from travelmap.domain.models import City, DerivedStats
from travelmap.quality.report import build_quality_report
from travelmap.record import mutators
from travelmap.record.importer import export_data, import_data
from travelmap.stats.engine import compute_stats
from travelmap.stats.wrapped import compute_wrapped_stats
from travelmap.store.json_store import RecordStore, RecordStoreError


def _parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """Parse `KEY=VALUE` arguments; values are read as JSON when possible."""
    out: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"Invalid --set '{pair}', expected KEY=VALUE")
        key, raw = pair.split("=", 1)
        try:
            value: Any = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        out[key.strip()] = value
    return out


def build_store(settings: Settings, path: str | None = None) -> RecordStore:
    resolved = resolve_project_path(path or settings.store.path)
    return RecordStore(resolved, clock=zoned_clock(settings.app.timezone))


def _stats(store: RecordStore, settings: Settings) -> DerivedStats:
    return compute_stats(store.load(), trip_gap_days=settings.stats.trip_gap_days)


def _city_from_args(args: argparse.Namespace) -> City:
    return City(
        name=args.name,
        country=args.country,
        lat=float(args.lat),
        lng=float(args.lng),
        date=parse_day(args.date) if getattr(args, "date", None) else None,
        notes=getattr(args, "notes", None) or "",
        custom_emoji=getattr(args, "emoji", None),
        cost=getattr(args, "cost", None),
    )


def _print_record_summary(store: RecordStore, settings: Settings) -> None:
    stats = _stats(store, settings)
    print(
        f"{stats.visited_count}/{stats.total_count} countries ({stats.percentage}%), "
        f"{stats.total_distance_km:,} km traveled"
    )


def _cmd_stats(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    stats = _stats(store, settings)
    if args.json:
        print(json.dumps(stats.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"Countries visited: {stats.visited_count}/{stats.total_count} ({stats.percentage}%)")
    print(f"Distance traveled: {stats.total_distance_km:,} km")
    print("Continents:")
    for cont in stats.continent_stats:
        print(f"  {cont.name:<14} {cont.visited_count:>3}/{cont.total_count:<3} {cont.percentage:>5}%")
    if stats.achievements:
        print("Achievements:")
        for ach in stats.achievements:
            print(f"  {ach.icon} {ach.title}: {ach.description}")
    return 0


def _cmd_trips(_: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    stats = _stats(store, settings)
    if not stats.trips:
        print("No trips yet.")
        return 0
    for trip in stats.trips:
        names = ", ".join(c.name for c in trip.cities)
        print(f"{trip.start_date.isoformat()} .. {trip.end_date.isoformat()}  {trip.name}  ({names})")
    return 0


def _cmd_wrapped(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    year = int(args.year) if args.year is not None else store.clock().year
    recap = compute_wrapped_stats(store.load(), year, personas=settings.wrapped.personas)
    if recap is None:
        print(f"No travel memories found for {year} yet!", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(recap.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(f"{recap.year} Recap")
    print(f"  Distance:   {recap.distance_km:,} km ({recap.distance_km / 40075:.2f}x around the earth)")
    print(f"  Cities:     {recap.city_count}")
    print(f"  Countries:  {recap.country_count}")
    print(f"  Continents: {recap.continent_count}")
    print(f"  Peak month: {recap.peak_month_name}")
    print(f"  Top stop:   {recap.top_city}")
    print(f"  You are:    {recap.persona}")
    return 0


def _cmd_add_city(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    city = _city_from_args(args)
    store.update(partial(mutators.add_city, city, clock=store.clock, ids=store.ids))
    _print_record_summary(store, settings)
    return 0


def _cmd_add_bucket_city(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    store.update(partial(mutators.add_bucket_city, _city_from_args(args), ids=store.ids))
    print(f"Added {args.name} ({args.country}) to the bucket list.")
    return 0


def _cmd_remove_city(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    store.update(partial(mutators.remove_city, args.city_id))
    _print_record_summary(store, settings)
    return 0


def _cmd_remove_bucket_city(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    store.update(partial(mutators.remove_bucket_city, args.city_id))
    return 0


def _cmd_update_city(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    store.update(partial(mutators.update_city, args.city_id, _parse_pairs(args.set)))
    return 0


def _cmd_toggle_country(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    record = store.update(partial(mutators.toggle_country, args.country))
    state = "visited" if args.country in record.visited_countries else "not visited"
    print(f"{args.country}: {state}")
    return 0


def _cmd_toggle_bucket(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    record = store.update(partial(mutators.toggle_bucket_list, args.country))
    if args.country in record.visited_countries:
        print(f"{args.country} is already visited; bucket list unchanged.")
    else:
        state = "on" if args.country in record.bucket_list_countries else "off"
        print(f"{args.country}: {state} the bucket list")
    return 0


def _cmd_settings(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    record = store.update(partial(mutators.update_settings, _parse_pairs(args.set)))
    print(json.dumps(record.settings.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
    return 0


def _cmd_add_stamp(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    source: str | dict[str, str] = args.url if args.url else {"localId": args.local_id}
    store.update(partial(mutators.add_passport_stamp, source, clock=store.clock, ids=store.ids))
    return 0


def _cmd_remove_stamp(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    store.update(partial(mutators.remove_passport_stamp, args.stamp_id))
    return 0


def _cmd_import(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    store.update(partial(import_data, text, clock=store.clock, ids=store.ids))
    print("Import successful! Your travel map has been updated.")
    _print_record_summary(store, settings)
    return 0


def _cmd_export(args: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    text = export_data(store.load())
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Exported to {args.output}")
    else:
        print(text)
    return 0


def _cmd_check(_: argparse.Namespace, store: RecordStore, settings: Settings) -> int:
    report = build_quality_report(store.load())
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0 if report["ok"] else 2


def _add_city_arguments(p: argparse.ArgumentParser, *, visited: bool) -> None:
    p.add_argument("--name", required=True)
    p.add_argument("--country", required=True)
    p.add_argument("--lat", required=True, type=float)
    p.add_argument("--lng", required=True, type=float)
    if visited:
        p.add_argument("--date", default=None, help="Visit day (YYYY-MM-DD); defaults to today")
        p.add_argument("--notes", default=None)
        p.add_argument("--emoji", default=None, help="Custom map marker emoji")
        p.add_argument("--cost", type=float, default=None)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the TravelMap CLI."""
    parser = argparse.ArgumentParser(prog="travelmap")
    parser.add_argument("--store", default=None, help="Record file (defaults to settings store.path)")
    sub = parser.add_subparsers(dest="command", required=True)

    s = sub.add_parser("stats", help="Coverage, distance, continents and achievements.")
    s.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    s.set_defaults(func=_cmd_stats)

    t = sub.add_parser("trips", help="Visited cities grouped into trips, most recent first.")
    t.set_defaults(func=_cmd_trips)

    w = sub.add_parser("wrapped", help="Yearly recap.")
    w.add_argument("--year", type=int, default=None, help="Defaults to the current year")
    w.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    w.set_defaults(func=_cmd_wrapped)

    a = sub.add_parser("add-city", help="Record a visited city.")
    _add_city_arguments(a, visited=True)
    a.set_defaults(func=_cmd_add_city)

    b = sub.add_parser("add-bucket-city", help="Add a city to the bucket list.")
    _add_city_arguments(b, visited=False)
    b.set_defaults(func=_cmd_add_bucket_city)

    r = sub.add_parser("remove-city", help="Remove a visited city by id.")
    r.add_argument("city_id")
    r.set_defaults(func=_cmd_remove_city)

    rb = sub.add_parser("remove-bucket-city", help="Remove a bucket-list city by id.")
    rb.add_argument("city_id")
    rb.set_defaults(func=_cmd_remove_bucket_city)

    u = sub.add_parser("update-city", help="Edit fields of a visited city.")
    u.add_argument("city_id")
    u.add_argument("--set", action="append", default=[], required=True, help="FIELD=VALUE (repeatable)")
    u.set_defaults(func=_cmd_update_city)

    tc = sub.add_parser("toggle-country", help="Mark a country visited / not visited.")
    tc.add_argument("country")
    tc.set_defaults(func=_cmd_toggle_country)

    tb = sub.add_parser("toggle-bucket", help="Add / remove a country on the bucket list.")
    tb.add_argument("country")
    tb.set_defaults(func=_cmd_toggle_bucket)

    st = sub.add_parser("settings", help="Update map display settings.")
    st.add_argument("--set", action="append", default=[], required=True, help="KEY=VALUE (repeatable)")
    st.set_defaults(func=_cmd_settings)

    ps = sub.add_parser("add-stamp", help="Add a passport stamp image.")
    src = ps.add_mutually_exclusive_group(required=True)
    src.add_argument("--url", default=None)
    src.add_argument("--local-id", dest="local_id", default=None)
    ps.set_defaults(func=_cmd_add_stamp)

    rs = sub.add_parser("remove-stamp", help="Remove a passport stamp by id.")
    rs.add_argument("stamp_id")
    rs.set_defaults(func=_cmd_remove_stamp)

    im = sub.add_parser("import", help="Merge a backup or location-history JSON file.")
    im.add_argument("file")
    im.set_defaults(func=_cmd_import)

    ex = sub.add_parser("export", help="Write the record as a JSON backup.")
    ex.add_argument("--output", default=None)
    ex.set_defaults(func=_cmd_export)

    c = sub.add_parser("check", help="Offline consistency report for the stored record.")
    c.set_defaults(func=_cmd_check)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m travelmap.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    store = build_store(settings, args.store)
    func: Any = getattr(args, "func")
    try:
        return int(func(args, store, settings))
    except (RecordStoreError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
