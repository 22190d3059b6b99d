"""
API routes.

Endpoints:
- GET  `/api/record`, `/api/stats`, `/api/wrapped/{year}`, `/api/routes`: read-only views.
- POST/PATCH/DELETE under `/api/cities`, `/api/bucket`, `/api/countries`, `/api/stamps`,
  `/api/settings`: one record mutator per request.
- POST `/api/import`, GET `/api/export`: native backup / location history exchange.

Every mutation is a read-modify-write through the store and returns the new
record together with freshly computed stats.
"""

from __future__ import annotations

from functools import lru_cache, partial
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from travelmap.config.settings import get_settings
from travelmap.core.env import resolve_project_path
from travelmap.core.geo import route_curves
from travelmap.core.time import zoned_clock
from travelmap.domain.models import City, DerivedStats, TravelRecord, WrappedStats, sort_by_date
from travelmap.quality.report import build_quality_report
from travelmap.record import mutators
from travelmap.record.importer import TravelImportError, export_data, import_data
from travelmap.stats.engine import compute_stats
from travelmap.stats.wrapped import compute_wrapped_stats
from travelmap.store.json_store import Command, RecordStore, RecordStoreError

router = APIRouter()


class StampRequest(BaseModel):
    url: str | None = None
    local_id: str | None = Field(default=None, alias="localId")


@lru_cache
def _store() -> RecordStore:
    settings = get_settings()
    return RecordStore(
        resolve_project_path(settings.store.path),
        clock=zoned_clock(settings.app.timezone),
    )


def _stats(record: TravelRecord) -> DerivedStats:
    return compute_stats(record, trip_gap_days=get_settings().stats.trip_gap_days)


def _snapshot(record: TravelRecord) -> dict[str, Any]:
    return {
        "record": record.model_dump(mode="json", by_alias=True),
        "stats": _stats(record).model_dump(mode="json", by_alias=True),
    }


def _load() -> TravelRecord:
    try:
        return _store().load()
    except RecordStoreError as e:
        raise HTTPException(status_code=500, detail={"code": "STORE_ERROR", "message": str(e)}) from e


def _apply(command: Command) -> dict[str, Any]:
    try:
        record = _store().update(command)
    except TravelImportError as e:
        raise HTTPException(status_code=400, detail={"code": "IMPORT_ERROR", "message": str(e)}) from e
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e
    except RecordStoreError as e:
        raise HTTPException(status_code=500, detail={"code": "STORE_ERROR", "message": str(e)}) from e
    return _snapshot(record)


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok"}


@router.get("/api/record")
def get_record() -> dict:
    return _load().model_dump(mode="json", by_alias=True)


@router.get("/api/stats", response_model=DerivedStats)
def get_stats() -> DerivedStats:
    return _stats(_load())


@router.get("/api/wrapped/{year}", response_model=WrappedStats)
def get_wrapped(year: int) -> WrappedStats:
    """Yearly recap; 404 with code NO_DATA when nothing was visited that year."""
    recap = compute_wrapped_stats(_load(), year, personas=get_settings().wrapped.personas)
    if recap is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "NO_DATA", "message": f"No travel memories found for {year} yet!"},
        )
    return recap


@router.get("/api/routes")
def get_routes() -> dict:
    """Curved polylines between consecutive visits (for drawing only)."""
    cities = [c for c in sort_by_date(_load().visited_cities) if c.date is not None]
    curves = route_curves(cities, steps=get_settings().stats.curve_steps)
    return {"segments": [[list(p) for p in curve] for curve in curves]}


@router.post("/api/cities")
def post_city(city: City) -> dict:
    store = _store()
    return _apply(partial(mutators.add_city, city, clock=store.clock, ids=store.ids))


@router.patch("/api/cities/{city_id}")
def patch_city(city_id: str, updates: dict[str, Any]) -> dict:
    return _apply(partial(mutators.update_city, city_id, updates))


@router.delete("/api/cities/{city_id}")
def delete_city(city_id: str) -> dict:
    return _apply(partial(mutators.remove_city, city_id))


@router.post("/api/bucket/cities")
def post_bucket_city(city: City) -> dict:
    return _apply(partial(mutators.add_bucket_city, city, ids=_store().ids))


@router.delete("/api/bucket/cities/{city_id}")
def delete_bucket_city(city_id: str) -> dict:
    return _apply(partial(mutators.remove_bucket_city, city_id))


@router.post("/api/countries/{country}/toggle")
def toggle_country(country: str) -> dict:
    return _apply(partial(mutators.toggle_country, country))


@router.post("/api/bucket/countries/{country}/toggle")
def toggle_bucket_country(country: str) -> dict:
    return _apply(partial(mutators.toggle_bucket_list, country))


@router.patch("/api/settings")
def patch_settings(updates: dict[str, Any]) -> dict:
    return _apply(partial(mutators.update_settings, updates))


@router.post("/api/stamps")
def post_stamp(stamp: StampRequest) -> dict:
    store = _store()
    source: str | dict[str, Any] = stamp.url if stamp.url else {"localId": stamp.local_id}
    return _apply(partial(mutators.add_passport_stamp, source, clock=store.clock, ids=store.ids))


@router.delete("/api/stamps/{stamp_id}")
def delete_stamp(stamp_id: str) -> dict:
    return _apply(partial(mutators.remove_passport_stamp, stamp_id))


@router.post("/api/import")
async def post_import(request: Request) -> dict:
    """Merge a raw JSON body (backup or location history) into the record."""
    try:
        text = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=400, detail={"code": "IMPORT_ERROR", "message": f"Body is not valid UTF-8: {e}"}
        ) from e
    store = _store()
    # The store update locks and does file I/O; keep it off the event loop.
    return await run_in_threadpool(_apply, partial(import_data, text, clock=store.clock, ids=store.ids))


@router.get("/api/export", response_class=PlainTextResponse)
def get_export() -> PlainTextResponse:
    return PlainTextResponse(
        export_data(_load()),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="travelmap-backup.json"'},
    )


@router.get("/api/quality/report")
def get_quality_report() -> dict:
    """Return the offline consistency report for the stored record."""
    return build_quality_report(_load())
