from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException, Query

from zeladoria.application import get_scheduling_service
from zeladoria.core.buckets import DateRange, TimeBucket
from zeladoria.core.errors import InvalidDate
from zeladoria.core.filters import AreaFilter
from zeladoria.core.schema import RegisterRequest, RegisterResponse, ServiceAreaModel
from zeladoria.domain import AreaStatus

router = APIRouter(prefix="/areas", tags=["areas"])


def _custom_range(date_from: str | None, date_to: str | None) -> DateRange | None:
    if date_from is None and date_to is None:
        return None
    if not date_from or not date_to:
        raise HTTPException(status_code=400, detail="date_from and date_to must be provided together")
    try:
        return DateRange.of(date_from, date_to)
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("")
async def list_areas(
    service: str | None = Query(default=None),
    lot: int | None = Query(default=None),
    status: AreaStatus | None = Query(default=None),
    neighborhood: str | None = Query(default=None),
    area_type: str | None = Query(default=None),
    search: str | None = Query(default=None),
    bucket: TimeBucket | None = Query(default=None),
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    reference_date: str | None = Query(default=None),
) -> dict:
    custom_range = _custom_range(date_from, date_to)
    if bucket is TimeBucket.CUSTOM and custom_range is None:
        raise HTTPException(status_code=400, detail="custom bucket requires date_from and date_to")

    service_layer = get_scheduling_service()
    filters = AreaFilter(
        search=search,
        neighborhood=neighborhood,
        lot=lot,
        status=status,
        area_type=area_type,
        service=service,
    )
    try:
        areas = service_layer.list_areas(
            filters,
            bucket=bucket,
            reference_date=reference_date,
            custom_range=custom_range,
        )
        items = [
            ServiceAreaModel.from_domain(
                area,
                bucket=_bucket_value(service_layer.classify(area, reference_date, custom_range)),
            ).model_dump(mode="json")
            for area in areas
        ]
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"count": len(items), "items": items}


def _bucket_value(bucket: TimeBucket | None) -> str | None:
    return bucket.value if bucket is not None else None


@router.get("/search")
async def search_areas(
    q: str = Query(default=""),
    service: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
) -> dict:
    service_layer = get_scheduling_service()
    areas = service_layer.search_areas(q, service=service, limit=limit)
    return {"items": [ServiceAreaModel.from_domain(area).model_dump(mode="json") for area in areas]}


@router.get("/buckets")
async def get_bucket_counts(
    service: str | None = Query(default=None),
    reference_date: str | None = Query(default=None),
) -> dict:
    service_layer = get_scheduling_service()
    try:
        counts = service_layer.bucket_counts(reference_date, service=service)
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"reference_date": reference_date, "counts": counts}


@router.get("/{area_id}")
async def get_area(area_id: int, reference_date: str | None = Query(default=None)) -> dict:
    service_layer = get_scheduling_service()
    area = service_layer.get_area(area_id)
    if area is None:
        raise HTTPException(status_code=404, detail="area not found")
    try:
        bucket = service_layer.classify(area, reference_date)
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ServiceAreaModel.from_domain(area, bucket=_bucket_value(bucket)).model_dump(mode="json")


@router.post("/register")
async def register_areas(payload: RegisterRequest) -> dict:
    """Mark a batch of areas as serviced (or forecast) on a given date."""
    service_layer = get_scheduling_service()
    try:
        result = await asyncio.to_thread(service_layer.register, payload.area_ids, payload.date, payload.kind)
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RegisterResponse.from_domain(result).model_dump(mode="json")
