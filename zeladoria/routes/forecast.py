from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException, Query

from zeladoria.application import get_scheduling_service
from zeladoria.core.errors import ConfigMissing, InvalidDate
from zeladoria.core.schema import ForecastUpdateModel, RegisterResponse

router = APIRouter(prefix="/forecast", tags=["forecast"])


@router.get("/preview")
async def preview_forecast(
    lot: int | None = Query(default=None),
    reference_date: str | None = Query(default=None),
) -> dict:
    service = get_scheduling_service()
    try:
        updates = service.preview(lot, reference_date)
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ConfigMissing as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {
        "lot": lot,
        "reference_date": reference_date,
        "items": [ForecastUpdateModel.from_domain(item).model_dump(mode="json") for item in updates],
    }


@router.post("/refresh")
async def refresh_forecast(payload: dict | None = None) -> dict:
    payload = payload or {}
    lot = payload.get("lot")
    if lot is not None and not isinstance(lot, int):
        raise HTTPException(status_code=400, detail="lot must be an integer")
    service = get_scheduling_service()
    try:
        result = await asyncio.to_thread(service.refresh, lot, payload.get("reference_date"))
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RegisterResponse.from_domain(result).model_dump(mode="json")
