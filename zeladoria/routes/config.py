from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from zeladoria.application import get_scheduling_service
from zeladoria.core.capacity import lot_key
from zeladoria.core.schema import CapacityConfigModel, RegisterResponse

router = APIRouter(tags=["config"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialise_capacity(config: dict[int, float]) -> dict[str, float]:
    return {lot_key(lot): value for lot, value in sorted(config.items())}


@router.get("/health")
async def health() -> dict:
    return {"status": "alive", "timestamp": _timestamp()}


@router.get("/config")
async def get_config() -> dict:
    service = get_scheduling_service()
    config = service.get_capacity_config()
    return {"productionRate": _serialise_capacity(config), "timestamp": _timestamp()}


@router.put("/config")
async def update_config(payload: CapacityConfigModel) -> dict:
    """Replace capacity entries and re-forecast the lots whose value changed."""
    service = get_scheduling_service()
    try:
        result = await asyncio.to_thread(service.update_capacity_config, payload.production_rate)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    config = service.get_capacity_config()
    return {
        "productionRate": _serialise_capacity(config),
        "refresh": RegisterResponse.from_domain(result).model_dump(mode="json"),
    }
