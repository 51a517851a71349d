"""Data store backed by Supabase, reached through its PostgREST HTTP API."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import httpx

from zeladoria.core.capacity import lot_key, load_default_capacity, normalise_capacity_config
from zeladoria.core.converters import (
    area_from_record,
    history_entry_to_record,
    update_fields_to_record,
)
from zeladoria.core.errors import PersistenceFailure
from zeladoria.domain import HistoryEntry, ServiceArea

logger = logging.getLogger(__name__)

AREAS_TABLE = "service_areas"
CONFIG_TABLE = "app_config"


class SupabaseAreaRepository:
    """Repository over the ``service_areas`` and ``app_config`` tables."""

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        page_size: int = 1000,
        default_capacity: Mapping[object, object] | None = None,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("url must include scheme and host")
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        self._rest_url = f"{parsed.scheme}://{parsed.netloc}/rest/v1"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._page_size = page_size
        self._default_capacity = (
            normalise_capacity_config(default_capacity) if default_capacity is not None else load_default_capacity()
        )
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _get(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        response = self._client.get(f"{self._rest_url}/{table}", params=params, headers=self._headers)
        response.raise_for_status()
        return response.json() or []

    def _patch(self, table: str, params: dict[str, Any], body: dict[str, Any]) -> list[dict[str, Any]]:
        headers = {**self._headers, "Prefer": "return=representation"}
        response = self._client.patch(f"{self._rest_url}/{table}", params=params, json=body, headers=headers)
        response.raise_for_status()
        return response.json() or []

    def _fetch_all(self, filters: dict[str, str]) -> list[dict[str, Any]]:
        """Read every matching row, one page at a time."""

        rows: list[dict[str, Any]] = []
        page = 0
        while True:
            params = {
                "select": "*",
                "order": "ordem.asc,id.asc",
                "offset": page * self._page_size,
                "limit": self._page_size,
                **filters,
            }
            batch = self._get(AREAS_TABLE, params)
            rows.extend(batch)
            logger.debug("fetched page %s of %s (%s rows)", page + 1, AREAS_TABLE, len(batch))
            if len(batch) < self._page_size:
                break
            page += 1
        return rows

    @staticmethod
    def _service_filter(service: str | None) -> dict[str, str]:
        return {"servico": f"eq.{service}"} if service else {}

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_area(self, area_id: int) -> ServiceArea | None:
        rows = self._get(AREAS_TABLE, {"select": "*", "id": f"eq.{area_id}"})
        return area_from_record(rows[0]) if rows else None

    def fetch_areas(self, service: str | None = None) -> list[ServiceArea]:
        rows = self._fetch_all(self._service_filter(service))
        return [area_from_record(row) for row in rows]

    def fetch_areas_by_lot(self, lot: int, *, service: str | None = None) -> list[ServiceArea]:
        rows = self._fetch_all({"lote": f"eq.{lot}", **self._service_filter(service)})
        return [area_from_record(row) for row in rows]

    def fetch_capacity_config(self) -> dict[int, float]:
        rows = self._get(
            CONFIG_TABLE,
            {"select": "mowing_production_rate", "order": "id.asc", "limit": 1},
        )
        stored = rows[0].get("mowing_production_rate") if rows else None
        if not stored:
            logger.info("no capacity configuration stored; using defaults")
            return dict(self._default_capacity)
        # older rows wrap the rates in the application config object
        if isinstance(stored.get("mowingProductionRate"), dict):
            stored = stored["mowingProductionRate"]
        return normalise_capacity_config(stored)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def update_capacity_config(self, config: Mapping[object, object]) -> dict[int, float]:
        merged = self.fetch_capacity_config()
        merged.update(normalise_capacity_config(config))
        body = {
            "mowing_production_rate": {lot_key(lot): value for lot, value in sorted(merged.items())},
            "updated_at": self._now(),
        }
        self._patch(CONFIG_TABLE, {"id": "eq.1"}, body)
        return merged

    def apply_area_update(self, area_id: int, fields: Mapping[str, Any]) -> None:
        try:
            body = update_fields_to_record(fields)
        except ValueError as exc:
            raise PersistenceFailure(area_id, str(exc)) from exc
        body["updated_at"] = self._now()
        try:
            updated = self._patch(AREAS_TABLE, {"id": f"eq.{area_id}"}, body)
        except httpx.HTTPError as exc:
            raise PersistenceFailure(area_id, str(exc)) from exc
        if not updated:
            raise PersistenceFailure(area_id, "area does not exist")

    def append_history_entry(self, area_id: int, entry: HistoryEntry) -> None:
        try:
            rows = self._get(AREAS_TABLE, {"select": "history", "id": f"eq.{area_id}"})
            if not rows:
                raise PersistenceFailure(area_id, "area does not exist")
            history = list(rows[0].get("history") or [])
            history.append(history_entry_to_record(entry))
            self._patch(
                AREAS_TABLE,
                {"id": f"eq.{area_id}"},
                {"history": history, "updated_at": self._now()},
            )
        except httpx.HTTPError as exc:
            raise PersistenceFailure(area_id, str(exc)) from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["SupabaseAreaRepository"]
