"""Infrastructure layer for service-area persistence."""
from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from typing import Any, Protocol

from zeladoria.core.capacity import load_default_capacity, normalise_capacity_config
from zeladoria.core.errors import PersistenceFailure
from zeladoria.domain import HistoryEntry, ServiceArea


_UPDATABLE_FIELDS = {field.name for field in dataclasses.fields(ServiceArea)} - {"id", "history"}


class AreaRepository(Protocol):
    """Persistence contract consumed by the scheduling service."""

    def get_area(self, area_id: int) -> ServiceArea | None: ...

    def fetch_areas(self, service: str | None = None) -> list[ServiceArea]: ...

    def fetch_areas_by_lot(self, lot: int, *, service: str | None = None) -> list[ServiceArea]: ...

    def fetch_capacity_config(self) -> dict[int, float]: ...

    def update_capacity_config(self, config: Mapping[object, object]) -> dict[int, float]: ...

    def apply_area_update(self, area_id: int, fields: Mapping[str, Any]) -> None: ...

    def append_history_entry(self, area_id: int, entry: HistoryEntry) -> None: ...


class InMemoryAreaRepository:
    """Simple in-memory repository for fast iteration and tests.

    Reads hand out deep copies so callers never mutate stored state except
    through :meth:`apply_area_update` and :meth:`append_history_entry`.
    """

    def __init__(
        self,
        areas: list[ServiceArea] | None = None,
        capacity: Mapping[object, object] | None = None,
    ) -> None:
        self._areas: dict[int, ServiceArea] = {}
        self._capacity: dict[int, float] = (
            normalise_capacity_config(capacity) if capacity is not None else load_default_capacity()
        )
        for area in areas or []:
            self.add_area(area)

    # ------------------------------------------------------------------
    # seeding
    # ------------------------------------------------------------------
    def add_area(self, area: ServiceArea) -> None:
        self._areas[area.id] = copy.deepcopy(area)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_area(self, area_id: int) -> ServiceArea | None:
        area = self._areas.get(area_id)
        return copy.deepcopy(area) if area is not None else None

    def fetch_areas(self, service: str | None = None) -> list[ServiceArea]:
        areas = [area for area in self._areas.values() if service is None or area.service == service]
        areas.sort(key=lambda area: (area.queue_position, area.id))
        return copy.deepcopy(areas)

    def fetch_areas_by_lot(self, lot: int, *, service: str | None = None) -> list[ServiceArea]:
        return [area for area in self.fetch_areas(service) if area.lot == lot]

    def fetch_capacity_config(self) -> dict[int, float]:
        return dict(self._capacity)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def update_capacity_config(self, config: Mapping[object, object]) -> dict[int, float]:
        self._capacity.update(normalise_capacity_config(config))
        return dict(self._capacity)

    def _require(self, area_id: int) -> ServiceArea:
        area = self._areas.get(area_id)
        if area is None:
            raise PersistenceFailure(area_id, "area does not exist")
        return area

    def apply_area_update(self, area_id: int, fields: Mapping[str, Any]) -> None:
        area = self._require(area_id)
        for name in fields:
            if name not in _UPDATABLE_FIELDS:
                raise PersistenceFailure(area_id, f"field cannot be updated: {name}")
        for name, value in fields.items():
            setattr(area, name, value)

    def append_history_entry(self, area_id: int, entry: HistoryEntry) -> None:
        area = self._require(area_id)
        area.history.append(copy.deepcopy(entry))
