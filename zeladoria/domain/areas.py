"""Domain entities for service areas and forecast results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class AreaStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class HistoryKind(str, Enum):
    COMPLETED = "completed"
    FORECAST = "forecast"


@dataclass(slots=True)
class HistoryEntry:
    """A single row of an area's service history."""

    date: date
    status: str
    kind: HistoryKind | None = None
    note: str | None = None


@dataclass(slots=True)
class ServiceArea:
    """A geographic area serviced on a recurring basis by a lot's crew."""

    id: int
    lot: int
    queue_position: int
    size: float = 0.0
    status: AreaStatus = AreaStatus.PENDING
    last_serviced: date | None = None
    next_forecast: date | None = None
    days_to_complete: int | None = None
    manual_schedule: bool = False
    history: list[HistoryEntry] = field(default_factory=list)
    service: str = "rocagem"
    area_type: str | None = None
    address: str | None = None
    neighborhood: str | None = None
    lat: float | None = None
    lng: float | None = None
    scheduled_date: date | None = None
    notes: str | None = None
    registered_by: str | None = None
    registered_at: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is AreaStatus.PENDING


@dataclass(frozen=True, slots=True)
class ForecastUpdate:
    """Forecast fields computed for one pending area.

    ``days_to_complete`` and ``next_forecast`` are both ``None`` when the
    area's lot has no throughput (capacity of zero or less).
    """

    area_id: int
    days_to_complete: int | None
    next_forecast: date | None


@dataclass(slots=True)
class RegisterResult:
    """Outcome of a completion/forecast batch."""

    applied_area_ids: list[int] = field(default_factory=list)
    skipped_area_ids: list[int] = field(default_factory=list)
    failed_area_ids: list[int] = field(default_factory=list)
    recomputed: list[ForecastUpdate] = field(default_factory=list)
    withheld_lots: list[int] = field(default_factory=list)
