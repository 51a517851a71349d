from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field

from zeladoria.domain import AreaStatus, ForecastUpdate, HistoryKind, RegisterResult, ServiceArea


class HistoryEntryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime.date | None
    status: str
    kind: HistoryKind | None = None
    note: str | None = None


class ServiceAreaModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    lot: int
    queue_position: int
    size: float
    status: AreaStatus
    last_serviced: datetime.date | None = None
    next_forecast: datetime.date | None = None
    days_to_complete: int | None = None
    manual_schedule: bool = False
    history: list[HistoryEntryModel] = Field(default_factory=list)
    service: str = "rocagem"
    area_type: str | None = None
    address: str | None = None
    neighborhood: str | None = None
    lat: float | None = None
    lng: float | None = None
    scheduled_date: datetime.date | None = None
    notes: str | None = None
    registered_by: str | None = None
    registered_at: str | None = None
    bucket: str | None = None

    @classmethod
    def from_domain(cls, area: ServiceArea, *, bucket: str | None = None) -> "ServiceAreaModel":
        model = cls.model_validate(area)
        model.bucket = bucket
        return model


class ForecastUpdateModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    area_id: int
    next_forecast: datetime.date | None
    days_to_complete: int | None

    @classmethod
    def from_domain(cls, update: ForecastUpdate) -> "ForecastUpdateModel":
        return cls.model_validate(update)


class RegisterRequest(BaseModel):
    area_ids: list[int] = Field(min_length=1)
    # kept as text so malformed dates surface as InvalidDate, not a 422
    date: str
    kind: HistoryKind = HistoryKind.COMPLETED


class RegisterResponse(BaseModel):
    applied_area_ids: list[int]
    skipped_area_ids: list[int]
    failed_area_ids: list[int]
    recomputed: list[ForecastUpdateModel]
    withheld_lots: list[int]

    @classmethod
    def from_domain(cls, result: RegisterResult) -> "RegisterResponse":
        return cls(
            applied_area_ids=list(result.applied_area_ids),
            skipped_area_ids=list(result.skipped_area_ids),
            failed_area_ids=list(result.failed_area_ids),
            recomputed=[ForecastUpdateModel.from_domain(item) for item in result.recomputed],
            withheld_lots=list(result.withheld_lots),
        )


class CapacityConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    production_rate: dict[str, float] = Field(alias="productionRate")
