"""Mapping between stored ``service_areas`` rows and domain entities.

Every persisted field is listed explicitly in both directions; there is no
dynamic field copying.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from zeladoria.core.dates import optional_date
from zeladoria.domain import AreaStatus, HistoryEntry, HistoryKind, ServiceArea

STATUS_TO_RECORD: dict[AreaStatus, str] = {
    AreaStatus.PENDING: "Pendente",
    AreaStatus.IN_PROGRESS: "Em Execução",
    AreaStatus.COMPLETED: "Concluído",
}

STATUS_FROM_RECORD: dict[str, AreaStatus] = {
    label: status for status, label in STATUS_TO_RECORD.items()
}

HISTORY_LABELS: dict[HistoryKind, tuple[str, str]] = {
    HistoryKind.COMPLETED: ("Concluído", "Roçagem concluída"),
    HistoryKind.FORECAST: ("Previsto", "Previsão de roçagem"),
}

# domain field -> stored column
AREA_FIELD_MAP: dict[str, str] = {
    "id": "id",
    "lot": "lote",
    "queue_position": "ordem",
    "size": "metragem_m2",
    "status": "status",
    "last_serviced": "ultima_rocagem",
    "next_forecast": "proxima_previsao",
    "days_to_complete": "days_to_complete",
    "manual_schedule": "manual_schedule",
    "history": "history",
    "service": "servico",
    "area_type": "tipo",
    "address": "endereco",
    "neighborhood": "bairro",
    "lat": "lat",
    "lng": "lng",
    "scheduled_date": "scheduled_date",
    "notes": "observacoes",
    "registered_by": "registrado_por",
    "registered_at": "data_registro",
}

_DATE_FIELDS = {"last_serviced", "next_forecast", "scheduled_date"}


def status_from_record(value: object) -> AreaStatus:
    if value is None or value == "":
        return AreaStatus.PENDING
    if isinstance(value, AreaStatus):
        return value
    text = str(value).strip()
    if text in STATUS_FROM_RECORD:
        return STATUS_FROM_RECORD[text]
    try:
        return AreaStatus(text)
    except ValueError:
        raise ValueError(f"unknown area status: {value!r}") from None


def status_to_record(status: AreaStatus) -> str:
    return STATUS_TO_RECORD[status]


def history_entry_from_record(record: Mapping[str, Any]) -> HistoryEntry:
    kind_value = record.get("type")
    return HistoryEntry(
        date=optional_date(record.get("date")),  # type: ignore[arg-type]
        status=str(record.get("status") or ""),
        kind=HistoryKind(kind_value) if kind_value else None,
        note=record.get("observation"),
    )


def history_entry_to_record(entry: HistoryEntry) -> dict[str, Any]:
    record: dict[str, Any] = {
        "date": entry.date.isoformat() if entry.date else None,
        "status": entry.status,
    }
    if entry.kind is not None:
        record["type"] = entry.kind.value
    if entry.note is not None:
        record["observation"] = entry.note
    return record


def history_entry_for(kind: HistoryKind, day: Any) -> HistoryEntry:
    status, note = HISTORY_LABELS[kind]
    return HistoryEntry(date=day, status=status, kind=kind, note=note)


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def area_from_record(record: Mapping[str, Any]) -> ServiceArea:
    area_id = int(record["id"])
    queue_position = _optional_int(record.get("ordem"))
    return ServiceArea(
        id=area_id,
        lot=_optional_int(record.get("lote")) or 1,
        queue_position=area_id if queue_position is None else queue_position,
        size=_optional_float(record.get("metragem_m2")) or 0.0,
        status=status_from_record(record.get("status")),
        last_serviced=optional_date(record.get("ultima_rocagem")),
        next_forecast=optional_date(record.get("proxima_previsao")),
        days_to_complete=_optional_int(record.get("days_to_complete")),
        manual_schedule=bool(record.get("manual_schedule") or False),
        history=[history_entry_from_record(item) for item in record.get("history") or []],
        service=str(record.get("servico") or "rocagem"),
        area_type=record.get("tipo"),
        address=record.get("endereco"),
        neighborhood=record.get("bairro"),
        lat=_optional_float(record.get("lat")),
        lng=_optional_float(record.get("lng")),
        scheduled_date=optional_date(record.get("scheduled_date")),
        notes=record.get("observacoes"),
        registered_by=record.get("registrado_por"),
        registered_at=record.get("data_registro"),
    )


def _field_to_record(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _DATE_FIELDS:
        return value.isoformat()
    if name == "status":
        return status_to_record(value)
    if name == "history":
        return [history_entry_to_record(entry) for entry in value]
    return value


def area_to_record(area: ServiceArea) -> dict[str, Any]:
    return {
        "id": area.id,
        "lote": area.lot,
        "ordem": area.queue_position,
        "metragem_m2": area.size,
        "status": status_to_record(area.status),
        "ultima_rocagem": _field_to_record("last_serviced", area.last_serviced),
        "proxima_previsao": _field_to_record("next_forecast", area.next_forecast),
        "days_to_complete": area.days_to_complete,
        "manual_schedule": area.manual_schedule,
        "history": _field_to_record("history", area.history),
        "servico": area.service,
        "tipo": area.area_type,
        "endereco": area.address,
        "bairro": area.neighborhood,
        "lat": area.lat,
        "lng": area.lng,
        "scheduled_date": _field_to_record("scheduled_date", area.scheduled_date),
        "observacoes": area.notes,
        "registrado_por": area.registered_by,
        "data_registro": area.registered_at,
    }


def update_fields_to_record(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a partial update keyed by domain field names."""

    record: dict[str, Any] = {}
    for name, value in fields.items():
        column = AREA_FIELD_MAP.get(name)
        if column is None or name == "id":
            raise ValueError(f"field cannot be updated: {name}")
        record[column] = _field_to_record(name, value)
    return record
