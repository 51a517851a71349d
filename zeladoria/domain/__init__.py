"""Domain layer definitions."""

from .areas import (
    AreaStatus,
    ForecastUpdate,
    HistoryEntry,
    HistoryKind,
    RegisterResult,
    ServiceArea,
)

__all__ = [
    "AreaStatus",
    "ForecastUpdate",
    "HistoryEntry",
    "HistoryKind",
    "RegisterResult",
    "ServiceArea",
]
