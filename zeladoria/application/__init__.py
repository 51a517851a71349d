"""Application services."""

from .locking import LotLocks
from .scheduling import (
    SchedulingService,
    configure_scheduling_service,
    get_scheduling_service,
    reset_scheduling_state,
)

__all__ = [
    "LotLocks",
    "SchedulingService",
    "configure_scheduling_service",
    "get_scheduling_service",
    "reset_scheduling_state",
]
