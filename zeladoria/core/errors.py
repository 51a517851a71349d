from __future__ import annotations


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine."""


class ConfigMissing(SchedulingError):
    """Raised when no daily capacity is configured for a lot."""

    def __init__(self, lot: int) -> None:
        super().__init__(f"no capacity configured for lot {lot}")
        self.lot = lot


class AreaNotFound(SchedulingError):
    """Raised when an area id is absent from the data store."""

    def __init__(self, area_id: int) -> None:
        super().__init__(f"area {area_id} not found")
        self.area_id = area_id


class PersistenceFailure(SchedulingError):
    """Raised by a repository when writing a single area fails."""

    def __init__(self, area_id: int, reason: str) -> None:
        super().__init__(f"failed to persist area {area_id}: {reason}")
        self.area_id = area_id
        self.reason = reason


class InvalidDate(SchedulingError):
    """Raised when a reference or registration date cannot be parsed."""

    def __init__(self, value: object) -> None:
        super().__init__(f"invalid date: {value!r}")
        self.value = value
