from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from zeladoria.domain import AreaStatus, ServiceArea


def matches_search(area: ServiceArea, term: str) -> bool:
    keyword = term.strip().lower()
    if not keyword:
        return True
    address = (area.address or "").lower()
    neighborhood = (area.neighborhood or "").lower()
    return keyword in address or keyword in neighborhood


@dataclass(slots=True)
class AreaFilter:
    """Attribute filters applied alongside the recency bucket.

    ``None`` means "any" for every criterion.
    """

    search: str | None = None
    neighborhood: str | None = None
    lot: int | None = None
    status: AreaStatus | None = None
    area_type: str | None = None
    service: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.search, self.neighborhood, self.lot is not None, self.status, self.area_type, self.service)
        )

    def matches(self, area: ServiceArea) -> bool:
        if self.service and area.service != self.service:
            return False
        if self.search and not matches_search(area, self.search):
            return False
        if self.neighborhood and area.neighborhood != self.neighborhood:
            return False
        if self.lot is not None and area.lot != self.lot:
            return False
        if self.status and area.status is not self.status:
            return False
        if self.area_type and area.area_type != self.area_type:
            return False
        return True

    def apply(self, areas: Iterable[ServiceArea]) -> list[ServiceArea]:
        if self.is_empty():
            return list(areas)
        return [area for area in areas if self.matches(area)]
