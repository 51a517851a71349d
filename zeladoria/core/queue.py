"""Per-lot pending queues built from an area snapshot."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from zeladoria.domain import ServiceArea

logger = logging.getLogger(__name__)


class AreaQueue:
    """Pure filter/sort over a snapshot of areas; performs no I/O."""

    @staticmethod
    def lots(snapshot: Iterable[ServiceArea]) -> list[int]:
        return sorted({area.lot for area in snapshot})

    @staticmethod
    def for_lot(
        snapshot: Iterable[ServiceArea],
        lot: int,
        *,
        exclude_ids: Iterable[int] = (),
    ) -> list[ServiceArea]:
        """Return the pending areas of ``lot`` in service order.

        ``exclude_ids`` drops areas that are about to leave the queue, so a
        caller can build the post-completion queue without mutating the
        snapshot.
        """

        excluded = set(exclude_ids)
        queue = [
            area
            for area in snapshot
            if area.lot == lot and area.is_pending and area.id not in excluded
        ]
        queue.sort(key=lambda area: (area.queue_position, area.id))

        seen: set[int] = set()
        for area in queue:
            if area.queue_position in seen:
                logger.warning(
                    "lot %s has more than one pending area at position %s; ordering by id",
                    lot,
                    area.queue_position,
                )
            seen.add(area.queue_position)
        return queue
