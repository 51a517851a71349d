"""Forecast of the service day for every pending area of a lot.

The crew of a lot works its pending queue front to back. An area is
expected to be finished on the day the cumulative size of the queue up to
and including it has been covered by the lot's daily capacity::

    days_to_complete_k = ceil(sum(size_1..size_k) / capacity)
    next_forecast_k = reference_date + days_to_complete_k

Arithmetic runs on :class:`~decimal.Decimal` so that exact multiples of the
capacity never round up because of binary float error.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import ROUND_CEILING, Decimal, InvalidOperation

from zeladoria.core.capacity import CapacityModel
from zeladoria.core.dates import add_days, coerce_date
from zeladoria.core.queue import AreaQueue
from zeladoria.domain import ForecastUpdate, ServiceArea


def _to_decimal(value: object) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    if not result.is_finite() or result < 0:
        return Decimal("0")
    return result


def days_for(cumulative: Decimal, capacity: Decimal) -> int:
    return int((cumulative / capacity).to_integral_value(rounding=ROUND_CEILING))


class ForecastCalculator:
    """Pure forecast computation over an ordered pending queue."""

    @staticmethod
    def compute(
        queue: Sequence[ServiceArea],
        capacity: float,
        reference_date: date,
    ) -> list[ForecastUpdate]:
        reference = coerce_date(reference_date)
        # zero or negative capacity: no throughput, forecasts stay undefined
        capacity_value = _to_decimal(capacity)

        updates: list[ForecastUpdate] = []
        cumulative = Decimal("0")
        for area in queue:
            # manual areas still take their turn in the queue
            cumulative += _to_decimal(area.size)
            if area.manual_schedule:
                continue
            if capacity_value == 0:
                updates.append(ForecastUpdate(area.id, None, None))
                continue
            days = days_for(cumulative, capacity_value)
            updates.append(ForecastUpdate(area.id, days, add_days(reference, days)))
        return updates


def recalculate(
    snapshot: Iterable[ServiceArea],
    completed_area_ids: Iterable[int],
    capacity_config: CapacityModel | Mapping[object, object],
    reference_date: date | str,
) -> list[ForecastUpdate]:
    """Forecasts for every lot touched by ``completed_area_ids``.

    Completed ids are removed from their lot's pending queue before the
    forecast runs. With an empty completed set every lot in the snapshot is
    recomputed, which makes repeated calls on an unchanged snapshot return
    the same result. Raises ``ConfigMissing`` for a touched lot that has
    pending areas but no configured capacity.
    """

    reference = coerce_date(reference_date)
    areas = list(snapshot)
    completed = set(completed_area_ids)
    capacity = capacity_config if isinstance(capacity_config, CapacityModel) else CapacityModel(capacity_config)

    if completed:
        lots = sorted({area.lot for area in areas if area.id in completed})
    else:
        lots = AreaQueue.lots(areas)

    updates: list[ForecastUpdate] = []
    for lot in lots:
        queue = AreaQueue.for_lot(areas, lot, exclude_ids=completed)
        if not queue:
            continue
        updates.extend(ForecastCalculator.compute(queue, capacity.capacity_for(lot), reference))
    return updates
