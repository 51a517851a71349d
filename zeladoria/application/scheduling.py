"""Application service layer for completion batches and forecasts."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date

from zeladoria.application.locking import LotLocks
from zeladoria.core.buckets import DateRange, TimeBucket, TimeBucketClassifier
from zeladoria.core.capacity import CapacityModel
from zeladoria.core.converters import history_entry_for
from zeladoria.core.dates import coerce_date
from zeladoria.core.errors import AreaNotFound, ConfigMissing, PersistenceFailure
from zeladoria.core.filters import AreaFilter, matches_search
from zeladoria.core.forecast import recalculate
from zeladoria.core.queue import AreaQueue
from zeladoria.domain import (
    AreaStatus,
    ForecastUpdate,
    HistoryKind,
    RegisterResult,
    ServiceArea,
)
from zeladoria.infrastructure import AreaRepository, InMemoryAreaRepository

logger = logging.getLogger(__name__)


class SchedulingService:
    """Coordinates completion batches, forecast recomputation and read queries.

    ``service`` scopes the pending queues to one kind of upkeep (``rocagem``
    by default); ``None`` treats every area in a lot as one queue.
    """

    def __init__(
        self,
        repository: AreaRepository,
        *,
        service: str | None = "rocagem",
        locks: LotLocks | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repository = repository
        self._service = service
        self._locks = locks or LotLocks()
        self._today = today

    @property
    def repository(self) -> AreaRepository:
        return self._repository

    def _reference(self, value: object | None) -> date:
        return self._today() if value is None else coerce_date(value)

    def _capacity(self) -> CapacityModel:
        return CapacityModel(self._repository.fetch_capacity_config())

    def _locate(self, area_id: int) -> ServiceArea:
        area = self._repository.get_area(area_id)
        if area is None:
            raise AreaNotFound(area_id)
        return area

    # ------------------------------------------------------------------
    # completion batches
    # ------------------------------------------------------------------
    def register(
        self,
        area_ids: Iterable[int],
        day: object,
        kind: HistoryKind | str = HistoryKind.COMPLETED,
    ) -> RegisterResult:
        """Record a completion or forecast for a batch of areas.

        Every area found in the store gets the status and history writes.
        Completed areas then leave their lot's pending queue and every
        touched lot is re-forecast from the registration date, counting
        only completions whose status write succeeded. Forecast entries
        only add a history row. Unknown ids are skipped and per-area write
        failures are collected; neither aborts the batch.
        """

        reference = coerce_date(day)
        kind = HistoryKind(kind)
        ids = list(dict.fromkeys(int(area_id) for area_id in area_ids))
        result = RegisterResult()

        located: dict[int, int] = {}
        for area_id in ids:
            try:
                located[area_id] = self._locate(area_id).lot
            except AreaNotFound as exc:
                logger.warning("%s; skipping", exc)
                result.skipped_area_ids.append(area_id)

        lots = sorted(set(located.values()))
        with self._locks.hold(lots):
            # phase 1: snapshot the pending queues of the service before any write
            snapshots: dict[int, list[ServiceArea]] = {}
            if kind is HistoryKind.COMPLETED:
                snapshots = {lot: self._repository.fetch_areas_by_lot(lot, service=self._service) for lot in lots}

            # phase 2: apply
            entry = history_entry_for(kind, reference)
            completed: list[int] = []
            for area_id in located:
                try:
                    if kind is HistoryKind.COMPLETED:
                        self._repository.apply_area_update(
                            area_id,
                            {"status": AreaStatus.COMPLETED, "last_serviced": reference},
                        )
                        completed.append(area_id)
                    self._repository.append_history_entry(area_id, entry)
                except PersistenceFailure as exc:
                    logger.error("%s", exc)
                    result.failed_area_ids.append(area_id)
                    continue
                result.applied_area_ids.append(area_id)

            # phase 3: re-forecast from the queue the store now holds
            if completed:
                capacity = self._capacity()
                for lot in sorted({located[area_id] for area_id in completed}):
                    try:
                        result.recomputed.extend(recalculate(snapshots[lot], completed, capacity, reference))
                    except ConfigMissing:
                        logger.warning("no capacity configured for lot %s; forecast withheld", lot)
                        result.withheld_lots.append(lot)
                self._write_forecasts(result.recomputed, result)

        logger.info(
            "registered %s batch on %s: %s applied, %s skipped, %s failed, %s forecasts",
            kind.value,
            reference.isoformat(),
            len(result.applied_area_ids),
            len(result.skipped_area_ids),
            len(result.failed_area_ids),
            len(result.recomputed),
        )
        return result

    def _write_forecasts(self, forecasts: Iterable[ForecastUpdate], result: RegisterResult) -> None:
        for forecast in forecasts:
            try:
                self._repository.apply_area_update(
                    forecast.area_id,
                    {
                        "next_forecast": forecast.next_forecast,
                        "days_to_complete": forecast.days_to_complete,
                    },
                )
            except PersistenceFailure as exc:
                logger.error("%s", exc)
                if forecast.area_id not in result.failed_area_ids:
                    result.failed_area_ids.append(forecast.area_id)

    # ------------------------------------------------------------------
    # forecasts without completions
    # ------------------------------------------------------------------
    def _snapshot(self, lot: int | None) -> list[ServiceArea]:
        if lot is None:
            return self._repository.fetch_areas(self._service)
        return self._repository.fetch_areas_by_lot(lot, service=self._service)

    def preview(self, lot: int | None = None, reference_date: object | None = None) -> list[ForecastUpdate]:
        """Forecasts for the current queues; nothing is written."""

        reference = self._reference(reference_date)
        return recalculate(self._snapshot(lot), (), self._capacity(), reference)

    def refresh(self, lot: int | None = None, reference_date: object | None = None) -> RegisterResult:
        """Recompute and store forecasts for one lot or for every lot."""

        reference = self._reference(reference_date)
        lots = [lot] if lot is not None else AreaQueue.lots(self._snapshot(None))
        result = RegisterResult()
        capacity = self._capacity()
        for current in lots:
            with self._locks.hold([current]):
                snapshot = self._snapshot(current)
                try:
                    forecasts = recalculate(snapshot, (), capacity, reference)
                except ConfigMissing:
                    logger.warning("no capacity configured for lot %s; forecast withheld", current)
                    result.withheld_lots.append(current)
                    continue
                result.recomputed.extend(forecasts)
                self._write_forecasts(forecasts, result)
        return result

    # ------------------------------------------------------------------
    # capacity configuration
    # ------------------------------------------------------------------
    def get_capacity_config(self) -> dict[int, float]:
        return self._repository.fetch_capacity_config()

    def update_capacity_config(self, config: Mapping[object, object]) -> RegisterResult:
        """Store new capacities and re-forecast the lots whose value changed."""

        before = self._repository.fetch_capacity_config()
        after = self._repository.update_capacity_config(config)
        changed = sorted(lot for lot, value in after.items() if before.get(lot) != value)
        result = RegisterResult()
        known_lots = set(AreaQueue.lots(self._snapshot(None)))
        for lot in changed:
            if lot not in known_lots:
                continue
            partial = self.refresh(lot)
            result.recomputed.extend(partial.recomputed)
            result.failed_area_ids.extend(partial.failed_area_ids)
            result.withheld_lots.extend(partial.withheld_lots)
        return result

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    def get_area(self, area_id: int) -> ServiceArea | None:
        return self._repository.get_area(area_id)

    def classify(
        self,
        area: ServiceArea,
        reference_date: object | None = None,
        custom_range: DateRange | None = None,
    ) -> TimeBucket | None:
        return TimeBucketClassifier.classify(area, self._reference(reference_date), custom_range)

    def list_areas(
        self,
        filters: AreaFilter | None = None,
        *,
        bucket: TimeBucket | None = None,
        reference_date: object | None = None,
        custom_range: DateRange | None = None,
    ) -> list[ServiceArea]:
        filters = filters or AreaFilter()
        areas = self._repository.fetch_areas(filters.service or self._service)
        if bucket is not None:
            areas = TimeBucketClassifier.filter_by_bucket(
                areas, bucket, self._reference(reference_date), custom_range
            )
        return filters.apply(areas)

    def search_areas(self, query: str, *, service: str | None = None, limit: int = 50) -> list[ServiceArea]:
        if not query.strip():
            return []
        areas = self._repository.fetch_areas(service or self._service)
        return [area for area in areas if matches_search(area, query)][:limit]

    def bucket_counts(self, reference_date: object | None = None, *, service: str | None = None) -> dict[str, int]:
        areas = self._repository.fetch_areas(service or self._service)
        return TimeBucketClassifier.bucket_counts(areas, self._reference(reference_date))


_service = SchedulingService(InMemoryAreaRepository())


def configure_scheduling_service(service: SchedulingService) -> None:
    """Install the service used by the HTTP routes."""

    global _service
    _service = service


def get_scheduling_service() -> SchedulingService:
    """Return the singleton scheduling service for the process."""

    return _service


def reset_scheduling_state() -> None:
    """Reinstall a fresh in-memory service (used in tests)."""

    configure_scheduling_service(SchedulingService(InMemoryAreaRepository()))
