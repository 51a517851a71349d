import sys
import threading
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from zeladoria.application import SchedulingService
from zeladoria.core.errors import InvalidDate, PersistenceFailure
from zeladoria.domain import AreaStatus, HistoryKind, ServiceArea
from zeladoria.infrastructure import InMemoryAreaRepository

DAY = date(2024, 3, 1)


class FlakyRepository(InMemoryAreaRepository):
    """In-memory store whose writes fail for selected areas."""

    def __init__(self, *args, fail_ids=(), **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_ids = set(fail_ids)

    def apply_area_update(self, area_id, fields):
        if area_id in self.fail_ids:
            raise PersistenceFailure(area_id, "simulated outage")
        super().apply_area_update(area_id, fields)


def _area(area_id: int, position: int, size: float, *, lot: int = 1, **extra) -> ServiceArea:
    return ServiceArea(id=area_id, lot=lot, queue_position=position, size=size, **extra)


def _worked_example(repository_cls=InMemoryAreaRepository, **kwargs):
    areas = [
        _area(1, 1, 10000),
        _area(2, 2, 20000),
        _area(3, 3, 5000),
        _area(4, 4, 8000, manual_schedule=True, next_forecast=date(2024, 4, 1), days_to_complete=31),
        _area(20, 1, 15000, lot=2, next_forecast=date(2024, 2, 2), days_to_complete=1),
        _area(21, 2, 15000, lot=2, next_forecast=date(2024, 2, 3), days_to_complete=2),
    ]
    repository = repository_cls(areas, capacity={"lote1": 25000, "lote2": 20000}, **kwargs)
    return repository, SchedulingService(repository, today=lambda: DAY)


def test_register_completed_updates_area_and_recomputes_lot():
    repository, service = _worked_example()

    result = service.register([1], "2024-03-01", HistoryKind.COMPLETED)

    assert result.applied_area_ids == [1]
    assert result.skipped_area_ids == []
    assert result.failed_area_ids == []
    assert {(item.area_id, item.days_to_complete) for item in result.recomputed} == {(2, 1), (3, 1)}

    completed = repository.get_area(1)
    assert completed.status is AreaStatus.COMPLETED
    assert completed.last_serviced == DAY
    assert completed.history[-1].kind is HistoryKind.COMPLETED
    assert completed.history[-1].status == "Concluído"

    second = repository.get_area(2)
    assert second.days_to_complete == 1
    assert second.next_forecast == date(2024, 3, 2)
    assert repository.get_area(3).days_to_complete == 1


def test_completed_area_is_not_part_of_output():
    _, service = _worked_example()

    result = service.register([1, 2], DAY)

    assert [item.area_id for item in result.recomputed] == [3]
    assert result.recomputed[0].days_to_complete == 1


def test_manual_area_is_never_written():
    repository, service = _worked_example()

    result = service.register([1], DAY)

    assert 4 not in {item.area_id for item in result.recomputed}
    manual = repository.get_area(4)
    assert manual.next_forecast == date(2024, 4, 1)
    assert manual.days_to_complete == 31


def test_untouched_lot_keeps_cached_forecasts():
    repository, service = _worked_example()

    service.register([1], DAY)

    assert repository.get_area(20).next_forecast == date(2024, 2, 2)
    assert repository.get_area(21).days_to_complete == 2


def test_forecast_kind_only_appends_history():
    repository, service = _worked_example()
    before = repository.get_area(3)

    result = service.register([3], DAY, "forecast")

    after = repository.get_area(3)
    assert result.applied_area_ids == [3]
    assert result.recomputed == []
    assert after.status is before.status
    assert after.last_serviced == before.last_serviced
    assert after.queue_position == before.queue_position
    assert after.days_to_complete == before.days_to_complete
    assert len(after.history) == len(before.history) + 1
    assert after.history[-1].kind is HistoryKind.FORECAST
    assert after.history[-1].note == "Previsão de roçagem"


def test_unknown_ids_are_skipped_without_aborting_batch():
    repository, service = _worked_example()

    result = service.register([999, 1, 1000], DAY)

    assert result.skipped_area_ids == [999, 1000]
    assert result.applied_area_ids == [1]
    assert repository.get_area(1).status is AreaStatus.COMPLETED


def test_history_grows_by_number_of_valid_ids():
    repository, service = _worked_example()
    before = {area.id: len(area.history) for area in repository.fetch_areas()}

    result = service.register([1, 3, 404, 1], DAY)

    after = {area.id: len(area.history) for area in repository.fetch_areas()}
    assert sum(after.values()) == sum(before.values()) + len(result.applied_area_ids)
    assert result.applied_area_ids == [1, 3]


def test_invalid_date_rejects_batch_before_any_write():
    repository, service = _worked_example()

    with pytest.raises(InvalidDate):
        service.register([1, 2], "01/03/2024")

    assert repository.get_area(1).status is AreaStatus.PENDING
    assert repository.get_area(1).history == []


def test_persistence_failures_are_collected_per_area():
    repository, service = _worked_example(FlakyRepository, fail_ids={2})

    result = service.register([1, 2], DAY)

    assert result.applied_area_ids == [1]
    assert result.failed_area_ids == [2]
    assert repository.get_area(1).status is AreaStatus.COMPLETED
    assert repository.get_area(2).status is AreaStatus.PENDING
    assert repository.get_area(2).history == []
    assert {item.area_id for item in result.recomputed} == {2, 3}


def test_failed_completion_stays_in_queue_for_forecasts():
    repository = FlakyRepository(
        [_area(1, 1, 10000), _area(2, 2, 10000), _area(3, 3, 10000)],
        capacity={"lote1": 10000},
        fail_ids={2},
    )
    service = SchedulingService(repository, today=lambda: DAY)

    result = service.register([1, 2], DAY)

    assert result.failed_area_ids == [2]
    assert {item.area_id: item.days_to_complete for item in result.recomputed} == {2: 1, 3: 2}
    assert repository.get_area(3).days_to_complete == 2
    assert repository.get_area(3).next_forecast == date(2024, 3, 3)
    assert {item.area_id: item.days_to_complete for item in service.preview(1, DAY)} == {2: 1, 3: 2}


def test_lot_without_capacity_is_withheld():
    repository = InMemoryAreaRepository(
        [_area(1, 1, 100, lot=7), _area(2, 2, 100, lot=7, days_to_complete=5)],
        capacity={"lote1": 25000},
    )
    service = SchedulingService(repository, today=lambda: DAY)

    result = service.register([1], DAY)

    assert result.applied_area_ids == [1]
    assert result.withheld_lots == [7]
    assert result.recomputed == []
    assert repository.get_area(2).days_to_complete == 5


def test_zero_capacity_writes_undefined_forecast():
    repository = InMemoryAreaRepository(
        [_area(1, 1, 100), _area(2, 2, 100, days_to_complete=3, next_forecast=date(2024, 1, 1))],
        capacity={"lote1": 0},
    )
    service = SchedulingService(repository, today=lambda: DAY)

    service.register([1], DAY)

    area = repository.get_area(2)
    assert area.days_to_complete is None
    assert area.next_forecast is None


def test_areas_from_other_services_are_registered_but_not_queued():
    repository = InMemoryAreaRepository(
        [_area(1, 1, 10000), _area(2, 2, 10000, service="jardins"), _area(3, 3, 10000)],
        capacity={"lote1": 10000},
    )
    service = SchedulingService(repository, today=lambda: DAY)

    result = service.register([1, 2], DAY)

    assert result.applied_area_ids == [1, 2]
    assert result.skipped_area_ids == []
    other = repository.get_area(2)
    assert other.status is AreaStatus.COMPLETED
    assert other.history[-1].kind is HistoryKind.COMPLETED
    assert [(item.area_id, item.days_to_complete) for item in result.recomputed] == [(3, 1)]


def test_forecast_entry_for_other_service_grows_history():
    repository = InMemoryAreaRepository(
        [_area(1, 1, 10000), _area(2, 2, 10000, service="jardins")],
        capacity={"lote1": 10000},
    )
    service = SchedulingService(repository, today=lambda: DAY)

    result = service.register([2], DAY, HistoryKind.FORECAST)

    assert result.applied_area_ids == [2]
    assert result.recomputed == []
    assert len(repository.get_area(2).history) == 1
    assert repository.get_area(2).status is AreaStatus.PENDING


def test_preview_does_not_write():
    repository, service = _worked_example()

    first = service.preview()
    second = service.preview()

    assert first == second
    assert {item.area_id: item.days_to_complete for item in first} == {1: 1, 2: 2, 3: 2, 20: 1, 21: 2}
    assert repository.get_area(20).next_forecast == date(2024, 2, 2)


def test_refresh_writes_forecasts_for_every_lot():
    repository, service = _worked_example()

    result = service.refresh()

    assert result.withheld_lots == []
    assert repository.get_area(20).next_forecast == date(2024, 3, 2)
    assert repository.get_area(21).next_forecast == date(2024, 3, 3)
    assert repository.get_area(3).next_forecast == date(2024, 3, 3)


def test_capacity_change_refreshes_changed_lots_only():
    repository, service = _worked_example()

    result = service.update_capacity_config({"lote2": 30000, "lote1": 25000})

    assert {item.area_id for item in result.recomputed} == {20, 21}
    assert repository.get_area(21).days_to_complete == 1
    assert repository.get_area(2).days_to_complete is None
    assert service.get_capacity_config() == {1: 25000.0, 2: 30000.0}


def test_concurrent_batches_in_one_lot_do_not_double_count():
    areas = [_area(index, index, 1000) for index in range(1, 41)]
    repository = InMemoryAreaRepository(areas, capacity={"lote1": 1000})
    service = SchedulingService(repository, today=lambda: DAY)
    barrier = threading.Barrier(4)

    def worker(ids):
        barrier.wait()
        service.register(ids, DAY)

    batches = [[1, 2], [3, 4], [5, 6], [7, 8]]
    threads = [threading.Thread(target=worker, args=(ids,)) for ids in batches]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    pending = [area for area in repository.fetch_areas() if area.status is AreaStatus.PENDING]
    assert len(pending) == 32
    assert [area.days_to_complete for area in pending] == list(range(1, 33))
