from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from zeladoria.core.converters import history_entry_for
from zeladoria.core.errors import PersistenceFailure
from zeladoria.domain import AreaStatus, HistoryKind
from zeladoria.infrastructure import SupabaseAreaRepository

BASE_URL = "https://demo.supabase.co"


def _row(area_id: int, position: int, **extra) -> dict:
    row = {"id": area_id, "ordem": position, "lote": 1, "metragem_m2": 1000, "status": "Pendente", "servico": "rocagem"}
    row.update(extra)
    return row


def _repository(handler, **kwargs) -> tuple[SupabaseAreaRepository, httpx.Client]:
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    repository = SupabaseAreaRepository(BASE_URL, "service-key", http_client=http_client, **kwargs)
    return repository, http_client


def test_fetch_areas_reads_every_page():
    rows = [_row(index, index) for index in range(1, 6)]
    seen: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/service_areas"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["authorization"] == "Bearer service-key"
        params = dict(request.url.params)
        seen.append(params)
        offset = int(params["offset"])
        limit = int(params["limit"])
        return httpx.Response(200, json=rows[offset : offset + limit])

    repository, http_client = _repository(handler, page_size=2)

    areas = repository.fetch_areas("rocagem")

    assert [area.id for area in areas] == [1, 2, 3, 4, 5]
    assert [params["offset"] for params in seen] == ["0", "2", "4"]
    assert all(params["servico"] == "eq.rocagem" for params in seen)
    assert seen[0]["order"] == "ordem.asc,id.asc"
    http_client.close()


def test_fetch_areas_by_lot_filters_lot():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["lote"] == "eq.2"
        assert "servico" not in request.url.params
        return httpx.Response(200, json=[_row(9, 1, lote=2)])

    repository, http_client = _repository(handler)

    areas = repository.fetch_areas_by_lot(2)

    assert [(area.id, area.lot) for area in areas] == [(9, 2)]
    http_client.close()


def test_get_area_returns_none_when_missing():
    repository, http_client = _repository(lambda request: httpx.Response(200, json=[]))

    assert repository.get_area(123) is None
    http_client.close()


def test_apply_area_update_sends_stored_columns():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.5"
        assert request.headers["prefer"] == "return=representation"
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json=[_row(5, 5)])

    repository, http_client = _repository(handler)

    repository.apply_area_update(5, {"status": AreaStatus.COMPLETED, "last_serviced": date(2024, 3, 1)})

    body = captured["body"]
    assert body["status"] == "Concluído"
    assert body["ultima_rocagem"] == "2024-03-01"
    assert "updated_at" in body
    http_client.close()


def test_apply_area_update_raises_persistence_failure():
    repository, http_client = _repository(lambda request: httpx.Response(503, json={"message": "down"}))

    with pytest.raises(PersistenceFailure) as excinfo:
        repository.apply_area_update(5, {"days_to_complete": 2})

    assert excinfo.value.area_id == 5
    http_client.close()


def test_apply_area_update_fails_when_no_row_matches():
    repository, http_client = _repository(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(PersistenceFailure):
        repository.apply_area_update(5, {"days_to_complete": 2})
    http_client.close()


def test_append_history_entry_extends_stored_history():
    existing = [{"date": "2024-01-01", "status": "Concluído", "type": "completed"}]
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            assert request.url.params["select"] == "history"
            return httpx.Response(200, json=[{"history": existing}])
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json=[_row(5, 5)])

    repository, http_client = _repository(handler)

    repository.append_history_entry(5, history_entry_for(HistoryKind.COMPLETED, date(2024, 3, 1)))

    history = captured["body"]["history"]
    assert history[0] == existing[0]
    assert history[1] == {
        "date": "2024-03-01",
        "status": "Concluído",
        "type": "completed",
        "observation": "Roçagem concluída",
    }
    http_client.close()


def test_capacity_config_falls_back_to_defaults():
    repository, http_client = _repository(
        lambda request: httpx.Response(200, json=[]),
        default_capacity={"lote1": 12000},
    )

    assert repository.fetch_capacity_config() == {1: 12000.0}
    http_client.close()


@pytest.mark.parametrize(
    "stored",
    [
        {"lote1": 25000, "lote2": 20000},
        {"mowingProductionRate": {"lote1": 25000, "lote2": 20000}},
    ],
)
def test_capacity_config_reads_stored_rates(stored):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/app_config"
        return httpx.Response(200, json=[{"mowing_production_rate": stored}])

    repository, http_client = _repository(handler)

    assert repository.fetch_capacity_config() == {1: 25000.0, 2: 20000.0}
    http_client.close()


def test_update_capacity_config_merges_and_stores_lot_keys():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[{"mowing_production_rate": {"lote1": 25000, "lote2": 20000}}])
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json=[{"id": 1}])

    repository, http_client = _repository(handler)

    merged = repository.update_capacity_config({"2": 18000, "lote3": 9000})

    assert merged == {1: 25000.0, 2: 18000.0, 3: 9000.0}
    assert captured["body"]["mowing_production_rate"] == {"lote1": 25000.0, "lote2": 18000.0, "lote3": 9000.0}
    http_client.close()


def test_rejects_url_without_host():
    with pytest.raises(ValueError):
        SupabaseAreaRepository("demo.supabase.co", "key")


def test_close_only_closes_owned_client():
    owned = SupabaseAreaRepository(BASE_URL, "service-key")
    owned.close()
    assert owned._client.is_closed

    repository, http_client = _repository(lambda request: httpx.Response(200, json=[]))
    repository.close()
    assert not http_client.is_closed
    http_client.close()
