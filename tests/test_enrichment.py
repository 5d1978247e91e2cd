"""
Tests para core/enrichment.py y el enriquecimiento desde GridStore.
"""

import asyncio

import httpx
import pytest

from mestable.config import Column, EngineSettings
from mestable.core.enrichment import (
    EnrichmentDispatcher,
    EnrichmentRequest,
    EnrichmentResult,
    build_requests,
    extract_value,
    query_value,
)
from mestable.store import GridStore


SCHEMA = {
    "columns": [
        {"field_id": "batch", "field_type": "text"},
        {"field_id": "product", "field_type": "text", "read_only": True,
         "endpoint": "/api/value", "bind_field": "batch"},
    ],
    "preload_rows": [{}, {}],
}


def _fetched(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"value": f"Fetched({request.url.params['value']})"})


def _store(handler, schema=SCHEMA):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://mes.test")
    return GridStore(schema, dispatcher=EnrichmentDispatcher(client=client))


class TestHelpers:
    """Tests para armado de consultas e interpretación de respuestas."""

    def test_build_requests(self):
        """Una consulta por cada columna vinculada."""
        columns = [
            Column(field_id="batch"),
            Column(field_id="p1", endpoint="/a", bind_field="batch"),
            Column(field_id="p2", endpoint="/b", bind_field="batch"),
            Column(field_id="p3", endpoint="/c", bind_field="other"),
            Column(field_id="p4", bind_field="batch"),
        ]
        requests = build_requests(columns, 0, "batch", "L-1", 7)
        assert [(r.target_field, r.endpoint) for r in requests] == [("p1", "/a"), ("p2", "/b")]
        assert all(r.sequence == 7 and r.value == "L-1" for r in requests)

    def test_extract_value(self):
        """{value: x} o escalar; el resto se descarta."""
        assert extract_value({"value": "x"}) == (True, "x")
        assert extract_value(3) == (True, 3)
        assert extract_value({"value": [1]}) == (False, None)
        assert extract_value({"other": 1}) == (False, None)
        assert extract_value([1, 2]) == (False, None)

    def test_query_value(self):
        """Representación del parámetro."""
        assert query_value(None) == ""
        assert query_value(True) == "true"
        assert query_value(12.5) == "12.5"


class TestStaleResults:
    """Tests para el descarte de resultados obsoletos."""

    def test_only_latest_edit_applies(self):
        """El resultado de una edición anterior se descarta."""
        store = GridStore(SCHEMA)
        store.edit_cell(0, "batch", "A")
        store.edit_cell(0, "batch", "B")
        first = EnrichmentRequest(0, "batch", "product", "/api/value", "A", 1)
        second = EnrichmentRequest(0, "batch", "product", "/api/value", "B", 2)
        assert not store.apply_enrichment(EnrichmentResult(first, "Fetched(A)"))
        assert store.apply_enrichment(EnrichmentResult(second, "Fetched(B)"))
        assert store.rows[0]["product"] == "Fetched(B)"

    def test_removed_row_discards(self):
        """Si la fila ya no existe el resultado se descarta."""
        store = GridStore(SCHEMA)
        store.edit_cell(1, "batch", "A")
        store.remove_row(1)
        request = EnrichmentRequest(1, "batch", "product", "/api/value", "A", 1)
        assert not store.apply_enrichment(EnrichmentResult(request, "x"))
        assert store.rows == [{}]

    def test_readded_row_discards(self):
        """Un resultado de una fila quitada no se aplica a la fila que ocupa su lugar."""
        store = GridStore(SCHEMA)
        store.edit_cell(1, "batch", "A")
        store.remove_row(1)
        store.add_row()
        request = EnrichmentRequest(1, "batch", "product", "/api/value", "A", 1)
        assert not store.apply_enrichment(EnrichmentResult(request, "x"))
        assert "product" not in store.rows[1]

    def test_without_loop_requests_are_queued(self):
        """Sin loop activo las consultas quedan en cola hasta settle()."""
        store = _store(_fetched)
        store.edit_cell(0, "batch", "L-7")
        assert store.pending_enrichment == 1
        asyncio.run(store.aclose())
        assert store.pending_enrichment == 0
        assert store.rows[0]["product"] == "Fetched(L-7)"


class TestDispatch:
    """Tests asíncronos con transporte HTTP simulado."""

    @pytest.mark.asyncio
    async def test_result_fills_target(self):
        """La respuesta llena la columna destino aunque sea de solo lectura."""
        store = _store(_fetched)
        store.edit_cell(0, "batch", "L-001")
        await store.settle()
        assert store.rows[0] == {"batch": "L-001", "product": "Fetched(L-001)"}
        assert store.rows[1] == {}

    @pytest.mark.asyncio
    async def test_out_of_order_response(self):
        """Una respuesta lenta de una edición anterior no pisa la última."""
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["value"] == "A":
                await asyncio.sleep(0.05)
            return _fetched(request)

        store = _store(handler)
        store.edit_cell(0, "batch", "A")
        store.edit_cell(0, "batch", "B")
        await store.settle()
        assert store.rows[0]["product"] == "Fetched(B)"

    @pytest.mark.asyncio
    async def test_failure_is_dropped(self):
        """Errores HTTP no modifican la fila."""
        store = _store(lambda request: httpx.Response(500))
        store.edit_cell(0, "batch", "A")
        await store.settle()
        assert "product" not in store.rows[0]

    @pytest.mark.asyncio
    async def test_invalid_payload_is_dropped(self):
        """Respuestas sin forma válida se descartan."""
        store = _store(lambda request: httpx.Response(200, text="no es json"))
        store.edit_cell(0, "batch", "A")
        await store.settle()
        assert "product" not in store.rows[0]

    @pytest.mark.asyncio
    async def test_multiple_bindings(self):
        """Cada columna vinculada recibe su propio resultado."""
        schema = {"columns": [
            {"field_id": "batch"},
            {"field_id": "p1", "endpoint": "/one", "bind_field": "batch"},
            {"field_id": "p2", "endpoint": "/two", "bind_field": "batch"},
        ]}
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=request.url.path)

        store = _store(handler, schema)
        store.edit_cell(0, "batch", "X")
        await store.settle()
        assert sorted(paths) == ["/one", "/two"]
        assert store.rows[0] == {"batch": "X", "p1": "/one", "p2": "/two"}

    @pytest.mark.asyncio
    async def test_removed_row_before_response(self):
        """Quitar la fila antes de la respuesta descarta el resultado."""
        store = _store(_fetched)
        store.edit_cell(1, "batch", "A")
        store.remove_row(1)
        await store.settle()
        assert store.rows == [{}]

    @pytest.mark.asyncio
    async def test_query_parameter_name(self):
        """El nombre del parámetro sale de la configuración."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(dict(request.url.params))
            return httpx.Response(200, json={"value": 1})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://mes.test")
        dispatcher = EnrichmentDispatcher(client, EngineSettings(enrichment_query_param="q"))
        request = EnrichmentRequest(0, "batch", "product", "/api/value", "L-1", 1)
        result = await dispatcher.fetch(request)
        assert result.value == 1
        assert seen == [{"q": "L-1"}]

    @pytest.mark.asyncio
    async def test_external_client_not_closed(self):
        """aclose no cierra un cliente provisto desde afuera."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(_fetched), base_url="http://mes.test")
        dispatcher = EnrichmentDispatcher(client)
        await dispatcher.aclose()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_endpoint_is_dropped(self):
        """Un endpoint con URL mal formada no modifica la fila."""
        schema = {"columns": [
            {"field_id": "batch"},
            {"field_id": "product", "endpoint": "http://[::1", "bind_field": "batch"},
        ]}
        store = _store(_fetched, schema)
        store.edit_cell(0, "batch", "A")
        await store.settle()
        assert store.rows[0] == {"batch": "A"}
        assert store.pending_enrichment == 0

    @pytest.mark.asyncio
    async def test_malformed_endpoint_fetch_returns_none(self):
        """fetch retorna None ante una URL mal formada."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(_fetched), base_url="http://mes.test")
        dispatcher = EnrichmentDispatcher(client)
        request = EnrichmentRequest(0, "batch", "product", "http://[::1", "A", 1)
        assert await dispatcher.fetch(request) is None
        await client.aclose()
