"""
Despacho de consultas de enriquecimiento.

Al editar un campo que es `bind_field` de otra columna con `endpoint`, se
emite una consulta GET con el valor nuevo como único parámetro. La
respuesta esperada es `{"value": <escalar>}` o un escalar; cualquier otra
forma, o cualquier falla, se descarta sin reintentos.

Cada consulta lleva el número de secuencia de la edición que la originó;
el store solo aplica el resultado si sigue siendo la última edición de ese
campo en esa fila.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx

from mestable.config import Column, EngineSettings


logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool)


@dataclass(frozen=True)
class EnrichmentRequest:
    """Consulta en vuelo para una celda destino."""
    row_index: int
    source_field: str
    target_field: str
    endpoint: str
    value: Any
    sequence: int


@dataclass(frozen=True)
class EnrichmentResult:
    """Valor obtenido para una consulta."""
    request: EnrichmentRequest
    value: Any


def bound_columns(columns: Iterable[Column], field_id: str) -> list[Column]:
    """Columnas con endpoint cuyo bind_field es el campo editado."""
    return [c for c in columns if c.endpoint and c.bind_field == field_id]


def build_requests(
    columns: Iterable[Column],
    row_index: int,
    field_id: str,
    value: Any,
    sequence: int,
) -> list[EnrichmentRequest]:
    """Una consulta por cada columna vinculada al campo editado."""
    return [
        EnrichmentRequest(
            row_index=row_index,
            source_field=field_id,
            target_field=col.field_id,
            endpoint=col.endpoint,
            value=value,
            sequence=sequence,
        )
        for col in bound_columns(columns, field_id)
    ]


def query_value(value: Any) -> str:
    """Representación del valor como parámetro de consulta."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def extract_value(payload: Any) -> tuple[bool, Any]:
    """
    Interpreta el cuerpo de la respuesta.

    Returns:
        (True, valor) si la forma es válida, (False, None) si no
    """
    if isinstance(payload, dict):
        value = payload.get("value")
        if isinstance(value, _SCALARS):
            return True, value
        return False, None
    if isinstance(payload, _SCALARS):
        return True, payload
    return False, None


class EnrichmentDispatcher:
    """
    Cliente asíncrono de consultas de enriquecimiento.

    Usa un `httpx.AsyncClient` compartido; si no se provee uno se crea
    de forma diferida con la configuración del motor.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"timeout": self.settings.enrichment_timeout_s}
            if self.settings.enrichment_base_url:
                kwargs["base_url"] = self.settings.enrichment_base_url
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def fetch(self, request: EnrichmentRequest) -> Optional[EnrichmentResult]:
        """
        Ejecuta una consulta.

        Returns:
            EnrichmentResult, o None si la consulta falla o la respuesta
            no tiene una forma válida
        """
        params = {self.settings.enrichment_query_param: query_value(request.value)}
        try:
            response = await self.client.get(request.endpoint, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ValueError) as exc:
            logger.debug("Enriquecimiento %s descartado: %s", request.endpoint, exc)
            return None

        ok, value = extract_value(payload)
        if not ok:
            logger.debug("Respuesta sin forma válida de %s: %r", request.endpoint, payload)
            return None
        return EnrichmentResult(request=request, value=value)

    async def aclose(self) -> None:
        """Cierra el cliente HTTP si fue creado por el despachador."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
