"""
Store central de la grilla.

`GridStore` es el único punto de lectura y mutación del estado: recibe
las ediciones, dispara los enriquecimientos vinculados, aplica las
operaciones estructurales y notifica a la aplicación cada vez que cambia
la colección de filas.

El modelo es cooperativo de un solo hilo: las transiciones son pasos
discretos y lo único concurrente son las consultas de enriquecimiento.
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from mestable.config import (
    Column,
    EngineSettings,
    LookupOption,
    RowMode,
    TableConfig,
    TableSchema,
    get_settings,
)
from mestable.core import pagination, structure
from mestable.core.assets import check_asset
from mestable.core.cells import evaluation_namespace, is_disabled, row_view
from mestable.core.enrichment import (
    EnrichmentDispatcher,
    EnrichmentRequest,
    EnrichmentResult,
    build_requests,
)
from mestable.core.expressions import evaluate_visibility
from mestable.core.field_types import ValueKind, get_behavior
from mestable.core.headers import build_header_rows, leaf_order
from mestable.models import AssetInfo, GridState, GridView, HeaderCell, Row


logger = logging.getLogger(__name__)

ChangeListener = Callable[[list[Row]], Any]
SchemaInput = Union[TableSchema, TableConfig, dict]


def _as_config(schema: SchemaInput) -> TableConfig:
    if isinstance(schema, TableConfig):
        return schema
    if isinstance(schema, TableSchema):
        return schema.table_config
    return TableSchema.from_document(schema).table_config


def seed_rows(config: TableConfig, data: Optional[Sequence[Row]] = None) -> list[Row]:
    """
    Filas iniciales.

    Prioridad: datos externos no vacíos, luego `preload_rows`, luego
    `initial_rows` filas con valores por defecto.
    """
    if data:
        return [dict(r) for r in data]
    if config.preload_rows is not None:
        return [dict(r) for r in config.preload_rows]
    return [structure.default_row(config.columns) for _ in range(config.initial_rows)]


def initial_state(
    config: TableConfig,
    data: Optional[Sequence[Row]] = None,
    settings: Optional[EngineSettings] = None,
) -> GridState:
    """Estado inicial derivado del esquema."""
    settings = settings or EngineSettings()
    controls = config.row_controls
    return GridState(
        columns=tuple(config.columns),
        rows=tuple(seed_rows(config, data)),
        rows_per_page=config.page_size(settings.default_rows_per_page),
        min_rows=controls.min_rows,
        max_rows=controls.max_rows,
        fixed_rows=controls.mode == RowMode.FIXED,
    )


class GridStore:
    """
    Store de la grilla.

    Args:
        schema: Documento de esquema (dict, TableSchema o TableConfig)
        data: Filas externas (tienen prioridad si no están vacías)
        lookup_options: Opciones {label, value} por field_id para campos lookup
        role: Rol del usuario para columnas con `signed_by_role`
        on_change: Callback que recibe la colección completa de filas
        dispatcher: Despachador de enriquecimiento (se crea si no se indica)
        settings: Configuración del motor (global si no se indica)
    """

    def __init__(
        self,
        schema: SchemaInput,
        data: Optional[Sequence[Row]] = None,
        *,
        lookup_options: Optional[Mapping[str, Sequence[Union[LookupOption, dict]]]] = None,
        role: Optional[str] = None,
        on_change: Optional[ChangeListener] = None,
        dispatcher: Optional[EnrichmentDispatcher] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or EnrichmentDispatcher(settings=self.settings)
        self.role = role
        self.lookup_options: dict[str, list[LookupOption]] = {}
        self.set_lookup_options(lookup_options or {})
        self.notices: list[str] = []

        self._listeners: list[ChangeListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

        self._sequence = itertools.count(1)
        self._latest_edit: dict[tuple[int, str], int] = {}
        self._queued: list[EnrichmentRequest] = []
        self._tasks: set[asyncio.Task] = set()

        self.config: TableConfig
        self.state: GridState = GridState()
        self.load_schema(schema, data)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def load_schema(self, schema: SchemaInput, data: Optional[Sequence[Row]] = None) -> None:
        """Carga un esquema nuevo: reinicia columnas, filas, selección y página."""
        self.config = _as_config(schema)
        self._latest_edit.clear()
        self._queued.clear()
        self._commit(initial_state(self.config, data, self.settings), force_notify=True)
        logger.debug(
            "Esquema cargado: %d columnas, %d filas",
            len(self.state.columns), len(self.state.rows),
        )

    def load_data(self, data: Optional[Sequence[Row]]) -> None:
        """Reinicia las filas a partir de datos externos con el esquema actual."""
        self.load_schema(self.config, data)

    def set_lookup_options(self, lookup_options: Mapping[str, Sequence[Union[LookupOption, dict]]]) -> None:
        """Reemplaza las opciones externas de los campos lookup."""
        self.lookup_options = {
            fid: [o if isinstance(o, LookupOption) else LookupOption.model_validate(o) for o in opts]
            for fid, opts in lookup_options.items()
        }

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Registra un callback de cambios de filas.

        Returns:
            Función para cancelar la suscripción
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def rows(self) -> list[Row]:
        """Copia de la colección actual de filas."""
        return self.state.rows_list()

    @property
    def columns(self) -> list[Column]:
        """Columnas actuales, en orden de definición."""
        return list(self.state.columns)

    def _commit(self, new_state: GridState, force_notify: bool = False) -> bool:
        old_state = self.state
        self.state = new_state
        rows_changed = force_notify or (
            new_state.rows is not old_state.rows and new_state.rows != old_state.rows
        )
        if len(new_state.rows) < len(old_state.rows):
            self._forget_edits(len(new_state.rows))
        if rows_changed:
            self._notify()
        return new_state is not old_state

    def _forget_edits(self, row_count: int) -> None:
        """Descarta secuencias de edición de filas que ya no existen."""
        for key in [k for k in self._latest_edit if k[0] >= row_count]:
            del self._latest_edit[key]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state.rows_list())

    # ------------------------------------------------------------------
    # Edición de celdas
    # ------------------------------------------------------------------

    def can_edit(self, row_index: int, field_id: str) -> bool:
        """True si la celda existe, es visible y el rol puede editarla."""
        if not 0 <= row_index < len(self.state.rows):
            return False
        column = self.state.get_column(field_id)
        if column is None or is_disabled(column, self.role):
            return False
        namespace = evaluation_namespace(self.state.columns, self.state.rows[row_index])
        return evaluate_visibility(column.visibility_condition, namespace)

    def edit_cell(self, row_index: int, field_id: str, value: Any) -> bool:
        """
        Edita una celda y dispara los enriquecimientos vinculados.

        La entrada se transforma según el tipo de campo. Las celdas
        inexistentes, ocultas o bloqueadas no se modifican.

        Returns:
            True si la edición se aplicó
        """
        if not self.can_edit(row_index, field_id):
            logger.info("Edición rechazada en fila %d, campo '%s'", row_index, field_id)
            return False

        column = self.state.get_column(field_id)
        coerced = get_behavior(column.field_type).coerce(column, value)
        self._commit(structure.edit_cell(self.state, row_index, field_id, coerced))

        sequence = next(self._sequence)
        self._latest_edit[(row_index, field_id)] = sequence
        self._dispatch(build_requests(self.state.columns, row_index, field_id, coerced, sequence))
        return True

    def attach_asset(self, row_index: int, field_id: str, asset: AssetInfo) -> Optional[str]:
        """
        Asigna un archivo a un campo image/file.

        Returns:
            Aviso para el usuario si el archivo se rechaza, None si se asignó
        """
        column = self.state.get_column(field_id)
        if column is None or get_behavior(column.field_type).kind is not ValueKind.ASSET:
            notice = f"El campo '{field_id}' no admite archivos"
        elif not self.can_edit(row_index, field_id):
            notice = f"El campo '{column.field_name}' no es editable"
        else:
            notice = check_asset(column, asset, self.settings.max_asset_size_mb)

        if notice:
            logger.info("Archivo '%s' rechazado: %s", asset.name, notice)
            self.notices.append(notice)
            return notice

        self.edit_cell(row_index, field_id, asset)
        return None

    # ------------------------------------------------------------------
    # Enriquecimiento
    # ------------------------------------------------------------------

    def _dispatch(self, requests: list[EnrichmentRequest]) -> None:
        if not requests:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Sin loop activo: quedan en cola hasta settle()
            self._queued.extend(requests)
            return
        for request in requests:
            self._start(loop, request)

    def _start(self, loop: asyncio.AbstractEventLoop, request: EnrichmentRequest) -> None:
        task = loop.create_task(self._resolve(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _resolve(self, request: EnrichmentRequest) -> None:
        result = await self.dispatcher.fetch(request)
        if result is not None:
            self.apply_enrichment(result)

    def apply_enrichment(self, result: EnrichmentResult) -> bool:
        """
        Aplica un resultado de enriquecimiento.

        Se descarta si la fila ya no existe, si la columna destino fue
        eliminada o si hubo una edición posterior del campo origen.
        """
        request = result.request
        if not 0 <= request.row_index < len(self.state.rows):
            logger.debug("Fila %d ya no existe, resultado descartado", request.row_index)
            return False
        latest = self._latest_edit.get((request.row_index, request.source_field))
        if latest != request.sequence:
            logger.debug(
                "Resultado obsoleto para fila %d campo '%s' (secuencia %d, última %s)",
                request.row_index, request.source_field, request.sequence, latest,
            )
            return False
        if self.state.get_column(request.target_field) is None:
            return False
        self._commit(structure.edit_cell(
            self.state, request.row_index, request.target_field, result.value,
        ))
        return True

    @property
    def pending_enrichment(self) -> int:
        """Consultas en cola o en vuelo."""
        return len(self._queued) + len(self._tasks)

    async def settle(self) -> None:
        """Ejecuta las consultas en cola y espera a que terminen todas."""
        loop = asyncio.get_running_loop()
        while self._queued or self._tasks:
            queued, self._queued = self._queued, []
            for request in queued:
                self._start(loop, request)
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        """Espera las consultas pendientes y cierra el despachador."""
        await self.settle()
        await self.dispatcher.aclose()

    # ------------------------------------------------------------------
    # Operaciones estructurales
    # ------------------------------------------------------------------

    def add_row(self) -> bool:
        """Agrega una fila con valores por defecto."""
        return self._commit(structure.add_row(self.state))

    def remove_row(self, index: int) -> bool:
        """Elimina una fila por índice."""
        return self._commit(structure.remove_row(self.state, index))

    def merge_rows(self) -> bool:
        """Combina dos filas (seleccionadas o las dos últimas)."""
        return self._commit(structure.merge_rows(self.state))

    def split_row(self) -> bool:
        """Duplica una fila (seleccionada o la última)."""
        return self._commit(structure.split_row(self.state))

    def add_column(self, label: Optional[str] = None) -> str:
        """
        Agrega una columna de texto.

        Returns:
            field_id generado
        """
        self._commit(structure.add_column(self.state, label))
        return self.state.columns[-1].field_id

    def remove_column(self, field_id: str) -> bool:
        """Elimina una columna."""
        return self._commit(structure.remove_column(self.state, field_id))

    def merge_columns(self) -> bool:
        """Combina dos columnas (seleccionadas o las dos últimas)."""
        return self._commit(structure.merge_columns(self.state))

    def split_column(self) -> bool:
        """Duplica una columna (seleccionada o la última)."""
        return self._commit(structure.split_column(self.state))

    # ------------------------------------------------------------------
    # Selección y paginación
    # ------------------------------------------------------------------

    def select_row(self, index: int, selected: bool = True) -> None:
        self._commit(structure.select_row(self.state, index, selected))

    def toggle_row(self, index: int) -> None:
        self._commit(structure.toggle_row(self.state, index))

    def select_column(self, field_id: str, selected: bool = True) -> None:
        self._commit(structure.select_column(self.state, field_id, selected))

    def toggle_column(self, field_id: str) -> None:
        self._commit(structure.toggle_column(self.state, field_id))

    def clear_selection(self) -> None:
        self._commit(structure.clear_selection(self.state))

    def set_page(self, page: int) -> int:
        """Mueve el cursor de página; retorna la página resultante."""
        self._commit(structure.set_page(self.state, page))
        return self.state.page

    def next_page(self) -> int:
        return self.set_page(self.state.page + 1)

    def prev_page(self) -> int:
        return self.set_page(self.state.page - 1)

    @property
    def total_pages(self) -> int:
        return pagination.total_pages(len(self.state.rows), self.state.rows_per_page)

    # ------------------------------------------------------------------
    # Vistas derivadas
    # ------------------------------------------------------------------

    def header_rows(self) -> list[list[HeaderCell]]:
        """Encabezado agrupado para las columnas actuales."""
        return build_header_rows(self.config.header_structure, self.state.columns)

    def visible_rows(self) -> list[tuple[int, Row]]:
        """Filas de la página actual como pares (índice, fila)."""
        start, end = pagination.page_bounds(
            self.state.page, len(self.state.rows), self.state.rows_per_page,
        )
        return [(i, dict(self.state.rows[i])) for i in range(start, end)]

    def view(self) -> GridView:
        """Modelo de render de la página actual."""
        visible = self.visible_rows()
        header_rows = self.header_rows()
        # Columnas en el orden de las hojas del encabezado
        columns = [
            col for col in (self.state.get_column(fid) for fid in leaf_order(header_rows))
            if col is not None
        ]
        return GridView(
            header_rows=header_rows,
            columns=columns,
            rows=[
                row_view(columns, row, self.role, self.lookup_options, self.state.columns)
                for _, row in visible
            ],
            row_indices=[i for i, _ in visible],
            page=self.state.page,
            total_pages=self.total_pages,
            total_rows=len(self.state.rows),
            selected_rows=self.state.selected_rows,
            selected_cols=self.state.selected_cols,
        )
