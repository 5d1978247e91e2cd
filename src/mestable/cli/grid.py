"""
Comandos para visualizar y editar grillas definidas por esquema.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError

from mestable.config import TableSchema
from mestable.core.expressions import ExpressionError, evaluate
from mestable.core.field_types import get_behavior
from mestable.store import GridStore


def _load_schema(path: Path) -> TableSchema:
    """
    Lee un esquema desde archivo JSON.

    Raises:
        typer.Exit si el archivo no existe o es inválido
    """
    from mestable.cli.theme import print_error

    if not path.exists():
        print_error(f"Archivo no encontrado: {path}")
        raise typer.Exit(1)
    try:
        return TableSchema.from_document(path)
    except (ValueError, ValidationError) as exc:
        print_error(f"Esquema inválido: {exc}")
        raise typer.Exit(1)


def _load_json_list(path: Optional[Path], what: str) -> Optional[list]:
    from mestable.cli.theme import print_error

    if path is None:
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print_error(f"No se pudo leer {what}: {exc}")
        raise typer.Exit(1)
    if not isinstance(data, list):
        print_error(f"{what} debe ser una lista JSON")
        raise typer.Exit(1)
    return data


def _load_lookup(path: Optional[Path]) -> dict:
    from mestable.cli.theme import print_error

    if path is None:
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print_error(f"No se pudo leer opciones: {exc}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        print_error("Las opciones deben ser un objeto {field_id: [...]}")
        raise typer.Exit(1)
    return data


def render_store(store: GridStore, title: str = None) -> None:
    """Imprime la página actual de la grilla."""
    from mestable.cli.theme import create_grid_table, get_console, get_palette

    console = get_console()
    p = get_palette()
    view = store.view()
    console.print(create_grid_table(view, title=title))
    pages = max(view.total_pages, 1)
    console.print(
        f"  Página {view.page + 1} de {pages}  |  {view.total_rows} filas",
        style=p.muted,
    )


# ============================================================================
# Comandos
# ============================================================================

def grid_show(
    schema_path: Annotated[Path, typer.Argument(help="Archivo JSON del esquema")],
    data: Annotated[Optional[Path], typer.Option("--data", "-d", help="Filas externas (lista JSON)")] = None,
    lookup: Annotated[Optional[Path], typer.Option("--lookup", help="Opciones lookup {field_id: [{label, value}]}")] = None,
    role: Annotated[Optional[str], typer.Option("--role", "-r", help="Rol del usuario")] = None,
    page: Annotated[int, typer.Option("--page", "-p", help="Página a mostrar (desde 1)")] = 1,
) -> None:
    """
    Muestra la grilla de un esquema.

    Las filas se toman de --data si no está vacío, si no de preload_rows,
    si no se crean initial_rows filas con valores por defecto.
    """
    schema = _load_schema(schema_path)
    store = GridStore(
        schema,
        _load_json_list(data, "los datos"),
        lookup_options=_load_lookup(lookup),
        role=role,
    )
    store.set_page(page - 1)
    render_store(store, title=schema_path.stem)


def grid_headers(
    schema_path: Annotated[Path, typer.Argument(help="Archivo JSON del esquema")],
) -> None:
    """Muestra los niveles de encabezado con col-span y row-span."""
    from mestable.cli.theme import create_headers_table, get_console, print_header

    schema = _load_schema(schema_path)
    store = GridStore(schema)
    header_rows = store.header_rows()
    print_header("Encabezados", f"{len(header_rows)} niveles")
    get_console().print(create_headers_table(header_rows))


class _Collector(logging.Handler):
    """Junta los avisos emitidos mientras se interpreta el esquema."""

    def __init__(self):
        super().__init__(level=logging.WARNING)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def grid_validate(
    schema_path: Annotated[Path, typer.Argument(help="Archivo JSON del esquema")],
) -> None:
    """
    Valida un esquema y lista sus columnas.

    Las secciones mal formadas no son fatales: se informan como avisos.
    """
    from rich.table import Table
    from mestable.cli.theme import get_console, print_header, print_success, print_warning

    collector = _Collector()
    config_logger = logging.getLogger("mestable.config")
    config_logger.addHandler(collector)
    try:
        schema = _load_schema(schema_path)
    finally:
        config_logger.removeHandler(collector)

    config = schema.table_config
    print_header(f"Esquema: {schema_path.name}", f"{len(config.columns)} columnas")

    table = Table(show_header=True)
    table.add_column("field_id", style="cyan")
    table.add_column("Nombre")
    table.add_column("Tipo")
    table.add_column("Semántica")
    table.add_column("Atributos", style="dim")
    for col in config.columns:
        behavior = get_behavior(col.field_type)
        flags = []
        if col.read_only or behavior.read_only:
            flags.append("solo lectura")
        if col.required:
            flags.append("requerido")
        if col.formula:
            flags.append(f"= {col.formula}")
        if col.visibility_condition:
            flags.append(f"visible si {col.visibility_condition}")
        if col.endpoint:
            flags.append(f"{col.bind_field} -> {col.endpoint}")
        if col.signed_by_role:
            flags.append(f"roles: {', '.join(col.signed_by_role)}")
        table.add_row(col.field_id, col.field_name, col.field_type, behavior.kind.value, "; ".join(flags))
    get_console().print(table)

    for message in collector.messages:
        print_warning(message)
    if not collector.messages:
        print_success("Esquema válido")


def grid_eval(
    expression: Annotated[str, typer.Argument(help="Expresión a evaluar")],
    row: Annotated[str, typer.Option("--row", help="Valores de la fila (objeto JSON)")] = "{}",
    visibility: Annotated[bool, typer.Option("--visibility", help="Evaluar como condición de visibilidad")] = False,
) -> None:
    """Evalúa una fórmula o condición contra una fila."""
    from mestable.cli.theme import print_error, print_field

    try:
        values = json.loads(row)
    except ValueError as exc:
        print_error(f"--row no es JSON válido: {exc}")
        raise typer.Exit(1)
    if not isinstance(values, dict):
        print_error("--row debe ser un objeto JSON")
        raise typer.Exit(1)

    try:
        result = evaluate(expression, values)
    except ExpressionError as exc:
        if visibility:
            print_field("Visible", True)
        else:
            print_field("Resultado", '""')
        print_error(f"Expresión inválida: {exc}")
        return

    if visibility:
        print_field("Visible", bool(result))
    else:
        print_field("Resultado", json.dumps(result, ensure_ascii=False))


def _parse_assignment(text: str) -> tuple[int, str, str]:
    """Interpreta 'FILA:CAMPO=VALOR'."""
    target, sep, value = text.partition("=")
    row_text, colon, field_id = target.partition(":")
    if not sep or not colon or not field_id:
        raise ValueError(f"Formato esperado FILA:CAMPO=VALOR, se recibió '{text}'")
    return int(row_text), field_id.strip(), value


def apply_operation(store: GridStore, op: str) -> bool:
    """
    Aplica una operación en texto sobre el store.

    Formatos: set:FILA:CAMPO=VALOR, add-row, remove-row:N,
    add-column[:Etiqueta], remove-column:ID, merge-rows, split-row,
    merge-columns, split-column, select-row:N, select-column:ID, page:N

    Raises:
        ValueError: si la operación no se reconoce
    """
    name, _, arg = op.partition(":")
    name = name.strip().lower()
    if name == "set":
        row_index, field_id, value = _parse_assignment(arg)
        return store.edit_cell(row_index, field_id, value)
    if name == "add-row":
        return store.add_row()
    if name == "remove-row":
        return store.remove_row(int(arg))
    if name == "add-column":
        return bool(store.add_column(arg or None))
    if name == "remove-column":
        return store.remove_column(arg)
    if name == "merge-rows":
        return store.merge_rows()
    if name == "split-row":
        return store.split_row()
    if name == "merge-columns":
        return store.merge_columns()
    if name == "split-column":
        return store.split_column()
    if name == "select-row":
        store.select_row(int(arg))
        return True
    if name == "select-column":
        store.select_column(arg)
        return True
    if name == "page":
        store.set_page(int(arg) - 1)
        return True
    raise ValueError(f"Operación desconocida: {op}")


def grid_edit(
    schema_path: Annotated[Path, typer.Argument(help="Archivo JSON del esquema")],
    set_: Annotated[Optional[list[str]], typer.Option("--set", "-s", help="Edición FILA:CAMPO=VALOR (repetible)")] = None,
    op: Annotated[Optional[list[str]], typer.Option("--op", help="Operación estructural (repetible, en orden)")] = None,
    data: Annotated[Optional[Path], typer.Option("--data", "-d", help="Filas externas (lista JSON)")] = None,
    role: Annotated[Optional[str], typer.Option("--role", "-r", help="Rol del usuario")] = None,
    enrich: Annotated[bool, typer.Option("--enrich/--no-enrich", help="Ejecutar consultas de enriquecimiento")] = False,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Guardar filas resultantes en archivo")] = None,
) -> None:
    """
    Aplica ediciones y operaciones y emite las filas resultantes en JSON.

    Primero se aplican las ediciones --set y luego las --op en el orden dado.
    """
    from mestable.cli.theme import print_error, print_warning

    schema = _load_schema(schema_path)
    store = GridStore(schema, _load_json_list(data, "los datos"), role=role)

    try:
        for assignment in set_ or []:
            if not apply_operation(store, f"set:{assignment}"):
                print_warning(f"Edición no aplicada: {assignment}")
        for operation in op or []:
            if not apply_operation(store, operation):
                print_warning(f"Operación sin efecto: {operation}")
    except ValueError as exc:
        print_error(str(exc))
        raise typer.Exit(1)

    if enrich and store.pending_enrichment:
        asyncio.run(store.aclose())

    payload = json.dumps(store.rows, ensure_ascii=False, indent=2, default=_json_default)
    if output:
        output.write_text(payload, encoding="utf-8")
    else:
        typer.echo(payload)


def _json_default(value: Any) -> Any:
    name = getattr(value, "name", None)
    return name if name is not None else str(value)


def grid_demo(
    role: Annotated[Optional[str], typer.Option("--role", "-r", help="Rol del usuario (QA habilita la firma)")] = "QA",
) -> None:
    """Muestra el esquema de ejemplo incluido."""
    from mestable.data import DEMO_LOOKUP_OPTIONS, load_demo_schema

    store = GridStore(load_demo_schema(), lookup_options=DEMO_LOOKUP_OPTIONS, role=role)
    render_store(store, title="Registro de lotes")
