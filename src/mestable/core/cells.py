"""
Vista calculada de celdas: valor mostrado, visibilidad, bloqueo y validez.
"""

from pathlib import PurePath
from typing import Any, Mapping, Optional, Sequence

from mestable.config import Column, LookupOption
from mestable.core.expressions import evaluate_formula, evaluate_visibility
from mestable.core.field_types import (
    ValueKind,
    get_behavior,
    is_empty,
    resolve_options,
    to_number,
)
from mestable.models import AssetInfo, CellView, Row


SIGNATURE_MARK = "[firma]"

LookupMap = Mapping[str, Sequence[LookupOption]]


def role_permits(column: Column, role: Optional[str]) -> bool:
    """True si la columna no restringe roles o el rol pertenece al conjunto."""
    if not column.signed_by_role:
        return True
    return (role or "") in column.signed_by_role


def is_disabled(column: Column, role: Optional[str] = None) -> bool:
    """Celda no editable: read_only, tipo de solo lectura o rol no permitido."""
    return (
        column.read_only
        or get_behavior(column.field_type).read_only
        or not role_permits(column, role)
    )


def evaluation_namespace(columns: Sequence[Column], row: Row) -> dict[str, Any]:
    """
    Valores de la fila interpretados por tipo para evaluar expresiones.

    Los campos numéricos se convierten a número y las fórmulas se
    calculan en orden de columnas (cada una ve las anteriores).
    """
    namespace = dict(row)
    for column in columns:
        kind = get_behavior(column.field_type).kind
        if kind is ValueKind.NUMBER:
            number = to_number(row.get(column.field_id))
            if number is not None:
                namespace[column.field_id] = number
        elif kind is ValueKind.DERIVED:
            namespace[column.field_id] = evaluate_formula(column.formula, namespace)
    return namespace


def _format_number(column: Column, number: float) -> str:
    if column.precision is not None:
        text = f"{number:.{column.precision}f}"
    else:
        text = str(number)
    if column.unit:
        text += f" {column.unit}"
    return text


def format_value(
    column: Column,
    value: Any,
    options: Sequence[LookupOption] = (),
) -> str:
    """Formatea el valor de una celda para mostrar."""
    kind = get_behavior(column.field_type).kind
    if kind is ValueKind.OPAQUE:
        return ""
    if kind is ValueKind.BOOLEAN:
        if value is None or value == "":
            return ""
        return "Sí" if value is True else "No" if value is False else str(value)
    if is_empty(value):
        return ""

    if kind in (ValueKind.NUMBER, ValueKind.DERIVED):
        number = to_number(value)
        if number is not None:
            return _format_number(column, number)
        return str(value)

    if kind is ValueKind.CHOICE:
        for opt in options:
            if str(opt.value) == str(value):
                return opt.label
        return str(value)

    if kind is ValueKind.ASSET:
        if isinstance(value, AssetInfo):
            return value.name
        if isinstance(value, Mapping):
            return str(value.get("name", ""))
        return PurePath(str(value)).name

    if kind is ValueKind.SIGNATURE:
        return SIGNATURE_MARK

    return str(value)


def cell_view(
    column: Column,
    row: Row,
    namespace: Mapping[str, Any],
    role: Optional[str] = None,
    lookup_options: Optional[LookupMap] = None,
) -> CellView:
    """Calcula la vista de una celda."""
    behavior = get_behavior(column.field_type)
    options = resolve_options(column, lookup_options)

    if behavior.kind is ValueKind.DERIVED:
        value = namespace.get(column.field_id, "")
    else:
        value = row.get(column.field_id)

    visible = evaluate_visibility(column.visibility_condition, namespace)
    valid, message = behavior.validate(column, value, options) if visible else (True, "")

    return CellView(
        field_id=column.field_id,
        value=value,
        display=format_value(column, value, options) if visible else "",
        visible=visible,
        disabled=is_disabled(column, role) or not visible,
        valid=valid,
        message=message,
    )


def row_view(
    columns: Sequence[Column],
    row: Row,
    role: Optional[str] = None,
    lookup_options: Optional[LookupMap] = None,
    evaluation_columns: Optional[Sequence[Column]] = None,
) -> list[CellView]:
    """
    Vistas de todas las celdas de una fila.

    Las fórmulas se calculan en el orden de `evaluation_columns` (por
    defecto el de `columns`), que puede diferir del orden mostrado.
    """
    namespace = evaluation_namespace(
        columns if evaluation_columns is None else evaluation_columns, row,
    )
    return [cell_view(c, row, namespace, role, lookup_options) for c in columns]
