"""
Editor estructural de la grilla.

Todas las operaciones son funciones puras `(GridState, ...) -> GridState`.
Si la operación no aplica (índice fuera de rango, selección insuficiente,
límites de filas) se retorna el mismo estado sin cambios.

Política de objetivos para merge/split:
- merge: las dos filas/columnas seleccionadas si hay exactamente 2,
  si no las dos últimas
- split: la única fila/columna seleccionada, si no la última
"""

import copy
import re
from typing import Any, Iterable, Optional

from mestable.config import Column, FieldType
from mestable.core import pagination
from mestable.models import GridState, Row


# ============================================================================
# Helpers
# ============================================================================

def field_id_from_label(label: str) -> str:
    """Genera un field_id: minúsculas y espacios a guiones bajos."""
    return re.sub(r"\s+", "_", label.strip().lower())


def unique_field_id(base: str, existing: Iterable[str]) -> str:
    """Asegura un field_id único agregando sufijos _2, _3, ..."""
    taken = set(existing)
    if base not in taken:
        return base
    n = 2
    while f"{base}_{n}" in taken:
        n += 1
    return f"{base}_{n}"


def default_row(columns: Iterable[Column]) -> Row:
    """Fila nueva con solo los valores por defecto declarados."""
    return {
        c.field_id: copy.deepcopy(c.default_value)
        for c in columns
        if c.has_default
    }


def _with_rows(state: GridState, rows: tuple[Row, ...], **changes: Any) -> GridState:
    """Nuevo estado con filas reemplazadas y cursor de página limitado."""
    page = changes.pop("page", state.page)
    page = pagination.clamp_page(page, len(rows), state.rows_per_page)
    return state.evolve(rows=rows, page=page, **changes)


def _merge_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _pair_targets(selected: Iterable[int], count: int) -> Optional[tuple[int, int]]:
    """Posiciones a combinar: selección de exactamente 2, si no las 2 últimas."""
    if count < 2:
        return None
    chosen = sorted(i for i in selected if 0 <= i < count)
    if len(chosen) == 2:
        return chosen[0], chosen[1]
    return count - 2, count - 1


def _single_target(selected: Iterable[int], count: int) -> Optional[int]:
    """Posición a duplicar: la única seleccionada, si no la última."""
    if count < 1:
        return None
    chosen = [i for i in selected if 0 <= i < count]
    if len(chosen) == 1:
        return chosen[0]
    return count - 1


def _selected_positions(state: GridState) -> list[int]:
    return [i for i in (state.column_index(f) for f in state.selected_cols) if i >= 0]


# ============================================================================
# Filas
# ============================================================================

def add_row(state: GridState) -> GridState:
    """
    Agrega una fila al final con los valores por defecto.

    Con paginación, el cursor salta a la página de la fila nueva.
    """
    if state.fixed_rows:
        return state
    if state.max_rows is not None and len(state.rows) >= state.max_rows:
        return state
    rows = state.rows + (default_row(state.columns),)
    page = pagination.page_of(len(rows) - 1, state.rows_per_page)
    return _with_rows(state, rows, page=page)


def remove_row(state: GridState, index: int) -> GridState:
    """Elimina la fila `index`, corre los índices siguientes y limita la página."""
    if state.fixed_rows or not 0 <= index < len(state.rows):
        return state
    if state.min_rows is not None and len(state.rows) <= state.min_rows:
        return state
    rows = state.rows[:index] + state.rows[index + 1:]
    selected = frozenset(
        i if i < index else i - 1
        for i in state.selected_rows
        if i != index
    )
    return _with_rows(state, rows, selected_rows=selected)


def merge_rows(state: GridState) -> GridState:
    """
    Combina dos filas en la posición de la menor.

    Los campos de la fila de mayor índice prevalecen. Limpia la selección.
    """
    targets = _pair_targets(state.selected_rows, len(state.rows))
    if targets is None:
        return state
    if state.min_rows is not None and len(state.rows) - 1 < state.min_rows:
        return state
    i, j = targets
    merged = {**state.rows[i], **state.rows[j]}
    rows = state.rows[:i] + (merged,) + state.rows[i + 1:j] + state.rows[j + 1:]
    return _with_rows(state, rows, selected_rows=frozenset(), selected_cols=frozenset())


def split_row(state: GridState) -> GridState:
    """Duplica una fila e inserta la copia inmediatamente después. Limpia la selección."""
    target = _single_target(state.selected_rows, len(state.rows))
    if target is None:
        return state
    if state.max_rows is not None and len(state.rows) >= state.max_rows:
        return state
    clone = copy.deepcopy(state.rows[target])
    rows = state.rows[:target + 1] + (clone,) + state.rows[target + 1:]
    return _with_rows(state, rows, selected_rows=frozenset(), selected_cols=frozenset())


def edit_cell(state: GridState, row_index: int, field_id: str, value: Any) -> GridState:
    """Reemplaza el valor de una celda (sin validaciones de permisos)."""
    if not 0 <= row_index < len(state.rows):
        return state
    row = {**state.rows[row_index], field_id: value}
    rows = state.rows[:row_index] + (row,) + state.rows[row_index + 1:]
    return state.evolve(rows=rows)


# ============================================================================
# Columnas
# ============================================================================

def add_column(state: GridState, label: Optional[str] = None) -> GridState:
    """
    Agrega una columna de texto con field_id derivado de la etiqueta.

    Todas las filas existentes reciben un valor vacío para el campo nuevo.
    """
    label = (label or "").strip() or f"Column {len(state.columns) + 1}"
    field_id = unique_field_id(field_id_from_label(label), state.field_ids)
    column = Column(field_id=field_id, field_name=label, field_type=FieldType.TEXT.value)
    rows = tuple({**row, field_id: ""} for row in state.rows)
    return state.evolve(columns=state.columns + (column,), rows=rows)


def remove_column(state: GridState, field_id: str) -> GridState:
    """Elimina la columna y su valor en todas las filas y en la selección."""
    if state.column_index(field_id) < 0:
        return state
    columns = tuple(c for c in state.columns if c.field_id != field_id)
    rows = tuple({k: v for k, v in row.items() if k != field_id} for row in state.rows)
    return state.evolve(
        columns=columns,
        rows=rows,
        selected_cols=state.selected_cols - {field_id},
    )


def merge_columns(state: GridState) -> GridState:
    """
    Combina dos columnas en la posición de la menor.

    La etiqueta resultante es "A/B" y el valor de cada fila es la unión
    de ambos valores separados por espacio. El campo B se elimina de
    todas las filas. Limpia la selección.
    """
    targets = _pair_targets(_selected_positions(state), len(state.columns))
    if targets is None:
        return state
    a, b = state.columns[targets[0]], state.columns[targets[1]]
    merged = a.model_copy(update={"field_name": f"{a.field_name}/{b.field_name}"})
    columns = tuple(
        merged if c.field_id == a.field_id else c
        for c in state.columns
        if c.field_id != b.field_id
    )
    rows = []
    for row in state.rows:
        joined = f"{_merge_text(row.get(a.field_id))} {_merge_text(row.get(b.field_id))}".strip()
        new_row = {k: v for k, v in row.items() if k != b.field_id}
        new_row[a.field_id] = joined
        rows.append(new_row)
    return state.evolve(
        columns=columns,
        rows=tuple(rows),
        selected_rows=frozenset(),
        selected_cols=frozenset(),
    )


def split_column(state: GridState) -> GridState:
    """
    Duplica una columna como `<id>_copy` / `<label> Copy` a su derecha.

    Copia el valor de cada fila. Limpia la selección.
    """
    target = _single_target(_selected_positions(state), len(state.columns))
    if target is None:
        return state
    source = state.columns[target]
    new_id = unique_field_id(f"{source.field_id}_copy", state.field_ids)
    clone = source.model_copy(update={
        "field_id": new_id,
        "field_name": f"{source.field_name} Copy",
    })
    columns = state.columns[:target + 1] + (clone,) + state.columns[target + 1:]
    rows = tuple(
        {**row, new_id: copy.deepcopy(row.get(source.field_id, ""))}
        for row in state.rows
    )
    return state.evolve(
        columns=columns,
        rows=rows,
        selected_rows=frozenset(),
        selected_cols=frozenset(),
    )


# ============================================================================
# Selección y página
# ============================================================================

def select_row(state: GridState, index: int, selected: bool = True) -> GridState:
    """Marca o desmarca una fila."""
    if not 0 <= index < len(state.rows):
        return state
    rows = state.selected_rows | {index} if selected else state.selected_rows - {index}
    return state.evolve(selected_rows=frozenset(rows))


def toggle_row(state: GridState, index: int) -> GridState:
    """Invierte la selección de una fila."""
    return select_row(state, index, index not in state.selected_rows)


def select_column(state: GridState, field_id: str, selected: bool = True) -> GridState:
    """Marca o desmarca una columna."""
    if state.column_index(field_id) < 0:
        return state
    cols = state.selected_cols | {field_id} if selected else state.selected_cols - {field_id}
    return state.evolve(selected_cols=frozenset(cols))


def toggle_column(state: GridState, field_id: str) -> GridState:
    """Invierte la selección de una columna."""
    return select_column(state, field_id, field_id not in state.selected_cols)


def clear_selection(state: GridState) -> GridState:
    """Deselecciona filas y columnas."""
    return state.evolve(selected_rows=frozenset(), selected_cols=frozenset())


def set_page(state: GridState, page: int) -> GridState:
    """Mueve el cursor de página (limitado al rango válido)."""
    return state.evolve(page=pagination.clamp_page(page, len(state.rows), state.rows_per_page))
