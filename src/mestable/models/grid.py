"""
Estado de la grilla y modelos de vista derivados.

`GridState` es inmutable: cada operación estructural devuelve un estado
nuevo (ver `mestable.core.structure`).
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from mestable.config import Column


Row = dict[str, Any]


@dataclass(frozen=True)
class GridState:
    """Estado canónico de la grilla."""
    columns: tuple[Column, ...] = ()
    rows: tuple[Row, ...] = ()
    selected_rows: frozenset[int] = frozenset()
    selected_cols: frozenset[str] = frozenset()
    page: int = 0
    # Paginación: None = deshabilitada
    rows_per_page: Optional[int] = None
    # Límites de filas (row_controls)
    min_rows: Optional[int] = None
    max_rows: Optional[int] = None
    fixed_rows: bool = False

    def evolve(self, **changes: Any) -> "GridState":
        """Devuelve una copia con los cambios indicados."""
        return replace(self, **changes)

    @property
    def field_ids(self) -> list[str]:
        return [c.field_id for c in self.columns]

    def get_column(self, field_id: str) -> Optional[Column]:
        """Obtiene una columna por su field_id."""
        for col in self.columns:
            if col.field_id == field_id:
                return col
        return None

    def column_index(self, field_id: str) -> int:
        """Posición de la columna, o -1 si no existe."""
        for i, col in enumerate(self.columns):
            if col.field_id == field_id:
                return i
        return -1

    def rows_list(self) -> list[Row]:
        """Copia de las filas (lista de dicts nuevos)."""
        return [dict(r) for r in self.rows]


@dataclass(frozen=True)
class HeaderCell:
    """Celda de encabezado con sus spans."""
    label: str
    depth: int
    col_span: int
    row_span: int
    field_ids: tuple[str, ...] = ()
    is_leaf: bool = True


@dataclass
class AssetInfo:
    """Archivo seleccionado para un campo image/file."""
    name: str
    size_bytes: int
    content_type: str = ""
    data: Optional[bytes] = None

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1024 / 1024


@dataclass
class CellView:
    """Vista calculada de una celda."""
    field_id: str
    value: Any
    display: str
    visible: bool = True
    disabled: bool = False
    valid: bool = True
    message: str = ""


@dataclass
class GridView:
    """Modelo de render: encabezados, página visible y metadatos."""
    header_rows: list[list[HeaderCell]]
    columns: list[Column]
    rows: list[list[CellView]]
    row_indices: list[int]
    page: int
    total_pages: int
    total_rows: int
    selected_rows: frozenset[int] = field(default_factory=frozenset)
    selected_cols: frozenset[str] = field(default_factory=frozenset)
