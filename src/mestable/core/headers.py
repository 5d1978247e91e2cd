"""
Construcción de encabezados agrupados multi-nivel.

Convierte el árbol de encabezados del esquema en filas de visualización
(una por nivel de profundidad) con sus spans:

- col_span: cantidad de field ids hoja bajo la celda
- row_span: profundidad restante para celdas sin hijos, 1 para grupos

Sin árbol de encabezados se sintetiza un nivel único, una celda por columna.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from mestable.config import Column, HeaderNode
from mestable.models import HeaderCell


@dataclass
class _Node:
    label: str
    columns: list[str] = field(default_factory=list)
    children: list["_Node"] = field(default_factory=list)

    def leaves(self) -> list[str]:
        ids = list(self.columns)
        for child in self.children:
            ids.extend(child.leaves())
        return ids

    def height(self) -> int:
        if not self.children:
            return 1
        return 1 + max(child.height() for child in self.children)


def _from_schema(nodes: Sequence[HeaderNode]) -> list[_Node]:
    return [
        _Node(
            label=n.label,
            columns=list(n.columns or []),
            children=_from_schema(n.children or []),
        )
        for n in nodes
    ]


def _prune(nodes: list[_Node], known: set[str], claimed: set[str]) -> list[_Node]:
    """Quita ids inexistentes o repetidos y los grupos que quedan vacíos."""
    kept = []
    for node in nodes:
        columns = []
        for fid in node.columns:
            if fid in known and fid not in claimed:
                claimed.add(fid)
                columns.append(fid)
        children = _prune(node.children, known, claimed)
        if columns or children:
            kept.append(_Node(node.label, columns, children))
    return kept


def synthesize_header(columns: Sequence[Column]) -> list[HeaderNode]:
    """Encabezado de un solo nivel derivado de las columnas."""
    return [HeaderNode(label=c.field_name, columns=[c.field_id]) for c in columns]


def build_header_rows(
    header_structure: Optional[Sequence[HeaderNode]] = None,
    columns: Optional[Sequence[Column]] = None,
) -> list[list[HeaderCell]]:
    """
    Construye las filas de encabezado.

    Args:
        header_structure: Árbol de encabezados del esquema (opcional)
        columns: Columnas actuales. Si se indican (aunque sea una lista
            vacía), se descartan las hojas que no existen y las columnas
            no referenciadas se agregan al final como celdas de nivel
            superior.

    Returns:
        Lista de filas (índice = profundidad) de HeaderCell
    """
    known = None if columns is None else list(columns)
    columns = known or []
    if header_structure:
        nodes = _from_schema(header_structure)
        if known is not None:
            claimed: set[str] = set()
            nodes = _prune(nodes, {c.field_id for c in columns}, claimed)
            nodes.extend(
                _Node(c.field_name, [c.field_id])
                for c in columns
                if c.field_id not in claimed
            )
    else:
        nodes = []
    if not nodes:
        nodes = _from_schema(synthesize_header(columns))
    if not nodes:
        return []

    total_depth = max(n.height() for n in nodes)
    rows: list[list[HeaderCell]] = [[] for _ in range(total_depth)]

    def visit(items: list[_Node], depth: int) -> None:
        for node in items:
            rows[depth].append(HeaderCell(
                label=node.label,
                depth=depth,
                col_span=len(node.leaves()),
                row_span=1 if node.children else total_depth - depth,
                field_ids=tuple(node.leaves()),
                is_leaf=not node.children,
            ))
            if node.children:
                visit(node.children, depth + 1)

    visit(nodes, 0)
    return rows


def leaf_order(header_rows: list[list[HeaderCell]]) -> list[str]:
    """Orden de field ids según las hojas del encabezado (izquierda a derecha)."""
    order: list[str] = []
    if not header_rows:
        return order
    for cell in header_rows[0]:
        order.extend(fid for fid in cell.field_ids if fid not in order)
    return order
