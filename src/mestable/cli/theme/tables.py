"""
Funciones para crear tablas Rich a partir de la vista de la grilla.
"""

from rich.table import Table
from rich.text import Text
from rich import box

from mestable.cli.theme.palette import get_palette
from mestable.models import CellView, GridView, HeaderCell


def _header_lines(header_rows: list[list[HeaderCell]]) -> dict[str, list[str]]:
    """
    Texto de encabezado por columna, una línea por nivel.

    Rich no soporta col-span: la etiqueta de un grupo se muestra sobre la
    primera columna que abarca y las demás quedan en blanco.
    """
    depth_total = len(header_rows)
    lines: dict[str, list[str]] = {}
    for depth, cells in enumerate(header_rows):
        for cell in cells:
            for k, fid in enumerate(cell.field_ids):
                lines.setdefault(fid, [""] * depth_total)
                lines[fid][depth] = cell.label if k == 0 else ""
    return lines


def _cell_text(cell: CellView) -> Text:
    p = get_palette()
    if not cell.visible:
        return Text("")
    if not cell.valid:
        return Text(f"{cell.display} !", style=f"bold {p.invalid}")
    if cell.disabled:
        return Text(cell.display, style=p.disabled)
    return Text(cell.display)


def create_grid_table(view: GridView, title: str = None) -> Table:
    """Crea la tabla de la página visible con encabezados agrupados."""
    p = get_palette()

    table = Table(
        title=title,
        title_style=f"bold {p.primary}",
        border_style=p.border,
        header_style=f"bold {p.table_header}",
        box=box.ROUNDED,
        show_header=True,
        show_lines=False,
        padding=(0, 1),
    )

    lines = _header_lines(view.header_rows)
    table.add_column("#", justify="right", style=p.muted)
    for column in view.columns:
        header = "\n".join(lines.get(column.field_id, [column.field_name]))
        if column.field_id in view.selected_cols:
            header += " *"
        table.add_column(header, justify="left")

    for index, cells in zip(view.row_indices, view.rows):
        marker = f"{index}*" if index in view.selected_rows else str(index)
        style = f"bold {p.selected}" if index in view.selected_rows else None
        table.add_row(marker, *[_cell_text(c) for c in cells], style=style)

    return table


def create_headers_table(header_rows: list[list[HeaderCell]]) -> Table:
    """Crea la tabla de niveles de encabezado con sus spans."""
    p = get_palette()

    table = Table(
        border_style=p.border,
        header_style=f"bold {p.secondary}",
        box=box.SIMPLE,
        show_header=True,
        padding=(0, 1),
    )
    for name, justify in (
        ("Nivel", "center"),
        ("Etiqueta", "left"),
        ("Col span", "right"),
        ("Row span", "right"),
        ("Campos", "left"),
    ):
        table.add_column(name, justify=justify)

    for cells in header_rows:
        for cell in cells:
            label_style = p.table_header if cell.is_leaf else p.table_group
            table.add_row(
                str(cell.depth),
                Text("  " * cell.depth + cell.label, style=f"bold {label_style}"),
                str(cell.col_span),
                str(cell.row_span),
                ", ".join(cell.field_ids),
            )

    return table
