"""
Paginación de filas.

Con `rows_per_page` None la paginación está deshabilitada: una sola
página con todas las filas.
"""

import math
from typing import Optional, Sequence, TypeVar


T = TypeVar("T")


def total_pages(total_rows: int, rows_per_page: Optional[int]) -> int:
    """Cantidad de páginas: ceil(filas / tamaño), 1 si está deshabilitada."""
    if not rows_per_page:
        return 1
    return math.ceil(max(total_rows, 0) / rows_per_page)


def last_page(total_rows: int, rows_per_page: Optional[int]) -> int:
    """Índice de la última página válida (nunca negativo)."""
    return max(0, total_pages(total_rows, rows_per_page) - 1)


def clamp_page(page: int, total_rows: int, rows_per_page: Optional[int]) -> int:
    """Limita el cursor de página al rango [0, última página]."""
    return min(max(page, 0), last_page(total_rows, rows_per_page))


def page_of(row_index: int, rows_per_page: Optional[int]) -> int:
    """Página que contiene una fila."""
    if not rows_per_page or row_index < 0:
        return 0
    return row_index // rows_per_page


def page_bounds(page: int, total_rows: int, rows_per_page: Optional[int]) -> tuple[int, int]:
    """Rango [inicio, fin) de índices visibles en una página."""
    if not rows_per_page:
        return 0, total_rows
    start = page * rows_per_page
    return min(start, total_rows), min(start + rows_per_page, total_rows)


def visible_slice(rows: Sequence[T], page: int, rows_per_page: Optional[int]) -> list[T]:
    """Filas visibles: rows[page*size : (page+1)*size]."""
    start, end = page_bounds(page, len(rows), rows_per_page)
    return list(rows[start:end])
