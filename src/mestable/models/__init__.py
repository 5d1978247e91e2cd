"""
Modelos de datos de mestable.

Estado inmutable de la grilla y modelos de vista derivados.
"""

from mestable.models.grid import (
    AssetInfo,
    CellView,
    GridState,
    GridView,
    HeaderCell,
    Row,
)

__all__ = [
    # Estado
    "GridState",
    "Row",
    # Vistas
    "HeaderCell",
    "CellView",
    "GridView",
    # Archivos
    "AssetInfo",
]
