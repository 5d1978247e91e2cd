"""
mestable - Motor de tablas MES dirigidas por esquema.

Interpreta un esquema declarativo de columnas y mantiene una grilla
editable: tipos de campo, fórmulas, visibilidad condicional, encabezados
agrupados, enriquecimiento asíncrono y edición estructural.
"""

__version__ = "0.1.0"

from mestable.config import Column, HeaderNode, LookupOption, TableConfig, TableSchema
from mestable.models import GridState
from mestable.store import GridStore

__all__ = [
    "Column",
    "HeaderNode",
    "LookupOption",
    "TableConfig",
    "TableSchema",
    "GridState",
    "GridStore",
]
