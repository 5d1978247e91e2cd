"""Configuración de pytest para tests de mestable."""

import pytest

from mestable.config import EngineSettings, reset_settings


@pytest.fixture(autouse=True)
def isolated_settings():
    """Configuración por defecto, sin leer ~/.mestable."""
    reset_settings(EngineSettings())
    yield
    reset_settings(None)


@pytest.fixture
def simple_columns():
    """Columnas básicas: texto, número con límites y fórmula."""
    return [
        {"field_id": "name", "field_name": "Nombre", "field_type": "text"},
        {"field_id": "qty", "field_name": "Cantidad", "field_type": "number",
         "validation": {"min": 0, "max": 100}, "default_value": 1},
        {"field_id": "price", "field_name": "Precio", "field_type": "number", "precision": 2},
        {"field_id": "total", "field_name": "Total", "field_type": "formula", "formula": "qty * price"},
    ]


@pytest.fixture
def simple_schema(simple_columns):
    """Esquema mínimo sin filas precargadas."""
    return {"table_config": {"columns": simple_columns}}


@pytest.fixture
def paged_schema(simple_columns):
    """Esquema con paginación de 5 filas y 12 filas precargadas."""
    return {
        "table_config": {
            "columns": simple_columns,
            "preload_rows": [{"name": f"r{i}", "qty": i} for i in range(12)],
            "pagination": {"enabled": True, "rows_per_page": 5},
        }
    }


@pytest.fixture
def grouped_header():
    """Árbol de encabezados de dos niveles."""
    return [
        {"label": "Group", "children": [
            {"label": "X", "columns": ["x"]},
            {"label": "Y", "columns": ["y"]},
        ]},
    ]
