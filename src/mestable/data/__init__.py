"""
Datos incluidos en el paquete.

- enterprise_schema.json: esquema de ejemplo (registro de lotes con
  encabezados agrupados, fórmulas, visibilidad condicional y firma por rol)
"""

import json
from functools import lru_cache
from pathlib import Path


DATA_DIR = Path(__file__).parent

DEMO_LOOKUP_OPTIONS = {
    "line": [
        {"label": "Línea 1", "value": "L1"},
        {"label": "Línea 2", "value": "L2"},
        {"label": "Línea 3", "value": "L3"},
    ],
}


@lru_cache(maxsize=None)
def _load_json(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


def load_demo_schema() -> dict:
    """Carga el esquema de ejemplo (copia nueva en cada llamada)."""
    return json.loads(_load_json("enterprise_schema.json"))
