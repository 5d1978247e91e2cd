"""
Núcleo del motor de tablas.

Implementa la interpretación del esquema y las transiciones de estado:
- Registro de tipos de campo
- Evaluador restringido de expresiones
- Encabezados agrupados
- Paginación
- Editor estructural
- Enriquecimiento asíncrono
"""

from mestable.core.field_types import (
    FieldBehavior,
    ValueKind,
    get_behavior,
    register_field_type,
    registered_types,
    resolve_options,
)
from mestable.core.expressions import (
    EMPTY,
    ExpressionError,
    evaluate,
    evaluate_formula,
    evaluate_visibility,
)
from mestable.core.headers import build_header_rows
from mestable.core.cells import row_view, format_value, is_disabled, role_permits
from mestable.core.enrichment import (
    EnrichmentDispatcher,
    EnrichmentRequest,
    EnrichmentResult,
)

__all__ = [
    # Tipos de campo
    "FieldBehavior",
    "ValueKind",
    "get_behavior",
    "register_field_type",
    "registered_types",
    "resolve_options",
    # Expresiones
    "EMPTY",
    "ExpressionError",
    "evaluate",
    "evaluate_formula",
    "evaluate_visibility",
    # Encabezados
    "build_header_rows",
    # Celdas
    "row_view",
    "format_value",
    "is_disabled",
    "role_permits",
    # Enriquecimiento
    "EnrichmentDispatcher",
    "EnrichmentRequest",
    "EnrichmentResult",
]
