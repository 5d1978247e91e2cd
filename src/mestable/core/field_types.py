"""
Registro de tipos de campo.

Cada tag de `field_type` se asocia a un `FieldBehavior` con su regla de
coerción de la entrada cruda, su predicado de validez y su bloqueo de
solo-lectura por defecto. Los tags desconocidos se resuelven al
comportamiento opaco (no editable, sin transformación).

Para agregar un tipo se registra un comportamiento nuevo; los existentes
no se pueden redefinir.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

from mestable.config import Column, FieldType, LookupOption
from mestable.models import AssetInfo


class ValueKind(Enum):
    """Semántica del valor de un campo."""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    ASSET = "asset"
    SIGNATURE = "signature"
    DERIVED = "derived"
    OPAQUE = "opaque"


CoerceFn = Callable[[Column, Any], Any]
ValidateFn = Callable[[Column, Any, Sequence[LookupOption]], tuple[bool, str]]


@dataclass(frozen=True)
class FieldBehavior:
    """Comportamiento asociado a un tag de tipo de campo."""
    tag: str
    kind: ValueKind
    coerce: CoerceFn
    validate: ValidateFn
    read_only: bool = False

    @property
    def editable(self) -> bool:
        return not self.read_only


def is_empty(value: Any) -> bool:
    """Valor vacío: None o string en blanco."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def to_number(value: Any) -> Optional[float]:
    """
    Interpreta un valor como número.

    Returns:
        int o float, o None si no es numérico
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


# ============================================================================
# Reglas de coerción y validación
# ============================================================================

def _check_required(column: Column, value: Any) -> tuple[bool, str]:
    if column.required:
        return False, "Campo requerido"
    return True, ""


def _coerce_text(column: Column, raw: Any) -> Any:
    if raw is None:
        return ""
    text = raw if isinstance(raw, str) else str(raw)
    if column.max_length is not None:
        text = text[:column.max_length]
    return text


def _validate_text(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if is_empty(value):
        return _check_required(column, value)
    if column.max_length is not None and len(str(value)) > column.max_length:
        return False, f"Máximo {column.max_length} caracteres"
    return True, ""


def _coerce_number(column: Column, raw: Any) -> Any:
    if raw is None:
        return ""
    if isinstance(raw, str) and not raw.strip():
        return ""
    number = to_number(raw)
    # Si no es numérico se conserva la entrada y se marca inválida
    return raw if number is None else number


def _validate_number(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if is_empty(value):
        return _check_required(column, value)
    number = to_number(value)
    if number is None:
        return False, "Debe ser un número"
    bounds = column.validation
    if bounds is not None:
        if bounds.min is not None and number < bounds.min:
            return False, f"Mínimo: {bounds.min:g}"
        if bounds.max is not None and number > bounds.max:
            return False, f"Máximo: {bounds.max:g}"
    return True, ""


_TRUE_WORDS = {"true", "1", "yes", "on", "si", "sí"}
_FALSE_WORDS = {"false", "0", "no", "off", ""}


def _coerce_boolean(column: Column, raw: Any) -> Any:
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        word = raw.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return raw


def _validate_boolean(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if value is None or isinstance(value, bool):
        return True, ""
    return False, "Debe ser verdadero o falso"


def _coerce_choice(column: Column, raw: Any) -> Any:
    return "" if raw is None else raw


def _validate_choice(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if is_empty(value):
        return _check_required(column, value)
    allowed = {str(o.value) for o in options}
    if str(value) not in allowed:
        return False, "Opción no válida"
    return True, ""


def _identity(column: Column, raw: Any) -> Any:
    return raw


def _always_valid(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    return True, ""


def _validate_asset(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if is_empty(value):
        return _check_required(column, value)
    if isinstance(value, (AssetInfo, str)):
        return True, ""
    if isinstance(value, Mapping) and value.get("name"):
        return True, ""
    return False, "Archivo no válido"


def _validate_signature(column: Column, value: Any, options: Sequence[LookupOption]) -> tuple[bool, str]:
    if is_empty(value):
        return _check_required(column, value)
    if isinstance(value, str) and value.startswith("data:image/"):
        return True, ""
    return False, "Firma no válida"


# ============================================================================
# Registro
# ============================================================================

OPAQUE = FieldBehavior(
    tag="",
    kind=ValueKind.OPAQUE,
    coerce=_identity,
    validate=_always_valid,
    read_only=True,
)

_REGISTRY: dict[str, FieldBehavior] = {}


def register_field_type(behavior: FieldBehavior) -> FieldBehavior:
    """
    Registra un tipo de campo nuevo.

    Raises:
        ValueError: si el tag ya está registrado
    """
    if not behavior.tag:
        raise ValueError("El tag del tipo de campo no puede estar vacío")
    if behavior.tag in _REGISTRY:
        raise ValueError(f"Tipo de campo '{behavior.tag}' ya registrado")
    _REGISTRY[behavior.tag] = behavior
    return behavior


def unregister_field_type(tag: str) -> None:
    """Elimina un tipo registrado (los tipos incluidos no se pueden quitar)."""
    if tag in _BUILTIN_TAGS:
        raise ValueError(f"Tipo de campo incluido '{tag}' no se puede eliminar")
    _REGISTRY.pop(tag, None)


def get_behavior(tag: Optional[str]) -> FieldBehavior:
    """Obtiene el comportamiento de un tag (opaco si es desconocido)."""
    if tag is None:
        return OPAQUE
    return _REGISTRY.get(tag, OPAQUE)


def registered_types() -> list[str]:
    """Tags registrados, en orden de registro."""
    return list(_REGISTRY)


def resolve_options(
    column: Column,
    lookup_options: Optional[Mapping[str, Sequence[LookupOption]]] = None,
) -> list[LookupOption]:
    """
    Opciones aplicables a una columna.

    `lookup` usa las opciones externas por field_id; el resto usa las
    declaradas en la columna.
    """
    if column.field_type == FieldType.LOOKUP.value:
        raw = (lookup_options or {}).get(column.field_id) or []
        return [o if isinstance(o, LookupOption) else LookupOption.model_validate(o) for o in raw]
    return list(column.options)


for _behavior in (
    FieldBehavior(FieldType.TEXT.value, ValueKind.TEXT, _coerce_text, _validate_text),
    FieldBehavior(FieldType.NUMBER.value, ValueKind.NUMBER, _coerce_number, _validate_number),
    FieldBehavior(FieldType.BOOLEAN.value, ValueKind.BOOLEAN, _coerce_boolean, _validate_boolean),
    FieldBehavior(FieldType.ENUM.value, ValueKind.CHOICE, _coerce_choice, _validate_choice),
    FieldBehavior(FieldType.LOOKUP.value, ValueKind.CHOICE, _coerce_choice, _validate_choice),
    FieldBehavior(FieldType.FORMULA.value, ValueKind.DERIVED, _identity, _always_valid, read_only=True),
    FieldBehavior(FieldType.IMAGE.value, ValueKind.ASSET, _identity, _validate_asset),
    FieldBehavior(FieldType.FILE.value, ValueKind.ASSET, _identity, _validate_asset),
    FieldBehavior(FieldType.SIGNATURE.value, ValueKind.SIGNATURE, _identity, _validate_signature),
):
    register_field_type(_behavior)

_BUILTIN_TAGS = frozenset(_REGISTRY)
