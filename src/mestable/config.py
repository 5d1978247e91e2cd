"""Modelos Pydantic para el esquema de tabla y la configuración del motor."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)


logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Tipos de campo incluidos en el registro."""
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    LOOKUP = "lookup"
    FORMULA = "formula"
    IMAGE = "image"
    FILE = "file"
    SIGNATURE = "signature"


class RowMode(str, Enum):
    """Modo de crecimiento de filas."""
    FIXED = "fixed"
    GROWING = "growing"


class ControlSide(str, Enum):
    """Lado donde se ubican los controles de fila."""
    LEFT = "left"
    RIGHT = "right"


# ============================================================================
# Columnas y opciones
# ============================================================================

class LookupOption(BaseModel):
    """Opción {label, value} para campos enum/lookup."""
    label: str = ""
    value: Any = None

    @model_validator(mode="after")
    def _default_label(self) -> "LookupOption":
        if not self.label and self.value is not None:
            self.label = str(self.value)
        return self


class Validation(BaseModel):
    """Límites numéricos de un campo."""
    min: Optional[float] = None
    max: Optional[float] = None


class Column(BaseModel):
    """
    Definición de una columna (campo) de la tabla.

    `field_type` se guarda como texto libre: los tags desconocidos se
    resuelven a un comportamiento opaco en el registro de tipos.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    field_id: str = Field(..., min_length=1)
    field_name: str = ""
    field_type: str = FieldType.TEXT.value
    unit: Optional[str] = None
    precision: Optional[int] = Field(default=None, ge=0, le=12)
    required: bool = False
    read_only: bool = False
    default_value: Any = None
    validation: Optional[Validation] = None
    options: list[LookupOption] = Field(default_factory=list)
    formula: Optional[str] = None
    endpoint: Optional[str] = None
    bind_field: Optional[str] = None
    visibility_condition: Optional[str] = None
    signed_by_role: list[str] = Field(default_factory=list)
    # Pistas de presentación
    multiline: bool = False
    max_length: Optional[int] = Field(default=None, ge=0)
    rows: Optional[int] = None
    capture_camera: bool = False
    file_types: list[str] = Field(default_factory=list)
    max_size_mb: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _lenient_subsections(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "validation" in data and not isinstance(data["validation"], (dict, Validation)):
            logger.warning("Columna %s: 'validation' inválida, se ignora", data.get("field_id"))
            data.pop("validation")
        options = data.get("options")
        if options is not None:
            if not isinstance(options, list):
                logger.warning("Columna %s: 'options' inválidas, se ignoran", data.get("field_id"))
                data["options"] = []
            else:
                data["options"] = [
                    o for o in options
                    if isinstance(o, LookupOption) or (isinstance(o, dict) and "value" in o)
                ]
        roles = data.get("signed_by_role")
        if isinstance(roles, str):
            data["signed_by_role"] = [roles]
        elif roles is None:
            data.pop("signed_by_role", None)
        if isinstance(data.get("field_type"), Enum):
            data["field_type"] = data["field_type"].value
        if not data.get("field_name") and isinstance(data.get("field_id"), str):
            data["field_name"] = data["field_id"]
        return data

    @property
    def has_default(self) -> bool:
        """True si el esquema declara `default_value` (aunque sea null)."""
        return "default_value" in self.model_fields_set


# ============================================================================
# Encabezados y secciones opcionales
# ============================================================================

class HeaderNode(BaseModel):
    """Nodo del árbol de encabezados: las hojas referencian field ids."""
    label: str = ""
    columns: Optional[list[str]] = None
    children: Optional[list["HeaderNode"]] = None


class RowControls(BaseModel):
    """Controles de filas: límites, modo y filas iniciales."""
    mode: Optional[RowMode] = None
    min_rows: Optional[int] = Field(default=None, ge=0)
    max_rows: Optional[int] = Field(default=None, ge=0)
    allow_add_remove: bool = False
    initial_rows: Optional[int] = None
    side: ControlSide = ControlSide.RIGHT


class Pagination(BaseModel):
    """Paginación de filas."""
    enabled: bool = False
    rows_per_page: Optional[int] = Field(default=None, gt=0)


class ColumnLayout(BaseModel):
    """Disposición de columnas (solo presentación)."""
    column_count: Optional[int] = None
    column_width_mode: Optional[str] = None
    sticky_headers: bool = False
    resizable_columns: bool = False


class TableStyle(BaseModel):
    """Estilo de la tabla (solo presentación)."""
    table_border: bool = False
    striped_rows: bool = False
    alternate_row_color: Optional[str] = None
    header_color: Optional[str] = None
    header_font_color: Optional[str] = None


_SECTION_MODELS = {
    "row_controls": RowControls,
    "pagination": Pagination,
    "column_layout": ColumnLayout,
    "style": TableStyle,
}

_HEADER_ADAPTER = TypeAdapter(list[HeaderNode])


class TableConfig(BaseModel):
    """
    Configuración completa de la tabla.

    Las secciones opcionales mal formadas se registran en el log y se
    reemplazan por sus valores por defecto, igual que los atributos
    inválidos de cada columna. Las columnas sin `field_id` utilizable o
    con `field_id` duplicado se descartan.
    """

    columns: list[Column] = Field(default_factory=list)
    header_structure: Optional[list[HeaderNode]] = None
    preload_rows: Optional[list[dict]] = None
    row_controls: RowControls = Field(default_factory=RowControls)
    pagination: Pagination = Field(default_factory=Pagination)
    column_layout: ColumnLayout = Field(default_factory=ColumnLayout)
    style: TableStyle = Field(default_factory=TableStyle)

    @model_validator(mode="before")
    @classmethod
    def _lenient_sections(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError("table_config debe ser un objeto")
        data = dict(data)

        for name, model in _SECTION_MODELS.items():
            if name not in data:
                continue
            value = data[name]
            if value is None:
                data.pop(name)
                continue
            try:
                data[name] = model.model_validate(value)
            except ValidationError as exc:
                logger.warning("Sección '%s' inválida, se usan valores por defecto: %s", name, exc.error_count())
                data.pop(name)

        if data.get("header_structure") is not None:
            try:
                data["header_structure"] = _HEADER_ADAPTER.validate_python(data["header_structure"])
            except ValidationError:
                logger.warning("header_structure inválida, se sintetiza un encabezado simple")
                data.pop("header_structure")

        preload = data.get("preload_rows")
        if preload is not None:
            if not isinstance(preload, list):
                logger.warning("preload_rows inválidas, se ignoran")
                data.pop("preload_rows")
            else:
                data["preload_rows"] = [dict(r) for r in preload if isinstance(r, dict)]

        data["columns"] = _parse_columns(data.get("columns"))
        return data

    @property
    def initial_rows(self) -> int:
        """Filas iniciales en blanco (1 si falta o no es positivo)."""
        count = self.row_controls.initial_rows
        return count if count and count > 0 else 1

    def page_size(self, default: int = 5) -> Optional[int]:
        """Filas por página, o None si la paginación está deshabilitada."""
        if not self.pagination.enabled:
            return None
        return self.pagination.rows_per_page or default


def _validate_column(entry: Any) -> Column:
    """
    Valida una columna; los atributos inválidos vuelven a su valor por defecto.

    Raises:
        ValidationError: si falta un field_id utilizable
    """
    if isinstance(entry, Column):
        return entry
    try:
        return Column.model_validate(entry)
    except ValidationError as exc:
        if not isinstance(entry, dict):
            raise
        locs = [err["loc"] for err in exc.errors()]
        if not locs or any(not loc or loc[0] == "field_id" for loc in locs):
            raise
        data = dict(entry)
        bounds = dict(data["validation"]) if isinstance(data.get("validation"), dict) else None
        dropped = []
        for loc in locs:
            if loc[0] == "validation" and bounds is not None and len(loc) > 1:
                bounds.pop(loc[1], None)
                dropped.append(f"validation.{loc[1]}")
            else:
                data.pop(loc[0], None)
                dropped.append(str(loc[0]))
        if bounds is not None and "validation" in data:
            data["validation"] = bounds
        logger.warning(
            "Columna %s: atributos inválidos (%s), se usan valores por defecto",
            entry.get("field_id"), ", ".join(sorted(set(dropped))),
        )
        return Column.model_validate(data)


def _parse_columns(raw: Any) -> list[Column]:
    """Valida columnas una a una, descartando las que no tienen field_id y las duplicadas."""
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("'columns' debe ser una lista, se ignora")
        return []

    columns: list[Column] = []
    seen: set[str] = set()
    for entry in raw:
        try:
            col = _validate_column(entry)
        except ValidationError as exc:
            logger.warning("Columna inválida descartada (%d errores)", exc.error_count())
            continue
        if col.field_id in seen:
            logger.warning("field_id duplicado '%s', se conserva la primera", col.field_id)
            continue
        seen.add(col.field_id)
        columns.append(col)
    return columns


class TableSchema(BaseModel):
    """Documento de esquema: envoltorio de `table_config`."""
    table_config: TableConfig

    @classmethod
    def from_document(cls, document: Union[dict, str, Path]) -> "TableSchema":
        """
        Construye el esquema desde un dict, texto JSON o ruta a archivo.

        Acepta tanto `{"table_config": {...}}` como el objeto de
        configuración directamente.
        """
        if isinstance(document, Path):
            document = json.loads(document.read_text(encoding="utf-8"))
        elif isinstance(document, str):
            document = json.loads(document)
        if not isinstance(document, dict):
            raise ValueError("El esquema debe ser un objeto JSON")
        if "table_config" not in document:
            document = {"table_config": document}
        return cls.model_validate(document)


# ============================================================================
# Configuración del motor
# ============================================================================

class EngineSettings(BaseModel):
    """Parámetros del motor de tabla."""
    default_rows_per_page: int = Field(default=5, gt=0)
    enrichment_timeout_s: float = Field(default=10.0, gt=0)
    enrichment_query_param: str = "value"
    enrichment_base_url: Optional[str] = None
    max_asset_size_mb: Optional[float] = Field(default=None, gt=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


def default_settings_path() -> Path:
    """Ruta por defecto: ~/.mestable/settings.json"""
    return Path.home() / ".mestable" / "settings.json"


def load_settings(path: Optional[Path] = None) -> EngineSettings:
    """
    Carga la configuración desde JSON.

    Si el archivo no existe o es inválido se usan los valores por defecto.
    """
    path = path or default_settings_path()
    if not path.exists():
        return EngineSettings()
    try:
        return EngineSettings.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as exc:
        logger.warning("Configuración inválida en %s, se usan valores por defecto: %s", path, exc)
        return EngineSettings()


_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Obtiene la configuración global (singleton)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings(settings: Optional[EngineSettings] = None) -> None:
    """Reemplaza (o descarta) la configuración global."""
    global _settings
    _settings = settings
