"""
Definicion de paletas de colores y gestion de temas.
"""

from dataclasses import dataclass
from typing import Optional
from enum import Enum

from rich.console import Console
from rich.theme import Theme


class ThemeName(Enum):
    """Temas disponibles."""
    DEFAULT = "default"
    NORD = "nord"
    MINIMAL = "minimal"


@dataclass
class ColorPalette:
    """Paleta de colores para un tema."""
    # Colores principales
    primary: str      # Títulos, destacados
    secondary: str    # Subtítulos

    # Colores semánticos
    success: str
    warning: str
    error: str
    info: str
    muted: str        # Texto secundario/atenuado

    # Colores para datos
    number: str
    unit: str
    label: str

    # Bordes y encabezados
    border: str
    table_header: str    # Encabezados hoja
    table_group: str     # Encabezados de grupo

    # Estados de celda
    selected: str        # Fila/columna seleccionada
    invalid: str         # Valor fuera de regla
    disabled: str        # Celda bloqueada


# Tema por defecto - colores pasteles
THEME_DEFAULT = ColorPalette(
    primary="#5f87af",      # Azul suave
    secondary="#87afaf",    # Cyan apagado
    success="#87af87",      # Verde suave
    warning="#d7af5f",      # Amarillo/naranja suave
    error="#d75f5f",        # Rojo suave
    info="#5f87af",         # Azul info
    muted="#808080",        # Gris
    number="#d7af5f",       # Amarillo para números
    unit="#87af87",         # Verde para unidades
    label="#afafaf",        # Gris claro para etiquetas
    border="#5f5f5f",       # Gris oscuro para bordes
    table_header="#5f87af",
    table_group="#87afaf",
    selected="#5f87af",
    invalid="#d75f5f",
    disabled="#808080",
)

# Tema Nord - Colores fríos y suaves
THEME_NORD = ColorPalette(
    primary="#88c0d0",
    secondary="#81a1c1",
    success="#a3be8c",
    warning="#ebcb8b",
    error="#bf616a",
    info="#5e81ac",
    muted="#4c566a",
    number="#d08770",
    unit="#a3be8c",
    label="#d8dee9",
    border="#3b4252",
    table_header="#88c0d0",
    table_group="#81a1c1",
    selected="#88c0d0",
    invalid="#bf616a",
    disabled="#4c566a",
)

# Tema Minimal - Solo grises y un acento
THEME_MINIMAL = ColorPalette(
    primary="#ffffff",
    secondary="#b0b0b0",
    success="#87d787",
    warning="#ffd787",
    error="#ff8787",
    info="#5fafff",
    muted="#606060",
    number="#ffffff",
    unit="#909090",
    label="#909090",
    border="#404040",
    table_header="#5fafff",
    table_group="#b0b0b0",
    selected="#5fafff",
    invalid="#ff8787",
    disabled="#606060",
)

# Mapeo de nombres a temas
THEMES = {
    ThemeName.DEFAULT: THEME_DEFAULT,
    ThemeName.NORD: THEME_NORD,
    ThemeName.MINIMAL: THEME_MINIMAL,
}


class CLITheme:
    """Gestor de tema para la CLI."""

    _instance: Optional["CLITheme"] = None
    _palette: ColorPalette = THEME_DEFAULT
    _console: Optional[Console] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def set_theme(cls, theme: ThemeName) -> None:
        """Establece el tema activo."""
        cls._palette = THEMES.get(theme, THEME_DEFAULT)
        cls._console = None  # Recrear console con el nuevo tema

    @classmethod
    def get_palette(cls) -> ColorPalette:
        """Obtiene la paleta de colores actual."""
        return cls._palette

    @classmethod
    def get_console(cls) -> Console:
        """Obtiene la consola Rich con el tema aplicado."""
        if cls._console is None:
            p = cls._palette
            custom_theme = Theme({
                "primary": p.primary,
                "secondary": p.secondary,
                "success": p.success,
                "warning": p.warning,
                "error": p.error,
                "info": p.info,
                "muted": p.muted,
                "number": p.number,
                "unit": p.unit,
                "label": p.label,
                "title": f"bold {p.primary}",
                "table.header": f"bold {p.table_header}",
                "table.group": f"bold {p.table_group}",
                "cell.selected": f"bold {p.selected}",
                "cell.invalid": f"bold {p.invalid}",
                "cell.disabled": p.disabled,
            })
            cls._console = Console(theme=custom_theme)
        return cls._console


def get_console() -> Console:
    """Obtiene la consola Rich con tema aplicado."""
    return CLITheme.get_console()


def get_palette() -> ColorPalette:
    """Obtiene la paleta de colores actual."""
    return CLITheme.get_palette()
