"""
Sistema de temas para la interfaz CLI de mestable.

El paquete esta organizado en modulos:
- palette: Definicion de paletas y gestion de temas (CLITheme, ColorPalette)
- printing: Funciones que imprimen directamente a consola
- tables: Funciones para crear tablas Rich de la grilla
"""

from mestable.cli.theme.palette import (
    ThemeName,
    ColorPalette,
    THEME_DEFAULT,
    THEME_NORD,
    THEME_MINIMAL,
    THEMES,
    CLITheme,
    get_console,
    get_palette,
)

from mestable.cli.theme.printing import (
    styled_header,
    print_header,
    print_field,
    print_success,
    print_warning,
    print_error,
)

from mestable.cli.theme.tables import (
    create_grid_table,
    create_headers_table,
)

__all__ = [
    # Palette
    "ThemeName",
    "ColorPalette",
    "THEME_DEFAULT",
    "THEME_NORD",
    "THEME_MINIMAL",
    "THEMES",
    "CLITheme",
    "get_console",
    "get_palette",
    # Printing
    "styled_header",
    "print_header",
    "print_field",
    "print_success",
    "print_warning",
    "print_error",
    # Tables
    "create_grid_table",
    "create_headers_table",
]
