"""
Funciones que imprimen directamente a la consola.
"""

from rich.panel import Panel
from rich.text import Text
from rich import box

from mestable.cli.theme.palette import get_console, get_palette


def styled_header(text: str, subtitle: str = None) -> Panel:
    """Crea un encabezado estilizado."""
    p = get_palette()
    content = Text(text, style=f"bold {p.primary}")
    if subtitle:
        content.append(f"\n{subtitle}", style=p.muted)

    return Panel(
        content,
        border_style=p.border,
        box=box.ROUNDED,
        padding=(0, 2),
    )


def print_header(text: str, subtitle: str = None) -> None:
    """Imprime un encabezado."""
    get_console().print(styled_header(text, subtitle))


def print_field(label: str, value, unit: str = None, indent: int = 2) -> None:
    """Imprime un campo con valor."""
    p = get_palette()
    text = Text(" " * indent)
    text.append(f"{label}: ", style=p.label)
    text.append(str(value), style=f"bold {p.number}")
    if unit:
        text.append(f" {unit}", style=p.unit)
    get_console().print(text)


def print_success(text: str) -> None:
    """Imprime mensaje de éxito."""
    get_console().print(Text(f"[+] {text}", style=get_palette().success))


def print_warning(text: str) -> None:
    """Imprime advertencia."""
    get_console().print(Text(f"[!] {text}", style=get_palette().warning))


def print_error(text: str) -> None:
    """Imprime error."""
    get_console().print(Text(f"[x] {text}", style=get_palette().error))
