"""
CLI de mestable - Tablas MES dirigidas por esquema.

Comandos:
- show: Muestra la grilla de un esquema
- headers: Muestra los niveles de encabezado con sus spans
- validate: Valida un esquema y lista sus columnas
- eval: Evalúa una fórmula o condición de visibilidad
- edit: Aplica ediciones/operaciones y emite las filas en JSON
- demo: Muestra el esquema de ejemplo
"""

from typing import Annotated, Optional

import typer

from mestable.cli.grid import (
    grid_demo,
    grid_edit,
    grid_eval,
    grid_headers,
    grid_show,
    grid_validate,
)

# Crear aplicación principal
app = typer.Typer(
    name="mestable",
    help="Motor de tablas MES dirigidas por esquema.",
    no_args_is_help=True,
)

app.command("show")(grid_show)
app.command("headers")(grid_headers)
app.command("validate")(grid_validate)
app.command("eval")(grid_eval)
app.command("edit")(grid_edit)
app.command("demo")(grid_demo)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Mostrar log detallado")] = False,
    theme: Annotated[Optional[str], typer.Option("--theme", help="Tema: default, nord, minimal")] = None,
    log_file: Annotated[Optional[str], typer.Option("--log-file", help="Guardar log en archivo")] = None,
):
    """
    mestable - Grillas editables definidas por un esquema declarativo.
    """
    from mestable.config import get_settings
    from mestable.logging_config import setup_logging
    from mestable.cli.theme import CLITheme, ThemeName

    setup_logging("DEBUG" if verbose else get_settings().log_level, log_file)
    if theme:
        try:
            CLITheme.set_theme(ThemeName(theme))
        except ValueError:
            typer.echo(f"Tema desconocido: {theme}")
            raise typer.Exit(1)
