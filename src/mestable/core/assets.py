"""
Validación de archivos para campos image/file.

El archivo se valida al momento de seleccionarlo: si excede el tamaño
máximo o su tipo no está aceptado se rechaza con un aviso para el usuario.
"""

from pathlib import PurePath
from typing import Optional

from mestable.config import Column
from mestable.models import AssetInfo


def _accepts(pattern: str, asset: AssetInfo) -> bool:
    pattern = pattern.strip().lower()
    if not pattern:
        return True
    content_type = (asset.content_type or "").lower()
    if "/" in pattern:
        if pattern.endswith("/*"):
            return content_type.startswith(pattern[:-1])
        return content_type == pattern
    suffix = PurePath(asset.name).suffix.lower()
    if not pattern.startswith("."):
        pattern = "." + pattern
    return suffix == pattern


def check_asset(
    column: Column,
    asset: AssetInfo,
    max_size_mb: Optional[float] = None,
) -> Optional[str]:
    """
    Verifica un archivo contra los límites de la columna.

    Args:
        column: Columna image/file
        asset: Archivo seleccionado
        max_size_mb: Límite global opcional (se aplica el menor)

    Returns:
        Aviso para el usuario si se rechaza, None si es aceptado
    """
    limits = [m for m in (column.max_size_mb, max_size_mb) if m]
    if limits:
        limit = min(limits)
        if asset.size_mb > limit:
            return f"Archivo demasiado grande. Máximo {limit:g}MB"

    if column.file_types and not any(_accepts(p, asset) for p in column.file_types):
        return f"Tipo de archivo no permitido. Aceptados: {', '.join(column.file_types)}"

    return None
