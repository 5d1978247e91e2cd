"""
Configuración de logging.

Configura el logger del namespace 'mestable'.
"""

import logging
import sys
from typing import Optional, Union


def setup_logging(level: Union[int, str] = logging.WARNING, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configura el logger raíz del paquete.

    Args:
        level: Nivel de logging (ej: logging.DEBUG o "INFO")
        log_file: Ruta opcional para guardar el log en archivo

    Returns:
        Logger configurado
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger("mestable")
    logger.setLevel(level)

    # Evitar handlers duplicados si se llama más de una vez
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging inicializado.")
    return logger
