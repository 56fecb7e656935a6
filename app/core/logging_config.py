import logging
import sys
import os
from datetime import datetime

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(filename)s:%(lineno)d | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: str = "logs") -> None:
    """Configura el logging de la aplicación (consola + archivo diario), respetando DEBUG_MODE."""
    settings = get_settings()
    root = logging.getLogger()
    level = logging.DEBUG if settings.DEBUG_MODE else logging.INFO
    root.setLevel(level)

    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    log_file = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    # Limpiar handlers existentes si Uvicorn/otro añadió alguno antes
    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(console_handler)
    root.addHandler(file_handler)

    # Loggers ruidosos
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    root.info("Configuración de logging aplicada. Nivel %s.", logging.getLevelName(level))
