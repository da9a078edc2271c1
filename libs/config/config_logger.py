import time
import logging
import inspect
from pathlib import Path
from datetime import datetime
from logging.handlers import RotatingFileHandler

from .config_variables import LOG_DIR, LOG_LEVEL

from libs.helpers.storage_helpers import validate_folder


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _resolve_module_name(module_name=None):
    """Obtiene el nombre del módulo o archivo llamador."""
    if module_name:
        return module_name

    frame = inspect.stack()[2]  # [2] para saltar función auxiliar
    module = inspect.getmodule(frame[0])
    if module and module.__name__ != "__main__":
        return module.__name__
    return Path(frame.filename).stem


def _format_time(seconds: float) -> str:
    """Convierte segundos a un string legible."""
    if seconds < 1:
        return f"{seconds * 1000:.1f} ms"
    elif seconds < 60:
        return f"{seconds:.2f} seconds"
    return f"{seconds / 60:.2f} minutes"


def get_logger(module_name=None, level=LOG_LEVEL):
    module_name = _resolve_module_name(module_name)
    logger = logging.getLogger(module_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    today_date = datetime.now().strftime("%Y-%m-%d")
    log_dir = validate_folder(LOG_DIR / today_date, create_if_missing=True)
    log_file = log_dir / f"{module_name}.log"

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def log_execution_time(func=None, *, module=None):
    if func is None:
        return lambda f: log_execution_time(f, module=module)

    logger = get_logger(_resolve_module_name(module))

    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        func_name = getattr(func, "__qualname__", func.__name__)

        result = func(*args, **kwargs)
        elapsed_time = _format_time(time.perf_counter() - start_time)
        logger.debug(f"{func_name} ejecutado en {elapsed_time}")

        return result

    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    wrapper.__wrapped__ = func
    return wrapper
