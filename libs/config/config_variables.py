# This file contains configuration variables for the application.
# ---------------------------------------------------------------
import logging
from pathlib import Path


# Paths to data files
# ---------------------------------------------------------------
BASE_DIR = Path(__file__).parent.parent.parent

LOG_DIR = BASE_DIR / "logs"
STORAGE_DIR = BASE_DIR / "var"

# Base de datos clave-valor para el registro de solicitudes
LEDGER_DATABASE_PATH = STORAGE_DIR / "rate_limit_ledger.db"

# Nivel de logging por defecto
# ---------------------------------------------------------------
LOG_LEVEL = logging.INFO

# Feed sísmico (USGS)
# ---------------------------------------------------------------
FEED_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_month.csv"
TIMEOUT_API_REQUEST = 30  # segundos
FEED_ENCODING = "utf-8"

# Programación de refrescos
# ---------------------------------------------------------------
POLL_INTERVAL_S = 10  # refresco automático
TICK_INTERVAL_S = 1  # contador de estado

# Límite de solicitudes (ventana deslizante + enfriamiento)
# ---------------------------------------------------------------
RATE_LIMIT_WINDOW_MS = 60_000
RATE_LIMIT_MAX_REQUESTS = 10
RATE_LIMIT_COOLDOWN_MS = 120_000

# Claves del almacenamiento persistente
REQUEST_HISTORY_KEY = "earthquakeRequestHistory"
COOLDOWN_END_KEY = "earthquakeCooldownEnd"

# Valores por defecto del decodificador
# ---------------------------------------------------------------
MINIMUN_RECORDS = 2  # cabecera + al menos una fila
DEFAULT_PLACE = "Unknown"

# Campos que pueden definir altura y color en el globo
# ---------------------------------------------------------------
GLOBE_FIELDS = ("magnitude", "depth", "nst", "gap")
GLOBE_ALTITUDE_DIVISORS = {"magnitude": 1, "depth": 1, "nst": 100, "gap": 100}

# Rampa de color: cian -> naranja -> rojo
COLOR_STOPS = ((54, 193, 255), (255, 159, 10), (255, 59, 48))
FALLBACK_COLOR = "#ff9f0a"

# Colores de la vista general del globo
OVERVIEW_STRONG_MAGNITUDE = 5.0
OVERVIEW_STRONG_COLOR = "orangered"
OVERVIEW_COLOR = "orange"
