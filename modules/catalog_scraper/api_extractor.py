import requests

from typing import List, Optional

from modules.seismic_analysis.seismic_event import SeismicEvent
from modules.catalog_scraper.csv_extractor import CSVExtractor

from libs.config.config_variables import FEED_URL, FEED_ENCODING, TIMEOUT_API_REQUEST

from libs.config.config_logger import get_logger

logger = get_logger()


class USGSFeedExtractor:
    """Cliente del feed CSV de USGS (resumen del último mes)"""

    HEADERS = {
        "Accept": "text/csv",
        "Cache-Control": "no-cache",
    }

    def __init__(
        self,
        url: str = FEED_URL,
        timeout: int = TIMEOUT_API_REQUEST,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session

    def _get_session(self) -> requests.Session:
        """Obtiene una sesión con reintentos a nivel de conexión"""
        session = requests.Session()
        adapter = requests.adapters.HTTPAdapter(max_retries=1)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def fetch_text(self) -> str:
        """Descarga el feed completo como texto"""
        session = self._session or self._get_session()
        try:
            response = session.get(self.url, headers=self.HEADERS, timeout=self.timeout)
            response.raise_for_status()
            response.encoding = FEED_ENCODING
            text = response.text
            logger.info(f"Feed recibido: {response.status_code} ({len(text)} caracteres)")
            return text

        except requests.RequestException as e:
            logger.error(f"Error descargando el feed {self.url}: {e}")
            raise
        finally:
            if self._session is None:
                session.close()

    def fetch_events(self) -> List[SeismicEvent]:
        """Descarga y decodifica el feed"""
        return CSVExtractor.parse_events(self.fetch_text())
