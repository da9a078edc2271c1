import re
import uuid

from typing import Dict, List, Optional

from libs.helpers.text_helpers import (
    split_csv_line,
    to_finite_number,
    parse_epoch_millis,
)

from modules.seismic_analysis.seismic_event import SeismicEvent

from libs.config.config_variables import MINIMUN_RECORDS, DEFAULT_PLACE

from libs.config.config_logger import get_logger, log_execution_time

logger = get_logger()


class CSVExtractor:
    """Decodificador del feed CSV de USGS"""

    LINE_PATTERN = re.compile(r"\r\n|\r|\n")

    # Columna del feed -> atributo de SeismicEvent
    REQUIRED_COLUMNS = {
        "id": "event_id",
        "place": "place",
        "mag": "magnitude",
        "depth": "depth",
        "latitude": "latitude",
        "longitude": "longitude",
        "time": "time",
    }
    TAG_COLUMNS = {"magType": "mag_type", "type": "event_type"}
    OPTIONAL_NUMERIC_COLUMNS = {
        "nst": "nst",
        "gap": "gap",
        "dmin": "dmin",
        "rms": "rms",
        "horizontalError": "horizontal_error",
        "depthError": "depth_error",
        "magError": "mag_error",
        "magNst": "mag_nst",
    }

    @staticmethod
    def split_lines(text: str) -> List[str]:
        """Separa el texto en líneas no vacías, sin importar el fin de línea"""
        if not text:
            return []
        return [line for line in CSVExtractor.LINE_PATTERN.split(text) if line.strip()]

    @staticmethod
    def build_header_index(header_line: str) -> Dict[str, int]:
        """Mapa columna -> posición; columnas ausentes devuelven -1 con `.get(col, -1)`"""
        index = {}
        for position, name in enumerate(split_csv_line(header_line)):
            index.setdefault(name, position)
        return index

    @staticmethod
    def _column(cols: List[str], position: int) -> Optional[str]:
        if position < 0:
            return None
        return cols[position] if position < len(cols) else ""

    @staticmethod
    def parse_row(line: str, header_index: Dict[str, int]) -> Optional[SeismicEvent]:
        """
        Construye un evento a partir de una fila.

        Devuelve None si la latitud o la longitud no son números finitos.
        """
        cols = split_csv_line(line)

        def value(column: str) -> Optional[str]:
            return CSVExtractor._column(cols, header_index.get(column, -1))

        latitude = to_finite_number(value("latitude"))
        longitude = to_finite_number(value("longitude"))
        if latitude is None or longitude is None:
            return None

        magnitude = to_finite_number(value("mag"))
        depth = to_finite_number(value("depth"))

        tags = {
            attr: value(column) or None
            for column, attr in CSVExtractor.TAG_COLUMNS.items()
        }
        optional = {
            attr: to_finite_number(value(column))
            for column, attr in CSVExtractor.OPTIONAL_NUMERIC_COLUMNS.items()
        }

        return SeismicEvent(
            event_id=value("id") or uuid.uuid4().hex,
            place=value("place") or DEFAULT_PLACE,
            magnitude=magnitude if magnitude is not None else 0.0,
            depth=depth if depth is not None else 0.0,
            latitude=latitude,
            longitude=longitude,
            time=parse_epoch_millis(value("time")),
            **tags,
            **optional,
        )

    @staticmethod
    @log_execution_time
    def parse_events(text: str) -> List[SeismicEvent]:
        """
        Decodifica el texto CSV del feed en una lista de eventos.

        Nunca lanza excepciones: las filas ilegibles se omiten, los campos
        opcionales ilegibles quedan en None y los numéricos requeridos en 0.0.
        """
        lines = CSVExtractor.split_lines(text)
        if len(lines) < MINIMUN_RECORDS:
            logger.debug("Feed sin cabecera o sin filas de datos")
            return []

        header_index = CSVExtractor.build_header_index(lines[0])

        missing = set(CSVExtractor.REQUIRED_COLUMNS) - set(header_index)
        if missing:
            logger.warning(f"Columnas faltantes en el feed: {sorted(missing)}")

        events = []
        dropped = 0
        for row_number, line in enumerate(lines[1:], start=2):
            try:
                event = CSVExtractor.parse_row(line, header_index)
            except Exception as e:
                logger.debug(f"Fila {row_number} omitida: {e}")
                event = None

            if event is None:
                dropped += 1
                continue
            events.append(event)

        logger.info(
            f"Feed decodificado: {len(lines) - 1} filas, "
            f"{len(events)} eventos, {dropped} descartadas"
        )
        return events
