from datetime import datetime

from typing import Any, Dict, Optional

from dataclasses import dataclass, asdict

from libs.helpers.text_helpers import epoch_ms_to_datetime


@dataclass(frozen=True)
class SeismicEvent:
    """Modelo de datos para eventos sísmicos del feed"""

    event_id: str
    place: str
    magnitude: float
    depth: float
    latitude: float
    longitude: float
    time: int  # epoch ms
    mag_type: Optional[str] = None
    event_type: Optional[str] = None
    nst: Optional[float] = None  # estaciones usadas
    gap: Optional[float] = None  # brecha azimutal
    dmin: Optional[float] = None  # distancia a la estación más cercana
    rms: Optional[float] = None
    horizontal_error: Optional[float] = None
    depth_error: Optional[float] = None
    mag_error: Optional[float] = None
    mag_nst: Optional[float] = None

    @property
    def event_time(self) -> datetime:
        """Hora de ocurrencia en UTC"""
        return epoch_ms_to_datetime(self.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
