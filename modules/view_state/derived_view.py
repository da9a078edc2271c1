import math

import numpy as np
import pandas as pd

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from libs.helpers.metadata_helpers import style_metadata_property

from modules.feed_monitor.app_state import AppState
from modules.seismic_analysis.seismic_event import SeismicEvent

from libs.config.config_variables import (
    GLOBE_FIELDS,
    GLOBE_ALTITUDE_DIVISORS,
    COLOR_STOPS,
    FALLBACK_COLOR,
    OVERVIEW_STRONG_MAGNITUDE,
    OVERVIEW_STRONG_COLOR,
    OVERVIEW_COLOR,
)


@dataclass(frozen=True)
class ViewParams:
    """Parámetros elegidos por el usuario para las vistas"""

    min_magnitude: float = 0.0
    height_field: str = "magnitude"
    color_field: str = "magnitude"
    color_domain: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        for name in ("height_field", "color_field"):
            value = getattr(self, name)
            if value not in GLOBE_FIELDS:
                raise ValueError(
                    f"Campo no válido para {name}: '{value}'. "
                    f"Debe ser uno de: {', '.join(GLOBE_FIELDS)}"
                )


@dataclass(frozen=True)
class ViewSummary:
    count: int = 0
    max_magnitude: float = 0.0
    mean_magnitude: float = 0.0


@dataclass(frozen=True)
class GlobePoint:
    event_id: str
    lat: float
    lng: float
    altitude: float
    color: str
    label: str = field(default="", compare=False)


def filter_events(
    events: Iterable[SeismicEvent], min_magnitude: float
) -> List[SeismicEvent]:
    """Eventos con magnitud mayor o igual al umbral"""
    return [e for e in events if e.magnitude >= min_magnitude]


def compute_summary(events: Sequence[SeismicEvent]) -> ViewSummary:
    count = len(events)
    if not count:
        return ViewSummary()

    magnitudes = [e.magnitude for e in events]
    return ViewSummary(
        count=count,
        max_magnitude=max(0.0, *magnitudes),
        mean_magnitude=sum(magnitudes) / count,
    )


def field_value(event: SeismicEvent, name: str) -> Optional[float]:
    value = getattr(event, name)
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def altitude_for(event: SeismicEvent, name: str) -> float:
    value = field_value(event, name) or 0.0
    return value / GLOBE_ALTITUDE_DIVISORS[name]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def color_scale(value: Optional[float], vmin: float, vmax: float) -> str:
    """
    Color RGB interpolado linealmente entre cian, naranja y rojo.

    `value` se normaliza en [vmin, vmax] y se recorta a [0, 1]. Un valor
    ausente o no finito devuelve el color de respaldo.
    """
    if value is None or not math.isfinite(value):
        return FALLBACK_COLOR

    span = (vmax - vmin) or 1
    t = min(1.0, max(0.0, (value - vmin) / span))

    positions = np.arange(len(COLOR_STOPS))
    stops = np.array(COLOR_STOPS, dtype=float)
    seg = t * (len(COLOR_STOPS) - 1)
    r, g, b = (
        _round_half_up(float(np.interp(seg, positions, stops[:, channel])))
        for channel in range(3)
    )
    return f"rgb({r},{g},{b})"


def color_domain(events: Sequence[SeismicEvent], name: str) -> Tuple[float, float]:
    """Dominio de la rampa de color: mínimo con piso 0 y máximo con piso 1"""
    values = np.array([field_value(e, name) or 0.0 for e in events], dtype=float)
    vmin = float(np.min(np.append(values, 0.0)))
    vmax = float(np.max(np.append(values, 1.0)))
    return vmin, vmax


def _label(event: SeismicEvent) -> str:
    return f"{event.place} - mag {event.magnitude:.1f}"


def build_globe_points(
    events: Sequence[SeismicEvent], params: ViewParams
) -> List[GlobePoint]:
    """Puntos del globo con altura y color según los campos elegidos"""
    vmin, vmax = params.color_domain or color_domain(events, params.color_field)

    return [
        GlobePoint(
            event_id=e.event_id,
            lat=e.latitude,
            lng=e.longitude,
            altitude=altitude_for(e, params.height_field),
            color=color_scale(field_value(e, params.color_field), vmin, vmax),
            label=_label(e),
        )
        for e in events
    ]


def build_overview_points(
    events: Sequence[SeismicEvent], height_field: str = "magnitude"
) -> List[GlobePoint]:
    """Puntos de la vista general: color fijo según la magnitud"""
    return [
        GlobePoint(
            event_id=e.event_id,
            lat=e.latitude,
            lng=e.longitude,
            altitude=altitude_for(e, height_field),
            color=OVERVIEW_STRONG_COLOR
            if e.magnitude >= OVERVIEW_STRONG_MAGNITUDE
            else OVERVIEW_COLOR,
            label=_label(e),
        )
        for e in events
    ]


class DerivedViewState:
    """Vistas derivadas del estado publicado, recalculadas en cada lectura"""

    def __init__(self, state: AppState, params: Optional[ViewParams] = None):
        self.state = state
        self.params = params or ViewParams()

    def update_params(self, **changes) -> ViewParams:
        self.params = replace(self.params, **changes)
        return self.params

    @property
    def filtered(self) -> List[SeismicEvent]:
        return filter_events(self.state.events, self.params.min_magnitude)

    @property
    def summary(self) -> ViewSummary:
        return compute_summary(self.filtered)

    @property
    def globe_points(self) -> List[GlobePoint]:
        return build_globe_points(self.filtered, self.params)

    @property
    def overview_points(self) -> List[GlobePoint]:
        return build_overview_points(self.state.events, self.params.height_field)

    @property
    def selected_point_id(self) -> Optional[str]:
        selected = self.state.selected
        return selected.event_id if selected else None

    @style_metadata_property
    def metadata(self):
        """Devuelve resumen tabulado de la vista filtrada"""
        summary = self.summary
        data = {
            "Eventos": [summary.count],
            "Magnitud máxima": [round(summary.max_magnitude, 1)],
            "Magnitud media": [round(summary.mean_magnitude, 1)],
            "Magnitud mínima filtro": [self.params.min_magnitude],
        }
        return pd.DataFrame(data)
