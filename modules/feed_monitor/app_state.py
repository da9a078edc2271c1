from typing import Any, Callable, Iterable, List, Optional, Tuple

from libs.database.rate_limit_ledger import RateLimitStatus
from modules.seismic_analysis.seismic_event import SeismicEvent

from libs.config.config_logger import get_logger

logger = get_logger()

Listener = Callable[[str, Any], None]


class AppState:
    """
    Estado compartido entre el programador de refrescos y las vistas.

    Se crea al iniciar la aplicación y se cierra al terminar. Los valores
    publicados son instantáneas inmutables; los renderizadores solo pueden
    seleccionar un evento por su identificador.
    """

    EVENTS = "events"
    SELECTED = "selected"
    RATE_LIMIT = "rate_limit"
    ATTEMPT = "attempt"

    def __init__(self):
        self.events: Tuple[SeismicEvent, ...] = ()
        self.selected: Optional[SeismicEvent] = None
        self.rate_limit = RateLimitStatus()
        self.loading = True
        self.last_attempt = None
        self.closed = False
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un oyente `(topic, value)`; devuelve la función para darlo de baja"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, topic: str, value: Any):
        for listener in list(self._listeners):
            try:
                listener(topic, value)
            except Exception:
                logger.exception(f"Error en oyente del tópico '{topic}'")

    def _guard(self, action: str) -> bool:
        if self.closed:
            logger.debug(f"Estado cerrado, se ignora {action}")
            return False
        return True

    def publish_events(self, events: Iterable[SeismicEvent]):
        """Reemplaza por completo el conjunto de eventos publicado"""
        if not self._guard("publish_events"):
            return

        self.events = tuple(events)
        self.loading = False
        self._notify(self.EVENTS, self.events)

        if self.selected is not None:
            self._set_selected(self.find_event(self.selected.event_id))

    def mark_loaded(self):
        """Termina el estado de carga sin cambiar los eventos"""
        if self._guard("mark_loaded") and self.loading:
            self.loading = False
            self._notify(self.EVENTS, self.events)

    def find_event(self, event_id: str) -> Optional[SeismicEvent]:
        for event in self.events:
            if event.event_id == event_id:
                return event
        return None

    def select_event(self, event_id: Optional[str]) -> Optional[SeismicEvent]:
        """Selecciona un evento por identificador; uno desconocido limpia la selección"""
        if not self._guard("select_event"):
            return None
        event = self.find_event(event_id) if event_id else None
        self._set_selected(event)
        return event

    def clear_selection(self):
        self.select_event(None)

    def _set_selected(self, event: Optional[SeismicEvent]):
        if event != self.selected:
            self.selected = event
            self._notify(self.SELECTED, event)

    def publish_rate_limit(self, status: RateLimitStatus):
        if not self._guard("publish_rate_limit"):
            return
        if status != self.rate_limit:
            self.rate_limit = status
            self._notify(self.RATE_LIMIT, status)

    def record_attempt(self, outcome):
        if not self._guard("record_attempt"):
            return
        self.last_attempt = outcome
        self._notify(self.ATTEMPT, outcome)

    def close(self):
        self.closed = True
        self._listeners.clear()
