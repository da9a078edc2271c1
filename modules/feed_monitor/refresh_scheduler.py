import math
import time
import asyncio

import pandas as pd
import requests

from enum import Enum
from dataclasses import dataclass
from typing import Callable, List, Optional

from libs.database.rate_limit_ledger import AcquireResult, RateLimitLedger
from libs.helpers.metadata_helpers import style_metadata_property

from modules.feed_monitor.app_state import AppState
from modules.seismic_analysis.seismic_event import SeismicEvent
from modules.catalog_scraper.csv_extractor import CSVExtractor
from modules.catalog_scraper.api_extractor import USGSFeedExtractor

from libs.config.config_variables import POLL_INTERVAL_S, TICK_INTERVAL_S

from libs.config.config_logger import get_logger

logger = get_logger()


def current_millis() -> int:
    return int(time.time() * 1000)


def next_poll_deadline(deadline: float, now: float, interval: float) -> float:
    """Siguiente instante del ciclo de periodo fijo; los ciclos ya vencidos se omiten"""
    if interval <= 0:
        return now
    deadline += interval
    if deadline < now:
        deadline += math.ceil((now - deadline) / interval) * interval
    return deadline


class AttemptTrigger(Enum):
    STARTUP = "startup"
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class AttemptState(Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    DENIED = "denied"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class AttemptOutcome:
    """Resultado de un intento de refresco"""

    trigger: AttemptTrigger
    state: AttemptState = AttemptState.IDLE
    acquire: Optional[AcquireResult] = None
    event_count: int = 0
    error: Optional[str] = None
    started_at: int = 0
    finished_at: Optional[int] = None


class RefreshScheduler:
    """
    Programa los refrescos del feed sísmico.

    Realiza un intento al iniciar y luego uno cada `poll_interval` segundos,
    además de un contador de estado cada `tick_interval` segundos. Todo intento
    pasa por el `RateLimitLedger`; los refrescos automáticos se omiten mientras
    el límite esté activo, la carga inicial solo durante un enfriamiento y los
    manuales siempre consultan `try_acquire`.

    El reloj (epoch ms) y la función de descarga se inyectan para poder probar
    el programador de forma determinista.
    """

    def __init__(
        self,
        state: AppState,
        ledger: RateLimitLedger,
        fetcher: Optional[Callable[[], str]] = None,
        decoder: Callable[[str], List[SeismicEvent]] = CSVExtractor.parse_events,
        clock: Callable[[], int] = current_millis,
        poll_interval: float = POLL_INTERVAL_S,
        tick_interval: float = TICK_INTERVAL_S,
    ):
        self.state = state
        self.ledger = ledger
        self.fetcher = fetcher or USGSFeedExtractor().fetch_text
        self.decoder = decoder
        self.clock = clock
        self.poll_interval = poll_interval
        self.tick_interval = tick_interval

        self._poll_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._closed = False
        self.history: List[AttemptOutcome] = []

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._closed

    # Ciclo de vida
    # ---------------------------------------------------------------
    async def start(self):
        """Inicia el ciclo de refresco y el contador de estado"""
        if self._closed:
            raise RuntimeError("El programador ya fue detenido")
        if self._poll_task is not None:
            return

        now = self.clock()
        self.ledger.sweep(now)
        self.publish_status(now)

        self._poll_task = asyncio.create_task(self._poll_loop())
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info(
            f"Programador iniciado (refresco cada {self.poll_interval}s, "
            f"estado cada {self.tick_interval}s)"
        )

    async def stop(self):
        """Cancela temporizadores; los resultados en curso se descartan"""
        if self._closed:
            return
        self._closed = True

        tasks = [t for t in (self._poll_task, self._tick_task) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Programador detenido")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _poll_loop(self):
        # Periodo fijo anclado al reloj del loop; un solo intento en curso
        loop = asyncio.get_running_loop()
        trigger = AttemptTrigger.STARTUP
        deadline = loop.time()
        while not self._closed:
            await self.run_attempt(trigger)
            trigger = AttemptTrigger.AUTOMATIC
            deadline = next_poll_deadline(deadline, loop.time(), self.poll_interval)
            await asyncio.sleep(deadline - loop.time())

    async def _tick_loop(self):
        while not self._closed:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def tick(self):
        """Mantenimiento del registro y publicación del estado del límite"""
        if self._closed:
            return
        now = self.clock()
        self.ledger.sweep(now)
        self.publish_status(now)

    def publish_status(self, now: Optional[int] = None):
        now = self.clock() if now is None else now
        self.state.publish_rate_limit(self.ledger.status(now))

    # Intentos
    # ---------------------------------------------------------------
    async def refresh_now(self) -> AttemptOutcome:
        """Refresco solicitado por el usuario (sujeto al límite)"""
        return await self.run_attempt(AttemptTrigger.MANUAL)

    def reset_rate_limit(self):
        """Anula el límite de solicitudes por decisión explícita del usuario"""
        self.ledger.reset()
        if not self._closed:
            self.publish_status()

    async def run_attempt(self, trigger: AttemptTrigger) -> AttemptOutcome:
        outcome = AttemptOutcome(trigger=trigger, started_at=self.clock())
        if self._closed:
            return outcome

        outcome.state = AttemptState.ACQUIRING
        now = self.clock()

        if trigger is AttemptTrigger.AUTOMATIC and self.ledger.is_saturated(now):
            logger.info(f"Refresco {trigger.value} omitido: límite de solicitudes activo")
            return self._finish_denied(outcome, now)
        if trigger is AttemptTrigger.STARTUP and self.ledger.cooldown_remaining_ms(now) > 0:
            logger.info("Carga inicial omitida: enfriamiento activo")
            return self._finish_denied(outcome, now)

        result = self.ledger.try_acquire(now)
        outcome.acquire = result
        if not result.allowed:
            return self._finish_denied(outcome, now)

        self.publish_status(now)
        outcome.state = AttemptState.FETCHING
        logger.info(
            f"Refresco {trigger.value}: solicitud "
            f"{result.request_count}/{self.ledger.max_requests}"
        )

        try:
            text = await asyncio.to_thread(self.fetcher)
            if self._closed:
                logger.debug("Resultado descartado: programador detenido")
                return outcome
            events = self.decoder(text)

        except requests.RequestException as e:
            return self._finish_failed(outcome, f"Error de red: {e}")
        except Exception as e:
            logger.exception(f"Error inesperado en refresco {trigger.value}")
            return self._finish_failed(outcome, str(e))

        self.state.publish_events(events)
        outcome.state = AttemptState.SUCCEEDED
        outcome.event_count = len(events)
        logger.info(f"Refresco {trigger.value} completado: {len(events)} eventos")
        return self._record(outcome)

    def _finish_denied(self, outcome: AttemptOutcome, now: int) -> AttemptOutcome:
        outcome.state = AttemptState.DENIED
        self.publish_status(now)
        self.state.mark_loaded()
        return self._record(outcome)

    def _finish_failed(self, outcome: AttemptOutcome, error: str) -> AttemptOutcome:
        outcome.state = AttemptState.FAILED
        outcome.error = error
        if self._closed:
            return outcome

        logger.error(f"Refresco {outcome.trigger.value} fallido: {error}")
        if self.state.loading:
            # Primera carga: vista vacía en lugar de quedar cargando
            self.state.publish_events(())
        return self._record(outcome)

    def _record(self, outcome: AttemptOutcome) -> AttemptOutcome:
        outcome.finished_at = self.clock()
        self.history.append(outcome)
        self.state.record_attempt(outcome)
        return outcome

    @style_metadata_property
    def metadata(self):
        """Devuelve resumen tabulado de los intentos y del límite"""
        status = self.state.rate_limit
        states = [o.state for o in self.history]
        data = {
            "Intentos": [len(self.history)],
            "Exitosos": [states.count(AttemptState.SUCCEEDED)],
            "Denegados": [states.count(AttemptState.DENIED)],
            "Fallidos": [states.count(AttemptState.FAILED)],
            "Eventos": [len(self.state.events)],
            "Solicitudes": [f"{status.request_count}/{status.max_requests}"],
            "Enfriamiento (s)": [status.cooldown_seconds],
        }
        return pd.DataFrame(data)
