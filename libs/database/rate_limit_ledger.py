import json
import math

from enum import Enum
from typing import List, Optional
from dataclasses import dataclass

from libs.database.key_value_store import KeyValueStore
from libs.config.config_variables import (
    RATE_LIMIT_WINDOW_MS,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_COOLDOWN_MS,
    REQUEST_HISTORY_KEY,
    COOLDOWN_END_KEY,
)

from libs.config.config_logger import get_logger

logger = get_logger()


class AcquireStatus(Enum):
    ALLOWED = "allowed"
    DENIED_COOLDOWN = "denied_cooldown"
    DENIED_AT_CAPACITY = "denied_at_capacity"


@dataclass(frozen=True)
class AcquireResult:
    """Resultado de un intento de adquisición"""

    status: AcquireStatus
    remaining_ms: int = 0
    request_count: int = 0
    cooldown_armed: bool = False

    @property
    def allowed(self) -> bool:
        return self.status is AcquireStatus.ALLOWED


@dataclass(frozen=True)
class RateLimitStatus:
    """Estado visible del límite de solicitudes"""

    request_count: int = 0
    remaining_count: int = RATE_LIMIT_MAX_REQUESTS
    cooldown_seconds: int = 0
    rate_limited: bool = False
    max_requests: int = RATE_LIMIT_MAX_REQUESTS


class RateLimitLedger:
    """
    Registro persistente de solicitudes con ventana deslizante y enfriamiento.

    Admite como máximo `max_requests` solicitudes en los últimos `window_ms`
    milisegundos. Al alcanzar el tope se activa un enfriamiento de
    `cooldown_ms` durante el cual se rechaza todo intento.

    El estado vive exclusivamente en el `KeyValueStore`: cada operación relee el
    almacenamiento y cada cambio se escribe de inmediato, porque otra instancia
    puede compartir el mismo almacenamiento.
    """

    def __init__(
        self,
        store: KeyValueStore,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        cooldown_ms: int = RATE_LIMIT_COOLDOWN_MS,
        history_key: str = REQUEST_HISTORY_KEY,
        cooldown_key: str = COOLDOWN_END_KEY,
    ):
        self.store = store
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.cooldown_ms = cooldown_ms
        self.history_key = history_key
        self.cooldown_key = cooldown_key

    # Persistencia
    # ---------------------------------------------------------------
    def _read_history(self) -> List[int]:
        raw = self.store.get(self.history_key)
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Historial de solicitudes corrupto, se descarta: {raw!r}")
            return []

        if not isinstance(data, list):
            logger.warning("Historial de solicitudes con formato inválido, se descarta")
            return []

        return [
            int(t)
            for t in data
            if isinstance(t, (int, float))
            and not isinstance(t, bool)
            and math.isfinite(t)
        ]

    def _write_history(self, history: List[int]):
        self.store.set(self.history_key, json.dumps(history))

    def _read_cooldown_end(self) -> Optional[int]:
        raw = self.store.get(self.cooldown_key)
        if not raw:
            return None

        try:
            return int(raw.strip())
        except ValueError:
            logger.warning(f"Fin de enfriamiento corrupto, se ignora: {raw!r}")
            return None

    def _write_cooldown_end(self, end_time: Optional[int]):
        if end_time is None:
            self.store.remove(self.cooldown_key)
        else:
            self.store.set(self.cooldown_key, str(int(end_time)))

    def _prune(self, history: List[int], now: int) -> List[int]:
        return [t for t in history if now - t < self.window_ms]

    def _clear(self):
        self._write_cooldown_end(None)
        self._write_history([])

    # Operaciones
    # ---------------------------------------------------------------
    def try_acquire(self, now: int) -> AcquireResult:
        """Intenta registrar una solicitud en el instante `now` (epoch ms)"""
        cooldown_end = self._read_cooldown_end()

        if cooldown_end is not None:
            if now < cooldown_end:
                remaining = cooldown_end - now
                logger.warning(
                    f"En enfriamiento: {math.ceil(remaining / 1000)}s restantes"
                )
                return AcquireResult(
                    AcquireStatus.DENIED_COOLDOWN,
                    remaining_ms=remaining,
                    request_count=self.max_requests,
                )

            logger.info("Enfriamiento finalizado, se reinicia el historial")
            self._clear()

        history = self._prune(self._read_history(), now)

        if len(history) >= self.max_requests:
            cooldown_end = now + self.cooldown_ms
            self._write_cooldown_end(cooldown_end)
            self._write_history(history)
            logger.error(
                f"Límite excedido ({len(history)}/{self.max_requests}), "
                f"bloqueo de {self.cooldown_ms // 1000}s"
            )
            return AcquireResult(
                AcquireStatus.DENIED_AT_CAPACITY,
                remaining_ms=self.cooldown_ms,
                request_count=len(history),
                cooldown_armed=True,
            )

        history.append(now)
        self._write_history(history)

        armed = len(history) >= self.max_requests
        if armed:
            self._write_cooldown_end(now + self.cooldown_ms)
            logger.warning(
                f"Solicitud {len(history)}/{self.max_requests}: límite alcanzado, "
                f"enfriamiento de {self.cooldown_ms // 1000}s activado"
            )
        else:
            logger.debug(f"Solicitud {len(history)}/{self.max_requests} admitida")

        return AcquireResult(
            AcquireStatus.ALLOWED,
            request_count=len(history),
            cooldown_armed=armed,
        )

    def cooldown_remaining_ms(self, now: int) -> int:
        cooldown_end = self._read_cooldown_end()
        if cooldown_end is None or now >= cooldown_end:
            return 0
        return cooldown_end - now

    def request_count(self, now: int) -> int:
        """Solicitudes vigentes; durante el enfriamiento se reporta el tope"""
        cooldown_end = self._read_cooldown_end()
        if cooldown_end is not None:
            return self.max_requests if now < cooldown_end else 0
        return len(self._prune(self._read_history(), now))

    def remaining_count(self, now: int) -> int:
        return max(0, self.max_requests - self.request_count(now))

    def is_saturated(self, now: int) -> bool:
        return self.remaining_count(now) == 0

    def status(self, now: int) -> RateLimitStatus:
        count = self.request_count(now)
        cooldown_ms = self.cooldown_remaining_ms(now)
        return RateLimitStatus(
            request_count=count,
            remaining_count=max(0, self.max_requests - count),
            cooldown_seconds=math.ceil(cooldown_ms / 1000),
            rate_limited=cooldown_ms > 0 or count >= self.max_requests,
            max_requests=self.max_requests,
        )

    def sweep(self, now: int) -> None:
        """
        Mantenimiento periódico del almacenamiento.

        Un enfriamiento vencido se elimina junto con el historial; fuera de
        enfriamiento se descartan las marcas antiguas. Durante un enfriamiento
        activo no se toca nada.
        """
        cooldown_end = self._read_cooldown_end()
        if cooldown_end is not None:
            if now >= cooldown_end:
                logger.info("Enfriamiento vencido, se reinicia el historial")
                self._clear()
            return

        history = self._read_history()
        pruned = self._prune(history, now)
        if len(pruned) != len(history):
            logger.debug(f"Descartadas {len(history) - len(pruned)} marcas antiguas")
            self._write_history(pruned)

    def reset(self) -> None:
        """Borra historial y enfriamiento (acción explícita del usuario)"""
        self._clear()
        logger.info("Límite de solicitudes reiniciado manualmente")
