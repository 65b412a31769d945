"""Reductor de sensores de gas.

Pliega un lote de lecturas ppm sobre el estado del sensor, en orden de
llegada, y decide por cada mensaje si se emite una alerta:

1. Siempre registra la última lectura y su timestamp.
2. Lectura > max_allowed_ppm:
   - si no había exceso, abre episodio (limit_start_time, event_count+1)
   - alerta si el exceso dura más de max_limit_minutes o si la lectura
     es un pico (>= spike_ppm)
3. Lectura <= max_allowed_ppm: cierra el episodio si estaba abierto.

Unidades: los timestamps son epoch en milisegundos y la ventana se
compara en milisegundos (max_limit_minutes * 60000).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .errors import MessageValidationError
from .models import GAS_WARNING_TEXT, GasAlert, GasSensorMessage
from .state_models import GasSensorState

logger = logging.getLogger(__name__)

MAX_ALLOWED_PPM = 50
MAX_LIMIT_TIME_MINUTES = 15
SPIKE_PPM = 200
MS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class GasSensorLimits:
    """Umbrales del sensor de gas."""

    max_allowed_ppm: int = MAX_ALLOWED_PPM
    max_limit_minutes: int = MAX_LIMIT_TIME_MINUTES
    spike_ppm: int = SPIKE_PPM

    def __post_init__(self) -> None:
        if self.max_allowed_ppm < 0:
            raise ValueError("max_allowed_ppm must be >= 0")
        if self.max_limit_minutes <= 0:
            raise ValueError("max_limit_minutes must be > 0")
        if self.spike_ppm <= self.max_allowed_ppm:
            raise ValueError("spike_ppm must be greater than max_allowed_ppm")

    @property
    def limit_window_ms(self) -> int:
        return self.max_limit_minutes * MS_PER_MINUTE


DEFAULT_GAS_LIMITS = GasSensorLimits()


@dataclass(frozen=True)
class GasReduction:
    """Resultado de plegar un lote: estado nuevo + alertas (0..N)."""

    state: GasSensorState
    alerts: Tuple[GasAlert, ...] = ()

    @property
    def alert(self) -> Optional[GasAlert]:
        """Última alerta del lote, si hubo alguna."""
        return self.alerts[-1] if self.alerts else None


def _now_ms() -> int:
    return int(time.time() * 1000)


def apply_gas_message(
    state: GasSensorState,
    msg: GasSensorMessage,
    *,
    limits: GasSensorLimits = DEFAULT_GAS_LIMITS,
    raised_at: int,
) -> Tuple[GasSensorState, Optional[GasAlert]]:
    """Aplica un único mensaje. Devuelve (estado, alerta o None)."""
    state = replace(state, last_reading=msg.reading, last_reading_time=msg.timestamp)

    if msg.reading <= limits.max_allowed_ppm:
        if state.limit_exceeded:
            # el episodio termina sin marcarse como resuelto
            state = replace(state, limit_exceeded=False)
        return state, None

    if not state.limit_exceeded:
        state = replace(
            state,
            limit_exceeded=True,
            limit_start_time=msg.timestamp,
            event_count=state.event_count + 1,
        )

    elapsed_ms = state.last_reading_time - state.limit_start_time
    if elapsed_ms > limits.limit_window_ms or msg.reading >= limits.spike_ppm:
        logger.info(
            "[GAS] Alarma: reading=%d ppm elapsed_ms=%d spike=%s",
            msg.reading,
            elapsed_ms,
            msg.reading >= limits.spike_ppm,
        )
        state = replace(state, alarm_sounded=True)
        return state, GasAlert(message=GAS_WARNING_TEXT, raised_at=raised_at)

    return state, None


def reduce_gas_sensor(
    state: GasSensorState,
    messages: Iterable[GasSensorMessage],
    *,
    limits: GasSensorLimits = DEFAULT_GAS_LIMITS,
    now_ms: Optional[int] = None,
) -> GasReduction:
    """Pliega `messages` sobre `state` en orden de llegada.

    Args:
        state: Estado actual del sensor (no se modifica)
        messages: Lote ordenado de lecturas
        limits: Umbrales a aplicar
        now_ms: Reloj inyectado por el host; estampa `GasAlert.raised_at`.
            Si es None se usa el reloj del sistema una vez por lote.

    Returns:
        GasReduction con el estado nuevo y una alerta por cada mensaje
        que la dispare.

    Raises:
        MessageValidationError: si algún elemento no es un GasSensorMessage.
    """
    raised_at = _now_ms() if now_ms is None else now_ms
    alerts: list[GasAlert] = []

    for index, msg in enumerate(messages):
        if not isinstance(msg, GasSensorMessage):
            raise MessageValidationError(
                f"messages[{index}]", f"expected GasSensorMessage, got {type(msg).__name__}"
            )
        state, alert = apply_gas_message(state, msg, limits=limits, raised_at=raised_at)
        if alert is not None:
            alerts.append(alert)

    return GasReduction(state=state, alerts=tuple(alerts))
