"""Reductor de nodos de la red eléctrica.

Clasifica mensajes init/status de un nodo (infraestructura o
controlador), deriva el nivel de alerta según tipo de nodo y condición,
mantiene la heurística de falsas alarmas y el historial de incidentes.

Reglas por mensaje:
- init: tipo de nodo, región y coordenadas; condición -> NORMAL
- normal/offline: resuelve el incidente activo (falsa alarma si venía
  de minor/moderate, resolución confirmada si venía de severe)
- minor/severe: nivel fijo por tipo de nodo
- moderate: lista de decisión ordenada sobre el historial del nodo
- minor/moderate/severe registran un IncidentReport
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, Optional, Tuple

from .errors import MessageValidationError
from .models import GridNodeMessage, IncidentReport, MessageType, NodeCondition, NodeType
from .state_models import GridNodeState

logger = logging.getLogger(__name__)


LevelTable = Dict[NodeType, int]

NORMAL_ALERT_LEVELS: LevelTable = {NodeType.INFRASTRUCTURE: 0, NodeType.CONTROLLER: 0}
MINOR_ALERT_LEVELS: LevelTable = {NodeType.INFRASTRUCTURE: 1, NodeType.CONTROLLER: 2}
MODERATE_ALERT_LEVELS: LevelTable = {NodeType.INFRASTRUCTURE: 4, NodeType.CONTROLLER: 8}
SEVERE_ALERT_LEVELS: LevelTable = {NodeType.INFRASTRUCTURE: 10, NodeType.CONTROLLER: 20}

FALSE_ALARM_RATIO_THRESHOLD = 0.5


# (nombre, predicado sobre el estado previo, incremento sobre MODERATE_ALERT_LEVELS)
# Gana la primera regla que coincide.
ModerateRule = Tuple[str, Callable[[GridNodeState], bool], LevelTable]

MODERATE_RULES: Tuple[ModerateRule, ...] = (
    (
        "severe_history",
        lambda s: s.severe_count > 0,
        {NodeType.INFRASTRUCTURE: 1, NodeType.CONTROLLER: 3},
    ),
    (
        "clean_history",
        lambda s: s.false_count == 0,
        {NodeType.INFRASTRUCTURE: 2, NodeType.CONTROLLER: 4},
    ),
    (
        "mostly_false_alarms",
        lambda s: s.moderate_count > 0 and s.false_alarm_ratio >= FALSE_ALARM_RATIO_THRESHOLD,
        {NodeType.INFRASTRUCTURE: 3, NodeType.CONTROLLER: 5},
    ),
    (
        "mostly_genuine",
        lambda s: s.moderate_count > 0 and s.false_alarm_ratio < FALSE_ALARM_RATIO_THRESHOLD,
        {NodeType.INFRASTRUCTURE: 4, NodeType.CONTROLLER: 6},
    ),
)


def _level_for(state: GridNodeState, table: LevelTable, offset: Optional[LevelTable] = None) -> int:
    """Nivel de alerta para el tipo de nodo del estado.

    Sin tipo de nodo (nunca recibió init) el nivel no cambia.
    """
    if state.node_type not in table:
        logger.warning("[GRID] Nodo sin tipo, alert_level sin cambios (%d)", state.alert_level)
        return state.alert_level
    level = table[state.node_type]
    if offset is not None:
        level += offset[state.node_type]
    return level


def moderate_alert_level(state: GridNodeState) -> Optional[Tuple[str, int]]:
    """Evalúa MODERATE_RULES sobre el estado previo al mensaje.

    Devuelve None si ninguna regla aplica: falsas alarmas sin ningún
    moderate previo (p. ej. minor -> normal -> moderate).
    """
    for name, predicate, offset in MODERATE_RULES:
        if predicate(state):
            return name, _level_for(state, MODERATE_ALERT_LEVELS, offset)
    return None


def _apply_init(state: GridNodeState, msg: GridNodeMessage) -> GridNodeState:
    node_type = NodeType.parse(msg.node_type)
    if node_type is None:
        raise MessageValidationError("node_type", f"unknown node type {msg.node_type!r}")
    return replace(
        state,
        node_type=node_type,
        condition=NodeCondition.NORMAL,
        region=msg.region,
        latitude=msg.latitude,
        longitude=msg.longitude,
    )


def _apply_resolution(state: GridNodeState, condition: NodeCondition) -> GridNodeState:
    if state.condition in (NodeCondition.MODERATE, NodeCondition.MINOR):
        state = replace(
            state,
            false_count=state.false_count + 1,
            total_resolved=state.total_resolved + 1,
            experiencing_incident=False,
        )
    elif state.condition is NodeCondition.SEVERE:
        state = replace(
            state,
            total_resolved=state.total_resolved + 1,
            experiencing_incident=False,
        )
    return replace(
        state,
        alert_level=_level_for(state, NORMAL_ALERT_LEVELS),
        condition=condition,
    )


def _apply_incident(state: GridNodeState, condition: NodeCondition, now_ms: int) -> GridNodeState:
    if condition is NodeCondition.MINOR:
        state = replace(
            state,
            alert_level=_level_for(state, MINOR_ALERT_LEVELS),
            minor_count=state.minor_count + 1,
            condition=condition,
            experiencing_incident=True,
        )
    elif condition is NodeCondition.SEVERE:
        state = replace(
            state,
            alert_level=_level_for(state, SEVERE_ALERT_LEVELS),
            severe_count=state.severe_count + 1,
            condition=condition,
            experiencing_incident=True,
        )
    else:
        matched = moderate_alert_level(state)
        if matched is None:
            # Sin regla: nivel, contador y condición quedan como estaban,
            # el incidente se registra igual.
            logger.warning(
                "[GRID] moderate sin regla aplicable false=%d moderate=%d, estado sin cambios",
                state.false_count, state.moderate_count,
            )
        else:
            rule, level = matched
            logger.debug("[GRID] moderate rule=%s level=%d", rule, level)
            state = replace(
                state,
                alert_level=level,
                moderate_count=state.moderate_count + 1,
                condition=condition,
                experiencing_incident=True,
            )

    report = IncidentReport(timestamp=now_ms, incident_type=condition.value)
    return replace(
        state,
        total_incidents=state.total_incidents + 1,
        incident_history=state.incident_history.append(report),
    )


def apply_grid_message(state: GridNodeState, msg: GridNodeMessage, *, now_ms: int) -> GridNodeState:
    """Aplica un único mensaje al estado del nodo."""
    msg_type = msg.message_type
    if msg_type is None:
        logger.warning("[GRID] Tipo de mensaje desconocido node=%s type=%r, ignorado", msg.node_id, msg.type)
        return state

    if msg_type is MessageType.INIT:
        return _apply_init(state, msg)

    condition = msg.node_condition
    if condition is None:
        logger.warning(
            "[GRID] Condición desconocida node=%s condition=%r, ignorada", msg.node_id, msg.condition
        )
        return state

    if condition in (NodeCondition.NORMAL, NodeCondition.OFFLINE):
        return _apply_resolution(state, condition)

    return _apply_incident(state, condition, now_ms)


def reduce_grid_node(
    state: GridNodeState,
    messages: Iterable[GridNodeMessage],
    *,
    now_ms: Optional[int] = None,
) -> GridNodeState:
    """Pliega `messages` sobre `state` en orden de llegada.

    Un init completa solo su propio mensaje; el resto del lote se sigue
    procesando sobre el estado actualizado.

    Raises:
        MessageValidationError: elemento que no es GridNodeMessage o init
            con tipo de nodo desconocido. El estado recibido no cambia.
    """
    stamp = int(time.time() * 1000) if now_ms is None else now_ms

    for index, msg in enumerate(messages):
        if not isinstance(msg, GridNodeMessage):
            raise MessageValidationError(
                f"messages[{index}]", f"expected GridNodeMessage, got {type(msg).__name__}"
            )
        state = apply_grid_message(state, msg, now_ms=stamp)

    return state
