"""Registro de modelos de gemelo digital.

Cada modelo une: fábrica de estado inicial, reductor, validador de
payloads y vistas pydantic para estado/mensajes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type

from pydantic import BaseModel

from ..classification import (
    DEFAULT_GAS_LIMITS,
    GasAlert,
    GasSensorLimits,
    GasSensorState,
    GridNodeState,
    reduce_gas_sensor,
    reduce_grid_node,
)
from ..schemas import (
    GasAlertOut,
    GasSensorMessageIn,
    GasSensorStateOut,
    GridNodeMessageIn,
    GridNodeStateOut,
)
from ..validators import ValidationResult, validate_gas_message, validate_grid_message

GAS_SENSOR = "GasSensor"
GRID_NODE = "GridNode"

# (estado, mensajes, now_ms) -> (estado nuevo, alertas)
Reducer = Callable[[Any, Sequence[Any], int], Tuple[Any, Tuple[GasAlert, ...]]]
Validator = Callable[[Any, str], ValidationResult]


@dataclass(frozen=True)
class TwinModel:
    name: str
    state_factory: Callable[[], Any]
    reducer: Reducer
    validator: Validator
    state_view: Type[BaseModel]
    message_schema: Type[BaseModel]
    alert_schema: Optional[Type[BaseModel]] = None


def gas_sensor_model(limits: GasSensorLimits = DEFAULT_GAS_LIMITS) -> TwinModel:
    def reducer(state: GasSensorState, messages: Sequence[Any], now_ms: int):
        result = reduce_gas_sensor(state, messages, limits=limits, now_ms=now_ms)
        return result.state, result.alerts

    return TwinModel(
        name=GAS_SENSOR,
        state_factory=GasSensorState,
        reducer=reducer,
        validator=lambda data, entity_id: validate_gas_message(data),
        state_view=GasSensorStateOut,
        message_schema=GasSensorMessageIn,
        alert_schema=GasAlertOut,
    )


def grid_node_model() -> TwinModel:
    def reducer(state: GridNodeState, messages: Sequence[Any], now_ms: int):
        return reduce_grid_node(state, messages, now_ms=now_ms), ()

    return TwinModel(
        name=GRID_NODE,
        state_factory=GridNodeState,
        reducer=reducer,
        validator=validate_grid_message,
        state_view=GridNodeStateOut,
        message_schema=GridNodeMessageIn,
    )


def default_models(gas_limits: GasSensorLimits = DEFAULT_GAS_LIMITS) -> Dict[str, TwinModel]:
    models = (gas_sensor_model(gas_limits), grid_node_model())
    return {m.name: m for m in models}
