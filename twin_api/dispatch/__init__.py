"""Host de despacho de mensajes hacia los reductores."""

from .dispatcher import BatchReport, DispatchError, DispatchResult, TwinDispatcher, UnknownModelError
from .models import GAS_SENSOR, GRID_NODE, TwinModel, default_models, gas_sensor_model, grid_node_model
from .stats import DispatchStats

__all__ = [
    "BatchReport",
    "DispatchError",
    "DispatchResult",
    "DispatchStats",
    "GAS_SENSOR",
    "GRID_NODE",
    "TwinDispatcher",
    "TwinModel",
    "UnknownModelError",
    "default_models",
    "gas_sensor_model",
    "grid_node_model",
]
