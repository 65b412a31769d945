"""Núcleo de clasificación de telemetría por entidad.

Estructura modular:
- models.py: Enums y mensajes (GasSensorMessage, GridNodeMessage, ...)
- state_models.py: Estado persistido por entidad
- incident_history.py: Historial acotado de incidentes
- gas_sensor.py: Reductor de sensores de gas
- grid_node.py: Reductor de nodos de red eléctrica
- errors.py: Errores de validación

Todo el paquete es puro y síncrono: sin I/O ni estado global.
"""

from .errors import MessageValidationError
from .models import (
    GAS_WARNING_TEXT,
    GasAlert,
    GasSensorMessage,
    GridNodeMessage,
    IncidentReport,
    MessageType,
    NodeCondition,
    NodeType,
)
from .incident_history import IncidentHistory
from .state_models import GasSensorState, GridNodeState
from .gas_sensor import DEFAULT_GAS_LIMITS, GasReduction, GasSensorLimits, reduce_gas_sensor
from .grid_node import reduce_grid_node

__all__ = [
    "GAS_WARNING_TEXT",
    "DEFAULT_GAS_LIMITS",
    "GasAlert",
    "GasReduction",
    "GasSensorLimits",
    "GasSensorMessage",
    "GasSensorState",
    "GridNodeMessage",
    "GridNodeState",
    "IncidentHistory",
    "IncidentReport",
    "MessageType",
    "MessageValidationError",
    "NodeCondition",
    "NodeType",
    "reduce_gas_sensor",
    "reduce_grid_node",
]
