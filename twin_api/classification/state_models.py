"""Modelos de estado persistido por entidad.

Un registro plano por entidad (sensor de gas o nodo de red). Son
valores inmutables: los reductores devuelven una copia nueva con
`dataclasses.replace` y nunca exponen setters por campo.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .incident_history import IncidentHistory
from .models import NodeCondition, NodeType


@dataclass(frozen=True)
class GasSensorState:
    """Estado de un sensor de gas.

    `limit_start_time` solo tiene sentido mientras `limit_exceeded` es
    True; se fija una única vez por episodio de exceso.
    """

    last_reading: int = 0
    last_reading_time: int = 0
    limit_exceeded: bool = False
    alarm_sounded: bool = False
    limit_start_time: int = 0
    event_count: int = 0


@dataclass(frozen=True)
class GridNodeState:
    """Estado de un nodo de la red eléctrica (infraestructura o controlador)."""

    node_type: NodeType = NodeType.UNSET
    condition: NodeCondition = NodeCondition.UNSET
    region: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    alert_level: int = 0
    minor_count: int = 0
    moderate_count: int = 0
    false_count: int = 0
    severe_count: int = 0
    total_incidents: int = 0
    total_resolved: int = 0
    experiencing_incident: bool = False
    incident_history: IncidentHistory = field(default_factory=IncidentHistory)

    @property
    def false_alarm_ratio(self) -> float:
        """falseCount / moderateCount con división real (0.0 sin moderados)."""
        if self.moderate_count == 0:
            return 0.0
        return self.false_count / self.moderate_count
