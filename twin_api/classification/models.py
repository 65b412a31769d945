"""Modelos de datos para clasificación de telemetría.

Enums y dataclasses compartidos por los reductores de sensores de gas
y de nodos de la red eléctrica. Los mensajes son efímeros (uno por
muestra), las alertas se emiten y no se persisten aquí.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import MessageValidationError


GAS_WARNING_TEXT = "Warning: dangerous air quality."


class NodeType(Enum):
    """Tipo de nodo de la red eléctrica."""

    INFRASTRUCTURE = "infrastructure"
    CONTROLLER = "controller"
    UNSET = ""

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["NodeType"]:
        """Convierte texto a NodeType. None si no es un tipo conocido."""
        if raw is None:
            return None
        try:
            node_type = cls(raw.strip().lower())
        except ValueError:
            return None
        return None if node_type is cls.UNSET else node_type


class NodeCondition(Enum):
    """Condición cualitativa de un nodo."""

    NORMAL = "normal"      # condición base
    MINOR = "minor"        # anormal
    MODERATE = "moderate"  # sospecha de ataque
    SEVERE = "severe"      # ataque
    OFFLINE = "offline"    # nodo apagado
    UNSET = ""             # nunca inicializado

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["NodeCondition"]:
        """Convierte texto a NodeCondition. None si es desconocida."""
        if raw is None:
            return None
        try:
            condition = cls(raw.strip().lower())
        except ValueError:
            return None
        return None if condition is cls.UNSET else condition

    @property
    def is_incident(self) -> bool:
        return self in (NodeCondition.MINOR, NodeCondition.MODERATE, NodeCondition.SEVERE)


class MessageType(Enum):
    """Tipo de mensaje de un nodo."""

    INIT = "init"      # identidad + ubicación, resetea a NORMAL
    STATUS = "status"  # solo transición de condición

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["MessageType"]:
        if raw is None:
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


def _require_int(field: str, value: object) -> int:
    if value is None:
        raise MessageValidationError(field, "is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise MessageValidationError(field, f"must be an integer, got {type(value).__name__}")
    return value


def _require_str(field: str, value: object) -> str:
    if value is None:
        raise MessageValidationError(field, "is required")
    if not isinstance(value, str):
        raise MessageValidationError(field, f"must be a string, got {type(value).__name__}")
    return value


def _require_float(field: str, value: object) -> float:
    if value is None:
        raise MessageValidationError(field, "is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MessageValidationError(field, f"must be a number, got {type(value).__name__}")
    return float(value)


@dataclass(frozen=True)
class GasSensorMessage:
    """Muestra de telemetría de un sensor de gas."""

    reading: int    # ppm
    timestamp: int  # epoch ms

    def __post_init__(self) -> None:
        _require_int("reading", self.reading)
        _require_int("timestamp", self.timestamp)
        if self.reading < 0:
            raise MessageValidationError("reading", "ppm cannot be negative")


@dataclass(frozen=True)
class GasAlert:
    """Alerta emitida por el reductor de gas."""

    message: str
    raised_at: int  # epoch ms


@dataclass(frozen=True)
class GridNodeMessage:
    """Telemetría de un nodo de la red eléctrica.

    `type`, `condition` y `node_type` se guardan como texto crudo: los
    valores desconocidos se tratan en el reductor (no-op registrado),
    los campos ausentes fallan aquí. Un init debe traer región y
    coordenadas; un status puede omitirlas.
    """

    type: str
    node_id: str
    condition: str
    region: Optional[str] = None
    node_type: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def __post_init__(self) -> None:
        _require_str("type", self.type)
        _require_str("node_id", self.node_id)
        _require_str("condition", self.condition)
        _require_str("node_type", self.node_type)

        if self.message_type is MessageType.INIT:
            _require_str("region", self.region)
            object.__setattr__(self, "latitude", _require_float("latitude", self.latitude))
            object.__setattr__(self, "longitude", _require_float("longitude", self.longitude))
            return

        if self.region is not None:
            _require_str("region", self.region)
        if self.latitude is not None:
            object.__setattr__(self, "latitude", _require_float("latitude", self.latitude))
        if self.longitude is not None:
            object.__setattr__(self, "longitude", _require_float("longitude", self.longitude))

    @property
    def message_type(self) -> Optional[MessageType]:
        return MessageType.parse(self.type)

    @property
    def node_condition(self) -> Optional[NodeCondition]:
        return NodeCondition.parse(self.condition)


@dataclass(frozen=True)
class IncidentReport:
    """Entrada inmutable del historial de incidentes."""

    timestamp: int  # epoch ms
    incident_type: str
