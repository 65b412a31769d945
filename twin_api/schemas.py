from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .classification import (
    GasAlert,
    GasSensorMessage,
    GasSensorState,
    GridNodeMessage,
    GridNodeState,
    IncidentHistory,
    IncidentReport,
    NodeCondition,
    NodeType,
)


# =============================================================================
# MENSAJES ENTRANTES
# =============================================================================

class GasSensorMessageIn(BaseModel):
    """Lectura de sensor de gas tal como llega por el transporte.

    Formato esperado:
    {"ppmReading": 51, "timestamp": 1706688000123}
    """

    model_config = ConfigDict(populate_by_name=True)

    ppm_reading: int = Field(..., alias="ppmReading", ge=0)
    timestamp: int = Field(..., ge=0)

    def to_message(self) -> GasSensorMessage:
        return GasSensorMessage(reading=self.ppm_reading, timestamp=self.timestamp)


class GridNodeMessageIn(BaseModel):
    """Mensaje de nodo de red.

    Formato esperado:
    {
        "type": "init" | "status",
        "id": "23",
        "node_condition": "normal",
        "node_type": "controller",
        "region": "NW",
        "latitude": 47.5404,
        "longitude": 122.6362
    }

    region, latitude y longitude son obligatorios en init.
    """

    type: str
    id: Optional[str] = None
    node_condition: str
    node_type: str = ""
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("type", "node_condition")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    def to_message(self, entity_id: Optional[str] = None) -> GridNodeMessage:
        return GridNodeMessage(
            type=self.type,
            node_id=self.id or entity_id or "",
            condition=self.node_condition,
            region=self.region,
            node_type=self.node_type,
            latitude=self.latitude,
            longitude=self.longitude,
        )


# =============================================================================
# ALERTAS
# =============================================================================

class GasAlertOut(BaseModel):
    """Payload serializado de alerta: texto fijo + epoch ms."""

    model_config = ConfigDict(populate_by_name=True)

    alert_message: str = Field(..., alias="alertMessage")
    timestamp: int

    @classmethod
    def from_alert(cls, alert: GasAlert) -> "GasAlertOut":
        return cls(alert_message=alert.message, timestamp=alert.raised_at)

    def to_alert(self) -> GasAlert:
        return GasAlert(message=self.alert_message, raised_at=self.timestamp)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# =============================================================================
# VISTAS DE ESTADO
# =============================================================================

class GasSensorStateOut(BaseModel):
    last_reading: int = 0
    last_reading_time: int = 0
    limit_exceeded: bool = False
    alarm_sounded: bool = False
    limit_start_time: int = 0
    event_count: int = 0

    @classmethod
    def from_state(cls, state: GasSensorState) -> "GasSensorStateOut":
        return cls(
            last_reading=state.last_reading,
            last_reading_time=state.last_reading_time,
            limit_exceeded=state.limit_exceeded,
            alarm_sounded=state.alarm_sounded,
            limit_start_time=state.limit_start_time,
            event_count=state.event_count,
        )

    def to_state(self) -> GasSensorState:
        return GasSensorState(**self.model_dump())


class IncidentReportOut(BaseModel):
    timestamp: int
    incident_type: str


class GridNodeStateOut(BaseModel):
    node_type: str = ""
    condition: str = ""
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
    incident_history: List[IncidentReportOut] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: GridNodeState) -> "GridNodeStateOut":
        return cls(
            node_type=state.node_type.value,
            condition=state.condition.value,
            region=state.region,
            latitude=state.latitude,
            longitude=state.longitude,
            alert_level=state.alert_level,
            minor_count=state.minor_count,
            moderate_count=state.moderate_count,
            false_count=state.false_count,
            severe_count=state.severe_count,
            total_incidents=state.total_incidents,
            total_resolved=state.total_resolved,
            experiencing_incident=state.experiencing_incident,
            incident_history=[
                IncidentReportOut(timestamp=r.timestamp, incident_type=r.incident_type)
                for r in state.incident_history
            ],
        )

    def to_state(self) -> GridNodeState:
        return GridNodeState(
            node_type=NodeType(self.node_type),
            condition=NodeCondition(self.condition),
            region=self.region,
            latitude=self.latitude,
            longitude=self.longitude,
            alert_level=self.alert_level,
            minor_count=self.minor_count,
            moderate_count=self.moderate_count,
            false_count=self.false_count,
            severe_count=self.severe_count,
            total_incidents=self.total_incidents,
            total_resolved=self.total_resolved,
            experiencing_incident=self.experiencing_incident,
            incident_history=IncidentHistory(
                IncidentReport(timestamp=r.timestamp, incident_type=r.incident_type)
                for r in self.incident_history
            ),
        )


class DispatchOut(BaseModel):
    model: str
    entity_id: str
    messages: int
    state: dict
    alerts: List[GasAlertOut] = Field(default_factory=list)
