"""Validadores de payloads de telemetría.

Transforman diccionarios crudos (JSON del transporte) en mensajes
tipados del núcleo. Nunca lanzan: devuelven ValidationResult.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from .classification import GasSensorMessage, GridNodeMessage, MessageValidationError
from .schemas import GasSensorMessageIn, GridNodeMessageIn

logger = logging.getLogger(__name__)

TwinMessage = Union[GasSensorMessage, GridNodeMessage]


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    message: Optional[TwinMessage] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def validate_gas_message(data: Any) -> ValidationResult:
    """Valida una lectura de sensor de gas.

    Acepta `ppm_reading` en snake_case además de `ppmReading`.
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, error=f"payload must be an object, got {type(data).__name__}")

    warnings: List[str] = []
    data = dict(data)
    if "ppmReading" not in data and "ppm_reading" in data:
        data["ppmReading"] = data.pop("ppm_reading")
        warnings.append("Used snake_case ppm_reading instead of ppmReading")

    try:
        payload = GasSensorMessageIn.model_validate(data)
        return ValidationResult(valid=True, message=payload.to_message(), warnings=warnings)
    except (ValidationError, MessageValidationError) as e:
        logger.warning("[VALIDATOR] Gas payload rejected: %s", e)
        return ValidationResult(valid=False, error=str(e))


def validate_grid_message(data: Any, entity_id: Optional[str] = None) -> ValidationResult:
    """Valida un mensaje de nodo de red.

    Acepta `nodeCondition`/`nodeType` en camelCase además del formato
    snake_case de las fuentes originales.
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, error=f"payload must be an object, got {type(data).__name__}")

    warnings: List[str] = []
    data = dict(data)
    for camel, snake in (("nodeCondition", "node_condition"), ("nodeType", "node_type")):
        if snake not in data and camel in data:
            data[snake] = data.pop(camel)
            warnings.append(f"Used camelCase {camel} instead of {snake}")

    try:
        payload = GridNodeMessageIn.model_validate(data)
        return ValidationResult(valid=True, message=payload.to_message(entity_id), warnings=warnings)
    except (ValidationError, MessageValidationError) as e:
        logger.warning("[VALIDATOR] Grid payload rejected: %s", e)
        return ValidationResult(valid=False, error=str(e))
