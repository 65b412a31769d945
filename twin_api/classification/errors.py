"""Errores del núcleo de clasificación."""

from __future__ import annotations


class MessageValidationError(ValueError):
    """Mensaje con campos faltantes o mal tipados.

    El reductor falla rápido en lugar de inventar valores por defecto:
    un tipo de nodo o condición adivinado corrompería el nivel de alerta.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")
