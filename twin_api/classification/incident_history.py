"""Historial acotado de incidentes.

Política de no-crecimiento: al alcanzar MAX_SIZE entradas se conservan
solo las posiciones [RETAIN_FROM, MAX_SIZE), es decir las 5 más
recientes del lote. No es una ventana deslizante exacta.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from .models import IncidentReport


MAX_SIZE = 15
RETAIN_FROM = 10


class IncidentHistory:
    """Secuencia inmutable de IncidentReport con tope de tamaño.

    `append` devuelve una nueva instancia; la original no cambia.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[IncidentReport] = ()) -> None:
        items: Tuple[IncidentReport, ...] = tuple(entries)
        if len(items) >= MAX_SIZE:
            # [RETAIN_FROM:MAX_SIZE] del lote completo == las últimas 5
            items = items[-(MAX_SIZE - RETAIN_FROM):]
        self._entries = items

    def append(self, report: IncidentReport) -> "IncidentHistory":
        """Agrega un reporte aplicando la política de desalojo."""
        return IncidentHistory(self._entries + (report,))

    @property
    def entries(self) -> Tuple[IncidentReport, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[IncidentReport]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> IncidentReport:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IncidentHistory):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"IncidentHistory({list(self._entries)!r})"
