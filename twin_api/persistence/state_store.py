"""Repositorios de estado por entidad.

El núcleo no persiste nada: el dispatcher carga el estado, lo pasa al
reductor y guarda el valor devuelto reemplazando la versión anterior.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..schemas import GasSensorStateOut, GridNodeStateOut

logger = logging.getLogger(__name__)


DEFAULT_STATE_VIEWS: Dict[str, Any] = {
    "GasSensor": GasSensorStateOut,
    "GridNode": GridNodeStateOut,
}


class StateStore(Protocol):
    """Contrato mínimo de persistencia usado por el dispatcher."""

    def load(self, model: str, entity_id: str) -> Optional[Any]: ...

    def save(self, model: str, entity_id: str, state: Any) -> None: ...

    def delete(self, model: str, entity_id: str) -> bool: ...

    def ids(self, model: str) -> List[str]: ...


class InMemoryStateStore:
    """Store en memoria. Los estados son inmutables, se guardan sin copiar."""

    def __init__(self) -> None:
        self._states: Dict[Tuple[str, str], Any] = {}
        self._lock = threading.Lock()

    def load(self, model: str, entity_id: str) -> Optional[Any]:
        with self._lock:
            return self._states.get((model, entity_id))

    def save(self, model: str, entity_id: str, state: Any) -> None:
        with self._lock:
            self._states[(model, entity_id)] = state

    def delete(self, model: str, entity_id: str) -> bool:
        with self._lock:
            return self._states.pop((model, entity_id), None) is not None

    def ids(self, model: str) -> List[str]:
        with self._lock:
            return sorted(eid for (m, eid) in self._states if m == model)


class SqlStateStore:
    """Store SQL: una fila JSON por (model, entity_id).

    La serialización usa las vistas pydantic (`from_state` / `to_state`)
    registradas por modelo.
    """

    def __init__(self, engine: Engine, views: Optional[Mapping[str, Any]] = None) -> None:
        self._engine = engine
        self._views = dict(views or DEFAULT_STATE_VIEWS)

    def create_schema(self) -> None:
        """Crea la tabla twin_state si no existe."""
        with self._engine.begin() as conn:
            conn.execute(
                text("""
                    CREATE TABLE IF NOT EXISTS twin_state (
                        model VARCHAR(64) NOT NULL,
                        entity_id VARCHAR(128) NOT NULL,
                        payload TEXT NOT NULL,
                        updated_at TIMESTAMP NOT NULL,
                        PRIMARY KEY (model, entity_id)
                    )
                """)
            )
        logger.info("[STORE] Tabla twin_state lista")

    def _view(self, model: str) -> Any:
        try:
            return self._views[model]
        except KeyError:
            raise KeyError(f"no state view registered for model {model!r}") from None

    def load(self, model: str, entity_id: str) -> Optional[Any]:
        view = self._view(model)
        with self._engine.connect() as conn:
            row = conn.execute(
                text("""
                    SELECT payload FROM twin_state
                    WHERE model = :model AND entity_id = :entity_id
                """),
                {"model": model, "entity_id": entity_id},
            ).fetchone()

        if not row:
            return None
        return view.model_validate(json.loads(row.payload)).to_state()

    def save(self, model: str, entity_id: str, state: Any) -> None:
        payload = self._view(model).from_state(state).model_dump_json()
        params = {
            "model": model,
            "entity_id": entity_id,
            "payload": payload,
            "updated_at": datetime.now(timezone.utc),
        }
        # delete + insert en la misma transacción: upsert portable
        with self._engine.begin() as conn:
            conn.execute(
                text("DELETE FROM twin_state WHERE model = :model AND entity_id = :entity_id"),
                params,
            )
            conn.execute(
                text("""
                    INSERT INTO twin_state (model, entity_id, payload, updated_at)
                    VALUES (:model, :entity_id, :payload, :updated_at)
                """),
                params,
            )
        logger.debug("[STORE] Saved model=%s entity=%s", model, entity_id)

    def delete(self, model: str, entity_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                text("DELETE FROM twin_state WHERE model = :model AND entity_id = :entity_id"),
                {"model": model, "entity_id": entity_id},
            )
        return (result.rowcount or 0) > 0

    def ids(self, model: str) -> List[str]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("SELECT entity_id FROM twin_state WHERE model = :model ORDER BY entity_id"),
                {"model": model},
            ).fetchall()
        return [r.entity_id for r in rows]
