"""Persistencia del estado de entidades (colaborador del host)."""

from .state_store import InMemoryStateStore, SqlStateStore, StateStore

__all__ = ["InMemoryStateStore", "SqlStateStore", "StateStore"]
