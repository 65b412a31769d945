"""Dispatcher de lotes de mensajes por entidad.

Contrato con el núcleo:
- A lo sumo un reductor concurrente por (modelo, entity_id): lock por entidad
- Entidades distintas en paralelo, sin estado mutable compartido
- Cada lote se pliega en orden de llegada
- Guardar estado + entregar alertas se confirman juntos: si la entrega
  falla se restaura el estado previo antes de propagar el error
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..alerts import AlertSink
from ..classification import GasAlert, MessageValidationError
from ..persistence import StateStore
from .models import TwinModel
from .stats import DispatchStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class UnknownModelError(KeyError):
    """Modelo de gemelo no registrado."""


class DispatchError(RuntimeError):
    """Fallo de un lote de una entidad (reducción o commit)."""

    def __init__(self, model: str, entity_id: str, cause: BaseException) -> None:
        self.model = model
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"{model}/{entity_id}: {cause}")


@dataclass(frozen=True)
class DispatchResult:
    model: str
    entity_id: str
    state: Any
    alerts: Tuple[GasAlert, ...] = ()
    messages: int = 0


@dataclass
class BatchReport:
    """Resultado de dispatch_many: éxitos y fallos por lote."""

    results: List[DispatchResult] = field(default_factory=list)
    failures: List[DispatchError] = field(default_factory=list)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class TwinDispatcher:
    """Host de los reductores: carga estado, pliega, confirma.

    Usage:
        dispatcher = TwinDispatcher(default_models(), InMemoryStateStore(), InMemoryAlertSink())
        result = dispatcher.dispatch("GasSensor", "23", [GasSensorMessage(51, now)])
    """

    def __init__(
        self,
        models: Mapping[str, TwinModel],
        store: StateStore,
        sink: AlertSink,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._models = dict(models)
        self._store = store
        self._sink = sink
        self._clock = clock or _epoch_ms
        # entradas vivas solo mientras algún hilo usa el lock de la entidad
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()
        self._stats = DispatchStats()

    @property
    def stats(self) -> DispatchStats:
        return self._stats

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def sink(self) -> AlertSink:
        return self._sink

    @property
    def models(self) -> Dict[str, TwinModel]:
        return dict(self._models)

    def model(self, name: str) -> TwinModel:
        try:
            return self._models[name]
        except KeyError:
            raise UnknownModelError(name) from None

    def _entity_lock(self, model: str, entity_id: str) -> threading.Lock:
        key = (model, entity_id)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def get_state(self, model: str, entity_id: str) -> Optional[Any]:
        self.model(model)
        return self._store.load(model, entity_id)

    def parse_messages(self, model: str, entity_id: str, payloads: Iterable[Any]) -> List[Any]:
        """Valida payloads crudos. Falla con el primer payload inválido."""
        twin = self.model(model)
        messages = []
        for index, data in enumerate(payloads):
            result = twin.validator(data, entity_id)
            if not result.valid:
                raise MessageValidationError(f"messages[{index}]", result.error or "invalid payload")
            messages.append(result.message)
        return messages

    def dispatch(self, model: str, entity_id: str, messages: Sequence[Any]) -> DispatchResult:
        """Pliega un lote sobre el estado de la entidad y lo confirma.

        Raises:
            UnknownModelError: modelo no registrado
            DispatchError: la reducción o el commit fallaron; nada quedó confirmado
        """
        twin = self.model(model)
        messages = list(messages)

        with self._entity_lock(model, entity_id):
            previous = self._store.load(model, entity_id)
            state = previous if previous is not None else twin.state_factory()

            if not messages:
                self._stats.record_skipped()
                return DispatchResult(model=model, entity_id=entity_id, state=state)

            try:
                new_state, alerts = twin.reducer(state, messages, self._clock())
            except Exception as e:
                self._stats.record_failure()
                logger.exception("[DISPATCH] Reducción falló model=%s entity=%s", model, entity_id)
                raise DispatchError(model, entity_id, e) from e

            self._commit(model, entity_id, previous, new_state, alerts)

        self._stats.record_success(len(messages), len(alerts))
        if alerts:
            logger.info("[DISPATCH] model=%s entity=%s alerts=%d", model, entity_id, len(alerts))
        return DispatchResult(
            model=model,
            entity_id=entity_id,
            state=new_state,
            alerts=tuple(alerts),
            messages=len(messages),
        )

    def _commit(
        self,
        model: str,
        entity_id: str,
        previous: Optional[Any],
        new_state: Any,
        alerts: Sequence[GasAlert],
    ) -> None:
        try:
            self._store.save(model, entity_id, new_state)
        except Exception as e:
            self._stats.record_failure()
            logger.exception("[DISPATCH] Persistencia falló model=%s entity=%s", model, entity_id)
            raise DispatchError(model, entity_id, e) from e

        if not alerts:
            return

        try:
            self._sink.deliver(model, entity_id, alerts)
        except Exception as e:
            self._stats.record_failure()
            logger.error(
                "[DISPATCH] Entrega de alertas falló model=%s entity=%s err=%s, restaurando estado",
                model, entity_id, e,
            )
            try:
                if previous is None:
                    self._store.delete(model, entity_id)
                else:
                    self._store.save(model, entity_id, previous)
            except Exception:
                logger.exception(
                    "[DISPATCH] No se pudo restaurar el estado model=%s entity=%s", model, entity_id
                )
            raise DispatchError(model, entity_id, e) from e

    def dispatch_many(
        self,
        batches: Iterable[Tuple[str, str, Sequence[Any]]],
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> BatchReport:
        """Despacha varios lotes: entidades distintas en paralelo.

        Los lotes de una misma entidad se agrupan y se ejecutan en serie,
        en el orden en que aparecen.
        """
        groups: Dict[Tuple[str, str], List[Tuple[int, Sequence[Any]]]] = {}
        for index, (model, entity_id, messages) in enumerate(batches):
            groups.setdefault((model, entity_id), []).append((index, messages))

        def run_group(key: Tuple[str, str], items: List[Tuple[int, Sequence[Any]]]):
            outcomes = []
            for index, messages in items:
                try:
                    outcomes.append((index, self.dispatch(key[0], key[1], messages)))
                except DispatchError as e:
                    outcomes.append((index, e))
            return outcomes

        ordered: List[Tuple[int, Any]] = []
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            futures = [pool.submit(run_group, key, items) for key, items in groups.items()]
            for future in futures:
                ordered.extend(future.result())

        report = BatchReport()
        for _, outcome in sorted(ordered, key=lambda item: item[0]):
            if isinstance(outcome, DispatchError):
                report.failures.append(outcome)
            else:
                report.results.append(outcome)
        logger.info(
            "[DISPATCH] dispatch_many groups=%d ok=%d failed=%d",
            len(groups), len(report.results), len(report.failures),
        )
        return report
