"""Estadísticas del dispatcher."""

from __future__ import annotations

import threading
import time


class DispatchStats:
    """Contadores thread-safe del dispatcher."""

    def __init__(self):
        self._lock = threading.Lock()
        self.batches = 0
        self.messages = 0
        self.alerts = 0
        self.failed = 0
        self.skipped = 0
        self.last_dispatch_at: float = 0

    def record_success(self, messages: int, alerts: int) -> None:
        with self._lock:
            self.batches += 1
            self.messages += messages
            self.alerts += alerts
            self.last_dispatch_at = time.time()

    def record_failure(self) -> None:
        with self._lock:
            self.failed += 1

    def record_skipped(self) -> None:
        with self._lock:
            self.skipped += 1

    def __str__(self) -> str:
        return (
            f"Stats: batches={self.batches} messages={self.messages} "
            f"alerts={self.alerts} failed={self.failed} skipped={self.skipped}"
        )

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "batches": self.batches,
                "messages": self.messages,
                "alerts": self.alerts,
                "failed": self.failed,
                "skipped": self.skipped,
                "last_dispatch_at": self.last_dispatch_at,
            }
