"""In-memory registry binding browser sessions to wizard instances."""

from __future__ import annotations

import secrets
import threading
import time
from collections import OrderedDict
from typing import Callable

from offramp.lib.logger import get_logger
from offramp.lib.metrics import METRICS
from offramp.transfers.service import TransferWizard

WizardFactory = Callable[[], TransferWizard]

logger = get_logger(__name__)


class WizardStore:
    """Holds one ``TransferWizard`` per session flow id.

    Wizards live only in memory. An entry idle for longer than ``ttl_seconds``
    is dropped on the next lookup, and the least recently used entries are
    evicted once more than ``max_sessions`` are held.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 1800.0,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._lock = threading.Lock()
        self._wizards: OrderedDict[str, tuple[TransferWizard, float]] = OrderedDict()

    def get(self, flow_id: str | None) -> TransferWizard | None:
        if not flow_id:
            return None
        now = self._clock()
        with self._lock:
            entry = self._wizards.get(flow_id)
            if entry is None:
                return None
            wizard, last_seen = entry
            if now - last_seen > self.ttl_seconds:
                del self._wizards[flow_id]
                self._record_eviction("expired")
                return None
            self._wizards[flow_id] = (wizard, now)
            self._wizards.move_to_end(flow_id)
            return wizard

    def create(self, factory: WizardFactory) -> tuple[str, TransferWizard]:
        wizard = factory()
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            flow_id = secrets.token_hex(16)
            while flow_id in self._wizards:
                flow_id = secrets.token_hex(16)
            self._wizards[flow_id] = (wizard, now)
            while len(self._wizards) > self.max_sessions:
                self._wizards.popitem(last=False)
                self._record_eviction("capacity")
        return flow_id, wizard

    def __len__(self) -> int:
        with self._lock:
            return len(self._wizards)

    def reset(self) -> None:
        with self._lock:
            self._wizards.clear()

    def _evict_expired(self, now: float) -> None:
        # Entries are kept in access order, so expired ones sit at the front.
        while self._wizards:
            flow_id, (_, last_seen) = next(iter(self._wizards.items()))
            if now - last_seen <= self.ttl_seconds:
                break
            del self._wizards[flow_id]
            self._record_eviction("expired")

    @staticmethod
    def _record_eviction(reason: str) -> None:
        METRICS.increment("transfer.flow.evicted")
        logger.info("transfer.flow.evicted", extra={"reason": reason})
