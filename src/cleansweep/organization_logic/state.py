"""
Observable engine state.

The engine never exposes mutable fields; it replaces an immutable snapshot and
the container delivers each new snapshot to subscribers on a single
foreground thread, in publication order.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..file_access.history import FileMoveRecord
from .rules import OrganizingRule

logger = logging.getLogger(__name__)

Subscriber = Callable[["EngineState"], None]


@dataclass(frozen=True)
class EngineState:
    """Snapshot of everything a presentation layer can observe."""

    is_monitoring: bool = False
    rules: Tuple[OrganizingRule, ...] = ()
    watched_folder: str = ""
    recent_moves: Tuple[FileMoveRecord, ...] = ()
    status_message: Optional[str] = None
    is_error: bool = False
    is_first_run: bool = True
    start_on_login: bool = False


class StateContainer:
    """Hold the current EngineState and notify subscribers of changes."""

    def __init__(self, initial: Optional[EngineState] = None):
        self._state = initial or EngineState()
        self._lock = threading.Lock()
        self._subscribers: List[Subscriber] = []
        self._closed = False
        self._foreground = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="cleansweep-foreground"
        )

    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for new snapshots.

        Args:
            callback: Called with each published EngineState

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def update(self, **changes) -> EngineState:
        """Replace fields of the current snapshot and publish the result."""
        with self._lock:
            self._state = replace(self._state, **changes)
            state = self._state
            subscribers = list(self._subscribers)
            # submit under the lock so deliveries keep publication order
            if subscribers and not self._closed:
                self._foreground.submit(self._deliver, subscribers, state)
        return state

    def flush(self, timeout: Optional[float] = None):
        """Wait until every snapshot published so far has been delivered."""
        marker: Future = self._foreground.submit(lambda: None)
        marker.result(timeout=timeout)

    def close(self):
        with self._lock:
            self._closed = True
        self._foreground.shutdown(wait=True)

    @staticmethod
    def _deliver(subscribers: List[Subscriber], state: EngineState):
        for callback in subscribers:
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber raised")
