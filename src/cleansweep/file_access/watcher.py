"""
File Watcher Module

Monitors the watched directory (non-recursively) for new or changed entries
using the watchdog library. Bursts of events are debounced into a single
change notification once the directory has been quiet for a short interval.
"""

import os
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Union

from watchdog.observers import Observer
from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_INTERVAL = 0.5


class WatchError(Exception):
    """Raised when the watched directory cannot be subscribed to."""


class ChangeEventHandler(FileSystemEventHandler):
    """
    Forward relevant file system events to a change callback.

    Deletions and plain opens are ignored, as are hidden entries.
    """

    RELEVANT_EVENTS = {
        EVENT_TYPE_CREATED,
        EVENT_TYPE_MODIFIED,
        EVENT_TYPE_MOVED,
        EVENT_TYPE_CLOSED,
    }

    def __init__(self, on_change: Callable[[], None]):
        super().__init__()
        self.on_change = on_change

    def _should_process(self, event: FileSystemEvent) -> bool:
        if event.event_type not in self.RELEVANT_EVENTS:
            return False

        path = getattr(event, "dest_path", "") or event.src_path
        name = Path(os.fsdecode(path)).name
        return not name.startswith(".")

    def on_any_event(self, event: FileSystemEvent):
        if self._should_process(event):
            logger.debug(f"Change detected: {event.event_type} {event.src_path}")
            self.on_change()


class FolderWatcher:
    """
    Watch a single directory and request scans after quiet periods.

    The watcher is either idle (no observer) or active (one observer with one
    watch on the directory). Starting an active watcher and stopping an idle
    one are both no-ops.

    Attributes:
        on_change (Callable): Called once per debounced burst of events
        initial_scan (Callable): Called synchronously by start() before subscribing
        debounce_interval (float): Quiet period in seconds before on_change fires
    """

    def __init__(
        self,
        on_change: Callable[[], Any],
        initial_scan: Optional[Callable[[], Any]] = None,
        debounce_interval: float = DEFAULT_DEBOUNCE_INTERVAL,
        observer_factory: Callable[[], Any] = Observer,
    ):
        """
        Initialize folder watcher.

        Args:
            on_change: Callback invoked when a debounced change fires
            initial_scan: Optional callback run when monitoring starts
            debounce_interval: Seconds to wait after the last event
            observer_factory: Creates the watchdog observer
        """
        self.on_change = on_change
        self.initial_scan = initial_scan
        self.debounce_interval = debounce_interval
        self._observer_factory = observer_factory
        self._observer = None
        self._path: Optional[Path] = None
        self._lock = threading.RLock()

        self._timer_lock = threading.Lock()
        self._pending_timer: Optional[threading.Timer] = None
        self._generation = 0
        self._accepting = False

    @property
    def is_active(self) -> bool:
        return self._observer is not None

    @property
    def watched_path(self) -> Optional[Path]:
        return self._path

    @property
    def watch_count(self) -> int:
        """Number of live watch handles (0 or 1)."""
        observer = self._observer
        if observer is None:
            return 0
        return len(observer.emitters)

    @property
    def has_pending_scan(self) -> bool:
        with self._timer_lock:
            return self._pending_timer is not None

    def start(self, path: Union[str, Path]):
        """
        Start watching a directory.

        Args:
            path: Directory to watch

        Raises:
            WatchError: If the directory cannot be watched; the watcher stays idle
        """
        with self._lock:
            if self._observer is not None:
                logger.debug(f"Watcher already active on {self._path}")
                return

            path = Path(path)

            if self.initial_scan:
                self.initial_scan()

            if not path.is_dir():
                raise WatchError(f"Failed to open directory for monitoring: {path}")

            observer = self._observer_factory()
            try:
                observer.schedule(
                    ChangeEventHandler(self.notify_change), str(path), recursive=False
                )
                observer.start()
            except OSError as e:
                self._discard(observer)
                raise WatchError(
                    f"Failed to open directory for monitoring: {path} ({e})"
                ) from e

            with self._timer_lock:
                self._accepting = True
            self._observer = observer
            self._path = path
            logger.info(f"Monitoring: {path}")

    def stop(self):
        """Stop watching. Safe to call when already idle."""
        with self._lock:
            with self._timer_lock:
                self._accepting = False
                self._cancel_pending()

            observer = self._observer
            if observer is None:
                return

            self._observer = None
            path, self._path = self._path, None
            self._discard(observer)
            logger.info(f"Stopped monitoring: {path}")

    def notify_change(self):
        """Re-arm the debounce timer; only one delayed scan is ever pending."""
        with self._timer_lock:
            if not self._accepting:
                return
            self._cancel_pending()
            self._generation += 1
            timer = threading.Timer(
                self.debounce_interval, self._fire, args=(self._generation,)
            )
            timer.daemon = True
            self._pending_timer = timer
            timer.start()

    def _fire(self, generation: int):
        with self._timer_lock:
            if generation != self._generation or not self._accepting:
                return
            self._pending_timer = None

        try:
            self.on_change()
        except Exception:
            logger.exception("Change callback failed")

    def _cancel_pending(self):
        # caller holds _timer_lock
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None
        self._generation += 1

    @staticmethod
    def _discard(observer):
        observer.stop()
        if observer.is_alive():
            observer.join()
