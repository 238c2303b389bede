"""
Organizer engine: owns the rules, watched folder, move history and status,
and drives the watch-debounce-classify-move loop.

All directory listing and moves run on one background worker thread, so scans
never overlap each other. Observable state is published as immutable
snapshots through a StateContainer.
"""

import os
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Union

from watchdog.observers import Observer

from ..file_access.history import FileMoveRecord, MoveHistory
from ..file_access.mover import CollisionSafeMover, MoveError
from ..file_access.watcher import FolderWatcher, WatchError
from ..integration.autostart import AutostartRegistrar
from ..utils.config_manager import ConfigManager
from ..utils.error_handler import ErrorHandler
from ..utils.paths import default_watched_folder
from ..utils.settings_store import AppSettings, SettingsError, SettingsStore
from .classifier import Classifier
from .rules import OrganizingRule, RuleSet
from .state import EngineState, StateContainer

logger = logging.getLogger(__name__)


class OrganizerEngine:
    """Orchestrate settings, rules, watching and moving for one folder."""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        settings_store: Optional[SettingsStore] = None,
        autostart: Optional[AutostartRegistrar] = None,
        mover: Optional[CollisionSafeMover] = None,
        observer_factory: Callable = Observer,
    ):
        """Initialize the engine. Nothing is loaded or watched until start().

        Args:
            config: Runtime configuration (timings, history size, paths)
            settings_store: Persistence for rules and watched folder
            autostart: Start-at-login registrar
            mover: Collision-safe mover used by scans
            observer_factory: Creates the watchdog observer for the watcher
        """
        self.config = config or ConfigManager()
        self.settings_store = settings_store or SettingsStore(
            directory=self.config.get("settings.directory"),
            file_name=self.config.get("settings.file_name", "settings.json"),
        )
        self.autostart = autostart or AutostartRegistrar()
        self.mover = mover or CollisionSafeMover()
        self.error_handler = ErrorHandler()
        self.history = MoveHistory(capacity=self.config.get("history.max_recent_moves", 10))
        self.rules = RuleSet()

        default_folder = self.config.get("watch.default_folder")
        self._watched_folder = self._absolute(default_folder or default_watched_folder())
        self._is_first_run = True

        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._closed = False

        self._worker_thread_id: Optional[int] = None
        self._worker = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="cleansweep-scan",
            initializer=self._register_worker,
        )

        self._status_generation = 0
        self._status_timer: Optional[threading.Timer] = None
        self._startup_timer: Optional[threading.Timer] = None

        self.watcher = FolderWatcher(
            on_change=self.request_scan,
            initial_scan=self._initial_scan,
            debounce_interval=self.config.get("monitoring.debounce_interval", 0.5),
            observer_factory=observer_factory,
        )
        self._container = StateContainer(
            EngineState(watched_folder=str(self._watched_folder))
        )

    # Observable state

    @property
    def state(self) -> EngineState:
        return self._container.state

    def subscribe(self, callback: Callable[[EngineState], None]) -> Callable[[], None]:
        """Receive a snapshot every time engine state changes."""
        return self._container.subscribe(callback)

    @property
    def is_monitoring(self) -> bool:
        return self.watcher.is_active

    @property
    def is_first_run(self) -> bool:
        with self._lock:
            return self._is_first_run

    @property
    def watched_folder(self) -> Path:
        with self._lock:
            return self._watched_folder

    @property
    def recent_moves(self) -> List[FileMoveRecord]:
        return list(self.history.snapshot())

    # Lifecycle

    def start(self):
        """Load settings and, unless this is the first run, begin monitoring."""
        self._load_settings()
        self._publish(start_on_login=self._query_autostart())
        self.show_status(f"Watched folder: {self.watched_folder}")

        if not self.is_first_run:
            self.start_monitoring()

    def shutdown(self):
        """Stop monitoring, cancel pending timers and release worker threads."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for timer in (self._status_timer, self._startup_timer):
                if timer is not None:
                    timer.cancel()
            self._status_timer = None
            self._startup_timer = None

        self.watcher.stop()
        self._worker.shutdown(wait=True)
        self._container.flush()
        self._container.close()
        logger.info("Organizer engine shut down")

    def wait_for_idle(self, timeout: Optional[float] = None):
        """Block until queued scans and state deliveries have completed."""
        self._worker.submit(lambda: None).result(timeout=timeout)
        self._container.flush(timeout=timeout)

    # Settings

    def _load_settings(self):
        try:
            settings = self.settings_store.load()
            rules = RuleSet(settings.rules) if settings else RuleSet()
        except (SettingsError, ValueError) as e:
            self._report_error(e, "Failed to load settings")
            settings = None
            rules = RuleSet()

        with self._lock:
            self.rules = rules
            if settings:
                self._watched_folder = self._absolute(settings.watched_folder_path)
                self._is_first_run = settings.is_first_run
            else:
                self._is_first_run = True

        logger.info(
            f"Settings loaded: {len(rules)} rules, first run: {self._is_first_run}"
        )
        self._publish()

    def _save_settings(self) -> bool:
        with self._lock:
            settings = AppSettings(
                rules=self.rules.to_list(),
                watched_folder_path=str(self._watched_folder),
                is_first_run=self._is_first_run,
            )

        with self._save_lock:
            try:
                self.settings_store.save(settings)
            except SettingsError as e:
                self._report_error(e, "Failed to save settings")
                return False
        return True

    def set_watched_folder(self, path: Union[str, Path]):
        """Change the watched folder. Monitoring is not restarted here."""
        with self._lock:
            self._watched_folder = self._absolute(path)
            folder = self._watched_folder

        self._save_settings()
        self._publish()
        self.show_status(f"Changed watched folder to: {folder}")

    def complete_first_run_setup(self):
        """Leave first-run state and start monitoring after a grace delay."""
        with self._lock:
            self._is_first_run = False

        self._save_settings()
        self._publish()

        delay = self.config.get("monitoring.start_delay_after_setup", 3.5)
        with self._lock:
            if self._closed:
                return
            if self._startup_timer is not None:
                self._startup_timer.cancel()
            timer = threading.Timer(delay, self._start_after_setup)
            timer.daemon = True
            self._startup_timer = timer
        timer.start()

    def _start_after_setup(self):
        with self._lock:
            self._startup_timer = None
            if self._closed:
                return
        self.start_monitoring()

    def clear_all_settings(self) -> bool:
        """Stop monitoring, forget all rules and delete the settings file."""
        with self._lock:
            if self._startup_timer is not None:
                self._startup_timer.cancel()
                self._startup_timer = None

        self.stop_monitoring()

        with self._lock:
            self.rules.clear()
            self._is_first_run = True

        try:
            self.settings_store.clear()
        except SettingsError as e:
            self._report_error(e, "Failed to clear settings")
            self._publish()
            return False

        self._publish()
        self.show_status("Settings cleared")
        return True

    # Rules

    def add_rule(self, rule: OrganizingRule) -> bool:
        """Append a rule, persist, and rescan so it applies right away.

        Returns:
            False if the rule was refused (invalid or duplicate folder)
        """
        errors = SettingsStore.validate_rule(rule)
        if errors:
            self.show_status("; ".join(errors), is_error=True)
            return False

        with self._lock:
            duplicate = self.rules.folder_name_taken(rule.folder_name)
            if not duplicate:
                self.rules.append(rule)

        if duplicate:
            self.show_status(
                f"A rule for '{rule.folder_name}' already exists", is_error=True
            )
            return False

        self._save_settings()
        self._publish()
        self.show_status("Rule added")

        if self.config.get("monitoring.rescan_on_rule_add", True):
            self.request_scan()
        return True

    def update_rule(self, index: int, rule: OrganizingRule) -> bool:
        """Replace the rule at an index, keeping the original rule's id."""
        errors = SettingsStore.validate_rule(rule)
        if errors:
            self.show_status("; ".join(errors), is_error=True)
            return False

        with self._lock:
            if not 0 <= index < len(self.rules):
                problem = f"No rule at position {index}"
            elif self.rules.folder_name_taken(rule.folder_name, ignore_index=index):
                problem = f"A rule for '{rule.folder_name}' already exists"
            else:
                problem = None
                self.rules.replace_at(index, replace(rule, id=self.rules[index].id))

        if problem:
            self.show_status(problem, is_error=True)
            return False

        self._save_settings()
        self._publish()
        self.show_status("Rule updated")
        return True

    def remove_rule(self, index: int) -> bool:
        with self._lock:
            if not 0 <= index < len(self.rules):
                removed = None
            else:
                removed = self.rules.remove_at(index)

        if removed is None:
            self.show_status(f"No rule at position {index}", is_error=True)
            return False

        self._save_settings()
        self._publish()
        self.show_status("Rule removed")
        return True

    def load_default_rules(self):
        with self._lock:
            self.rules.load_defaults()

        self._save_settings()
        self._publish()
        self.show_status("Default rules loaded")

    # Monitoring

    def start_monitoring(self):
        """Scan once and subscribe to changes. No-op while monitoring."""
        if self.watcher.is_active or self._closed:
            return

        try:
            self.watcher.start(self.watched_folder)
        except WatchError as e:
            self._report_error(e, "")
            self._publish()
            return

        with self._lock:
            closed = self._closed
        if closed:
            # shutdown() ran while the watch was being opened
            self.watcher.stop()
            return

        self._publish()
        self.show_status("Monitoring started - watching for new files")

    def stop_monitoring(self):
        was_active = self.watcher.is_active
        self.watcher.stop()
        self._publish()
        if was_active:
            self.show_status("Monitoring stopped")

    def set_start_on_login(self, enabled: bool):
        try:
            if enabled:
                self.autostart.enable()
            else:
                self.autostart.disable()
        except OSError as e:
            self._report_error(e, "Failed to change auto-start")
            self._publish(start_on_login=self._query_autostart())
            return

        self._publish(start_on_login=enabled)
        self.show_status("Auto-start enabled" if enabled else "Auto-start disabled")

    def _query_autostart(self) -> bool:
        try:
            return bool(self.autostart.is_enabled())
        except OSError as e:
            self._report_error(e, "Could not query auto-start")
            return False

    # Scanning

    def scan_now(self) -> Future:
        """Queue an out-of-band scan.

        Returns:
            Future resolving to the list of moves the scan made
        """
        self.show_status("Scanning for files")
        return self._submit_scan(True)

    def request_scan(self) -> Future:
        """Queue a scan on the background worker."""
        return self._submit_scan()

    def _initial_scan(self):
        # run inline when already on the worker to avoid waiting on ourselves
        if threading.get_ident() == self._worker_thread_id:
            return self._scan_files()
        return self._submit_scan().result()

    def _submit_scan(self, announce_empty: bool = False) -> Future:
        """Queue a scan, or resolve to no moves once the engine is shut down."""
        with self._lock:
            # shutdown() sets _closed under this lock before stopping the worker
            if self._closed:
                logger.debug("Scan skipped: engine is shut down")
                future: Future = Future()
                future.set_result([])
                return future
            future = self._worker.submit(self._scan_files, announce_empty)

        future.add_done_callback(self._log_scan_failure)
        return future

    @staticmethod
    def _log_scan_failure(future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Scan failed: {error}", exc_info=error)

    def _register_worker(self):
        self._worker_thread_id = threading.get_ident()

    def _scan_files(self, announce_empty: bool = False) -> List[FileMoveRecord]:
        """Organize every matching file directly inside the watched folder."""
        with self._lock:
            root = self._watched_folder
            classifier = Classifier(RuleSet(self.rules.to_list()))

        try:
            entries = sorted(root.iterdir())
        except OSError as e:
            self._report_error(e, "Error scanning directory")
            return []

        files = [
            entry
            for entry in entries
            if not entry.name.startswith(".") and not entry.is_dir()
        ]

        if not files:
            if announce_empty:
                self.show_status("No files to organize")
            return []

        moved = []
        for entry in files:
            rule = classifier.classify_path(entry)
            if rule is None:
                continue

            try:
                record = self.mover.move(entry, rule.folder_name, root)
            except MoveError as e:
                self._report_error(e, "")
                continue

            self.history.record(record)
            moved.append(record)
            self._publish()

        if moved:
            self.show_status(f"Organized {len(moved)} file(s)")
        elif announce_empty:
            self.show_status("No files to organize")
        return moved

    def clear_recent_moves(self):
        self.history.clear()
        self._publish()

    # Status

    def show_status(self, message: str, is_error: bool = False):
        """Publish a transient status message that clears itself."""
        if is_error:
            logger.warning(message)
        else:
            logger.info(message)
        self._set_status(message, is_error)

    def _report_error(self, error: Exception, context: str):
        message = self.error_handler.handle_error(error, context)
        self._set_status(message, True)

    def _set_status(self, message: str, is_error: bool):
        duration = self.config.get("status.display_duration", 5.0)
        with self._lock:
            self._status_generation += 1
            generation = self._status_generation
            if self._status_timer is not None:
                self._status_timer.cancel()
                self._status_timer = None
            self._container.update(status_message=message, is_error=is_error)
            if self._closed:
                return
            timer = threading.Timer(duration, self._expire_status, args=(generation,))
            timer.daemon = True
            self._status_timer = timer
        timer.start()

    def _expire_status(self, generation: int):
        with self._lock:
            # a newer message owns the channel now
            if generation != self._status_generation:
                return
            self._status_timer = None
            self._container.update(status_message=None, is_error=False)

    # Helpers

    def _publish(self, **changes) -> EngineState:
        with self._lock:
            snapshot = {
                "rules": tuple(self.rules.to_list()),
                "watched_folder": str(self._watched_folder),
                "recent_moves": self.history.snapshot(),
                "is_first_run": self._is_first_run,
                "is_monitoring": self.watcher.is_active,
            }
            snapshot.update(changes)
            return self._container.update(**snapshot)

    @staticmethod
    def _absolute(path: Union[str, Path]) -> Path:
        return Path(os.path.abspath(os.path.expanduser(str(path))))
