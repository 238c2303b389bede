"""
Main application controller for CleanSweep.
Wires configuration, logging and the organizer engine into a background process.
"""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from .organization_logic.engine import OrganizerEngine
from .organization_logic.state import EngineState
from .utils.config_manager import ConfigManager
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


class CleanSweepApp:
    """Application controller that owns the engine for the process lifetime."""

    def __init__(
        self,
        config_file: Optional[str] = None,
        cli_args: Optional[argparse.Namespace] = None,
    ):
        """Initialize the application.

        Args:
            config_file: Path to configuration file
            cli_args: Parsed command line arguments layered over the config
        """
        self.config_file = config_file
        self.cli_args = cli_args
        self.config_manager: Optional[ConfigManager] = None
        self.engine: Optional[OrganizerEngine] = None
        self._last_status: Optional[str] = None
        self._is_initialized = False

    def initialize(self):
        """Load configuration, configure logging and build the engine."""
        if self._is_initialized:
            return

        try:
            self.config_manager = ConfigManager(
                config_file=Path(self.config_file) if self.config_file else None,
                cli_args=self.cli_args,
            )
            setup_logging(self.config_manager.get("logging", {}))

            self.engine = OrganizerEngine(config=self.config_manager)
            self.engine.subscribe(self._on_state)

            self._is_initialized = True
            logger.info("Application initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize application: {str(e)}")
            raise

    def _on_state(self, state: EngineState):
        if state.status_message and state.status_message != self._last_status:
            level = logging.ERROR if state.is_error else logging.INFO
            logger.log(level, f"[status] {state.status_message}")
        self._last_status = state.status_message

    def run(
        self,
        watch_override: Optional[str] = None,
        use_defaults: bool = False,
        once: bool = False,
    ) -> bool:
        """Run the organizer.

        Args:
            watch_override: Folder to watch instead of the saved one
            use_defaults: Load the default rules and leave first-run state
            once: Organize the folder a single time and return

        Returns:
            True if the run finished without an error status
        """
        self.initialize()
        engine = self.engine

        try:
            engine.start()

            if watch_override:
                engine.set_watched_folder(watch_override)

            if use_defaults:
                engine.load_default_rules()
                if not once:
                    engine.complete_first_run_setup()

            if once:
                moved = engine.scan_now().result()
                logger.info(f"Single pass finished: {len(moved)} file(s) moved")
                return not engine.state.is_error

            if engine.is_first_run and not use_defaults:
                logger.warning(
                    "No saved setup found; run with --use-defaults to begin organizing"
                )

            while True:
                time.sleep(1)

        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
            return True
        finally:
            engine.shutdown()


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="Watch a folder and file new arrivals into subfolders by extension"
    )

    parser.add_argument("--config", help="Path to configuration file", default=None)

    parser.add_argument("--watch", help="Folder to watch", default=None)

    parser.add_argument(
        "--settings-dir",
        dest="settings_dir",
        help="Directory holding the settings file",
        default=None,
    )

    parser.add_argument(
        "--use-defaults",
        action="store_true",
        help="Load the default rules and finish first-run setup",
    )

    parser.add_argument(
        "--once", action="store_true", help="Organize the folder once and exit"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
        default=None,
    )

    parser.add_argument("--log-file", help="Write logs to this file", default=None)

    return parser


def main(argv=None):
    """Main entry point for the application."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    app = CleanSweepApp(config_file=args.config, cli_args=args)

    try:
        success = app.run(
            watch_override=args.watch,
            use_defaults=args.use_defaults,
            once=args.once,
        )
        sys.exit(0 if success else 1)

    except ValueError as e:
        logger.error(f"Application failed: {str(e)}")
        sys.exit(2)


if __name__ == "__main__":
    main()
