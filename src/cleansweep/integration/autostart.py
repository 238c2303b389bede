"""
Start-at-login registration through an XDG autostart desktop entry.
"""

import sys
import logging
from pathlib import Path
from typing import Optional, List

from ..utils.paths import config_home

logger = logging.getLogger(__name__)

DESKTOP_ENTRY_NAME = "cleansweep.desktop"


class AutostartError(OSError):
    """Raised when the autostart entry cannot be written or removed."""


class AutostartRegistrar:
    """Register or unregister the organizer to run at user login."""

    def __init__(
        self,
        autostart_dir: Optional[Path] = None,
        command: Optional[List[str]] = None,
    ):
        """Initialize registrar.

        Args:
            autostart_dir: Directory holding autostart entries
                (defaults to $XDG_CONFIG_HOME/autostart)
            command: Command line to launch; defaults to this interpreter
                running the cleansweep module
        """
        self.autostart_dir = autostart_dir or config_home() / "autostart"
        self.command = command or [sys.executable, "-m", "cleansweep"]

    @property
    def entry_path(self) -> Path:
        return self.autostart_dir / DESKTOP_ENTRY_NAME

    def _desktop_entry(self) -> str:
        return "\n".join(
            [
                "[Desktop Entry]",
                "Type=Application",
                "Name=CleanSweep",
                "Comment=Organize new files in the watched folder",
                f"Exec={' '.join(self.command)}",
                "X-GNOME-Autostart-enabled=true",
                "NoDisplay=true",
                "",
            ]
        )

    def enable(self):
        """Write the autostart entry."""
        try:
            self.autostart_dir.mkdir(parents=True, exist_ok=True)
            self.entry_path.write_text(self._desktop_entry(), encoding="utf-8")
        except OSError as e:
            raise AutostartError(f"Could not enable autostart: {e}") from e
        logger.info(f"Autostart enabled: {self.entry_path}")

    def disable(self):
        """Remove the autostart entry if present."""
        try:
            self.entry_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise AutostartError(f"Could not disable autostart: {e}") from e
        logger.info("Autostart disabled")

    def is_enabled(self) -> bool:
        return self.entry_path.exists()
