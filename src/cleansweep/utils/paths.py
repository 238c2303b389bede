"""Path constants and per-user locations."""
import os
from pathlib import Path

APP_NAME = "cleansweep"
SETTINGS_FILE_NAME = "settings.json"
BACKUP_SUFFIX = ".backup"


def home_directory() -> Path:
    """Return the user's home directory, raising RuntimeError if unknown."""
    return Path.home()


def app_data_directory() -> Path:
    """Per-user data directory ($XDG_DATA_HOME/cleansweep)."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / APP_NAME
    return home_directory() / ".local" / "share" / APP_NAME


def config_home() -> Path:
    config_dir = os.environ.get("XDG_CONFIG_HOME")
    if config_dir:
        return Path(config_dir)
    return home_directory() / ".config"


def default_watched_folder() -> Path:
    """The Downloads folder, watched until the user picks another."""
    return home_directory() / "Downloads"
