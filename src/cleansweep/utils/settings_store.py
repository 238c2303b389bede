"""
Durable storage of user settings (rules, watched folder, first-run flag).

The settings file is rewritten through a backup-then-replace sequence so that a
failed save never leaves a truncated primary file behind.
"""

import os
import json
import shutil
import logging
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import yaml

from ..organization_logic.rules import OrganizingRule, is_valid_folder_name
from .paths import SETTINGS_FILE_NAME, BACKUP_SUFFIX, app_data_directory

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Base class for settings persistence failures."""

    description = "Settings error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        message = self.description
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CannotFindAppDataDirectory(SettingsError):
    description = "Could not locate the application data directory"


class CannotCreateDirectory(SettingsError):
    description = "Could not create settings directory"


class CannotReadFile(SettingsError):
    description = "Could not read settings file"


class CannotWriteFile(SettingsError):
    description = "Could not write settings file"


class InvalidData(SettingsError):
    description = "Settings file contains invalid data"


class InvalidSettings(SettingsError):
    description = "Settings validation failed"


@dataclass
class AppSettings:
    """Persisted snapshot of the user's configuration."""

    rules: List[OrganizingRule]
    watched_folder_path: str
    is_first_run: bool = True
    last_saved: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "watched_folder_path": self.watched_folder_path,
            "last_saved": self.last_saved.isoformat(),
            "is_first_run": self.is_first_run,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppSettings":
        """Rebuild settings from decoded file content.

        Raises:
            KeyError, TypeError, ValueError: If the content has the wrong shape
        """
        if not isinstance(data, dict):
            raise TypeError("Settings document must be a mapping")

        rules = data["rules"]
        if not isinstance(rules, list):
            raise TypeError("Settings rules must be a list")
        watched_folder_path = data["watched_folder_path"]
        if not isinstance(watched_folder_path, str):
            raise TypeError("Settings watched_folder_path must be a string")

        last_saved = data.get("last_saved")
        return cls(
            rules=[OrganizingRule.from_dict(rule) for rule in rules],
            watched_folder_path=watched_folder_path,
            is_first_run=bool(data.get("is_first_run", True)),
            last_saved=(
                datetime.fromisoformat(last_saved) if last_saved else datetime.now()
            ),
        )


class SettingsStore:
    """Load, validate, back up and save the settings file."""

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        file_name: str = SETTINGS_FILE_NAME,
    ):
        """Initialize settings store.

        Args:
            directory: Directory holding the settings file; defaults to the
                per-user application data directory
            file_name: Settings file name; a .yaml/.yml name stores YAML
        """
        self._directory = Path(directory) if directory else None
        self.file_name = file_name

    @property
    def directory(self) -> Path:
        if self._directory is not None:
            return self._directory
        try:
            return app_data_directory()
        except (RuntimeError, KeyError) as e:
            raise CannotFindAppDataDirectory(str(e))

    @property
    def settings_path(self) -> Path:
        return self.directory / self.file_name

    @property
    def backup_path(self) -> Path:
        path = self.settings_path
        return path.with_name(path.name + BACKUP_SUFFIX)

    def load(self) -> Optional[AppSettings]:
        """Load settings from disk.

        Returns:
            AppSettings, or None if no settings file exists yet

        Raises:
            CannotReadFile: If the file exists but cannot be read
            InvalidData: If the file cannot be decoded
        """
        return self._read(self.settings_path)

    def load_backup(self) -> Optional[AppSettings]:
        """Load the settings kept from the previous save, if any."""
        return self._read(self.backup_path)

    def save(self, settings: AppSettings):
        """Validate and persist settings.

        Args:
            settings: Settings to write

        Raises:
            InvalidSettings: If validation fails; nothing is written
            CannotFindAppDataDirectory, CannotCreateDirectory: If the settings
                directory is unavailable
            CannotWriteFile: If the backup or the write fails; the previous
                primary file is left in place
        """
        errors = self.validate(settings)
        if errors:
            raise InvalidSettings("; ".join(errors))

        settings_path = self._ensure_directory() / self.file_name

        try:
            self._create_backup(settings_path)
        except OSError as e:
            raise CannotWriteFile(f"backup failed: {e}")

        try:
            with self._atomic_write(settings_path) as f:
                self._encode(settings.to_dict(), f)
        except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
            raise CannotWriteFile(str(e))

        logger.info(f"Settings saved to {settings_path}")

    def clear(self):
        """Delete the settings file if present."""
        settings_path = self.settings_path
        if not settings_path.exists():
            return
        try:
            settings_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise CannotWriteFile(str(e))
        logger.info(f"Settings cleared: {settings_path}")

    @staticmethod
    def validate(settings: AppSettings) -> List[str]:
        """Validate settings and return a list of errors.

        An empty rule list is valid so that first-run state can be saved.
        """
        errors = []
        for rule in settings.rules:
            errors.extend(SettingsStore.validate_rule(rule))
        return errors

    @staticmethod
    def validate_rule(rule: OrganizingRule) -> List[str]:
        """Validate a single rule and return a list of errors."""
        errors = []

        if not rule.folder_name:
            errors.append("Rule must have a folder name")
        elif not is_valid_folder_name(rule.folder_name):
            errors.append(f"Invalid folder name: {rule.folder_name}")

        if not rule.extensions:
            errors.append(f"Rule '{rule.folder_name}' must have extensions")

        for ext in rule.extensions:
            if not ext.startswith(".") or len(ext) < 2:
                errors.append(f"Invalid extension '{ext}' in rule '{rule.folder_name}'")

        return errors

    def _read(self, path: Path) -> Optional[AppSettings]:
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise CannotReadFile(str(e))

        try:
            return AppSettings.from_dict(self._decode(content))
        except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Could not decode {path}: {e}")
            raise InvalidData(str(e))

    def _ensure_directory(self) -> Path:
        directory = self.directory
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CannotCreateDirectory(f"{directory}: {e}")
        return directory

    def _create_backup(self, settings_path: Path):
        """Copy the current settings file to its .backup sibling."""
        if not settings_path.exists():
            return

        backup_path = settings_path.with_name(settings_path.name + BACKUP_SUFFIX)
        shutil.copy2(settings_path, backup_path)
        logger.debug(f"Settings backup written to {backup_path}")

    @contextmanager
    def _atomic_write(self, target: Path):
        """Write to a temporary sibling and rename it over the target."""
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yield f
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def _is_yaml(self) -> bool:
        return Path(self.file_name).suffix in (".yaml", ".yml")

    def _encode(self, data: Dict[str, Any], f):
        if self._is_yaml():
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)

    def _decode(self, content: str) -> Any:
        if self._is_yaml():
            return yaml.safe_load(content)
        return json.loads(content)
