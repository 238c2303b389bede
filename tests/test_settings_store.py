"""
Unit tests for settings persistence.
"""

import json
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from cleansweep.organization_logic.rules import OrganizingRule, default_rules
from cleansweep.utils.settings_store import (
    AppSettings,
    CannotCreateDirectory,
    CannotReadFile,
    CannotWriteFile,
    InvalidData,
    InvalidSettings,
    SettingsError,
    SettingsStore,
)


class TestSettingsStore:
    """Test loading, saving and backing up settings."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.settings_dir = self.temp_dir / "app-data"
        self.store = SettingsStore(directory=self.settings_dir)
        self.settings = AppSettings(
            rules=default_rules(),
            watched_folder_path=str(self.temp_dir / "Downloads"),
            is_first_run=False,
        )

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def test_load_missing_returns_none(self):
        """Test load missing returns none."""
        assert self.store.load() is None
        assert self.store.load_backup() is None

    def test_save_and_load(self):
        """Test save and load."""
        self.store.save(self.settings)

        loaded = self.store.load()
        assert loaded.watched_folder_path == self.settings.watched_folder_path
        assert loaded.is_first_run is False
        assert [r.folder_name for r in loaded.rules] == [
            r.folder_name for r in self.settings.rules
        ]
        assert [r.id for r in loaded.rules] == [r.id for r in self.settings.rules]
        assert loaded.last_saved == self.settings.last_saved

    def test_saved_file_is_readable_json(self):
        """Test saved file is readable json."""
        self.store.save(self.settings)

        with open(self.store.settings_path) as f:
            data = json.load(f)

        assert set(data) == {"rules", "watched_folder_path", "last_saved", "is_first_run"}
        assert data["rules"][0]["folder_name"] == "Music"

    def test_directory_created_lazily(self):
        """Test directory created lazily."""
        assert not self.settings_dir.exists()
        self.store.save(self.settings)
        assert self.settings_dir.is_dir()

    def test_no_temporary_files_left(self):
        """Test no temporary files left."""
        self.store.save(self.settings)
        self.store.save(self.settings)

        names = sorted(p.name for p in self.settings_dir.iterdir())
        assert names == ["settings.json", "settings.json.backup"]

    def test_backup_holds_previous_save(self):
        """Test backup holds previous save."""
        self.store.save(self.settings)
        first_path = self.settings.watched_folder_path

        self.settings.watched_folder_path = str(self.temp_dir / "Desktop")
        self.store.save(self.settings)

        assert self.store.load().watched_folder_path == str(self.temp_dir / "Desktop")
        assert self.store.load_backup().watched_folder_path == first_path

    def test_first_save_writes_no_backup(self):
        """Test first save writes no backup."""
        self.store.save(self.settings)
        assert not self.store.backup_path.exists()

    def test_invalid_settings_leave_file_untouched(self):
        """Test invalid settings leave file untouched."""
        self.store.save(self.settings)
        before = self.store.settings_path.read_text()

        self.settings.rules.append(OrganizingRule(folder_name="", extensions=[]))
        with pytest.raises(InvalidSettings):
            self.store.save(self.settings)

        assert self.store.settings_path.read_text() == before
        assert not self.store.backup_path.exists()

    def test_extension_without_dot_is_rejected(self):
        """Test extension without dot is rejected."""
        self.store.save(self.settings)
        before = self.store.settings_path.read_text()

        rejected = AppSettings(
            rules=[OrganizingRule(folder_name="Docs", extensions=["pdf"])],
            watched_folder_path=self.settings.watched_folder_path,
        )
        with pytest.raises(InvalidSettings, match="pdf"):
            self.store.save(rejected)

        assert self.store.settings_path.read_text() == before

    def test_empty_rules_are_valid(self):
        """Test empty rules are valid."""
        settings = AppSettings(rules=[], watched_folder_path="/tmp")
        assert SettingsStore.validate(settings) == []

    def test_validate_rule(self):
        """Test validate rule."""
        assert SettingsStore.validate_rule(default_rules()[0]) == []

        errors = SettingsStore.validate_rule(
            OrganizingRule(folder_name="../up", extensions=["."])
        )
        assert len(errors) == 2

    def test_corrupt_file_raises_invalid_data(self):
        """Test corrupt file raises invalid data."""
        self.settings_dir.mkdir()
        self.store.settings_path.write_text("{not json")

        with pytest.raises(InvalidData):
            self.store.load()

    def test_wrong_shape_raises_invalid_data(self):
        """Test wrong shape raises invalid data."""
        self.settings_dir.mkdir()
        self.store.settings_path.write_text(json.dumps({"rules": []}))

        with pytest.raises(InvalidData):
            self.store.load()

    def test_wrong_value_types_raise_invalid_data(self):
        """Test wrong value types raise invalid data."""
        self.settings_dir.mkdir()
        documents = [
            {"rules": [{"folder_name": "Docs", "extensions": [7]}]},
            {"rules": [{"folder_name": "Docs", "extensions": [None]}]},
            {"rules": [{"folder_name": "Docs", "extensions": "pdf"}]},
            {"rules": [None]},
            {"rules": "Docs"},
        ]
        for document in documents:
            document["watched_folder_path"] = "/tmp"
            self.store.settings_path.write_text(json.dumps(document))

            with pytest.raises(InvalidData):
                self.store.load()

    def test_non_mapping_document_raises_invalid_data(self):
        """Test non mapping document raises invalid data."""
        self.settings_dir.mkdir()
        self.store.settings_path.write_text("[1, 2, 3]")

        with pytest.raises(InvalidData):
            self.store.load()

    def test_unreadable_file_raises_cannot_read(self):
        """Test unreadable file raises cannot read."""
        self.store.save(self.settings)

        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(CannotReadFile):
                self.store.load()

    def test_directory_blocked_by_file(self):
        """Test directory blocked by file."""
        self.settings_dir.write_text("not a directory")

        with pytest.raises(CannotCreateDirectory):
            self.store.save(self.settings)

    def test_failed_write_keeps_previous_file(self):
        """Test failed write keeps previous file."""
        self.store.save(self.settings)
        before = self.store.settings_path.read_text()

        with patch("cleansweep.utils.settings_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CannotWriteFile):
                self.store.save(self.settings)

        assert self.store.settings_path.read_text() == before
        names = sorted(p.name for p in self.settings_dir.iterdir())
        assert names == ["settings.json", "settings.json.backup"]

    def test_failed_backup_aborts_save(self):
        """Test failed backup aborts save."""
        self.store.save(self.settings)
        before = self.store.settings_path.read_text()

        self.settings.is_first_run = True
        with patch("cleansweep.utils.settings_store.shutil.copy2", side_effect=OSError("denied")):
            with pytest.raises(CannotWriteFile, match="backup"):
                self.store.save(self.settings)

        assert self.store.settings_path.read_text() == before

    def test_clear(self):
        """Test clear."""
        self.store.save(self.settings)
        self.store.clear()

        assert not self.store.settings_path.exists()
        assert self.store.load() is None

        # clearing twice is fine
        self.store.clear()

    def test_errors_share_base_class(self):
        """Test errors share base class."""
        for error in (CannotReadFile, CannotWriteFile, InvalidData, InvalidSettings):
            assert issubclass(error, SettingsError)

        assert str(InvalidData("bad")) == "Settings file contains invalid data: bad"

    def test_yaml_settings_file(self):
        """Test yaml settings file."""
        store = SettingsStore(directory=self.settings_dir, file_name="settings.yaml")
        store.save(self.settings)

        with open(store.settings_path) as f:
            data = yaml.safe_load(f)
        assert data["watched_folder_path"] == self.settings.watched_folder_path

        assert store.load().rules[2].folder_name == "Documents"

    def test_default_directory_uses_xdg_data_home(self, monkeypatch):
        """Test default directory uses xdg data home."""
        monkeypatch.setenv("XDG_DATA_HOME", str(self.temp_dir / "data"))
        store = SettingsStore()

        assert store.settings_path == self.temp_dir / "data" / "cleansweep" / "settings.json"
