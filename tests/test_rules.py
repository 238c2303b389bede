"""
Unit tests for organizing rules, the rule set and the classifier.
"""

import pytest

from cleansweep.organization_logic.rules import (
    OrganizingRule,
    RuleSet,
    RuleValidationError,
    build_rule,
    default_rules,
    normalize_extension,
    parse_extensions,
)
from cleansweep.organization_logic.classifier import Classifier


class TestExtensionParsing:
    """Test extension normalization and parsing of form input."""

    def test_normalize_extension(self):
        """Test normalize extension."""
        assert normalize_extension("MP3") == ".mp3"
        assert normalize_extension(" .Flac ") == ".flac"
        assert normalize_extension(".pdf") == ".pdf"
        assert normalize_extension("   ") == ""

    def test_parse_extensions(self):
        """Test parse extensions."""
        assert parse_extensions("mp3, .FLAC,, wav") == [".mp3", ".flac", ".wav"]

    def test_parse_extensions_drops_blanks_and_duplicates(self):
        """Test parse extensions drops blanks and duplicates."""
        assert parse_extensions(" , ., mp3, MP3") == [".mp3"]
        assert parse_extensions("") == []


class TestBuildRule:
    """Test building rules from form input."""

    def test_build_rule(self):
        """Test build rule."""
        rule = build_rule("  Music ", "mp3, flac")

        assert rule.folder_name == "Music"
        assert rule.extensions == [".mp3", ".flac"]
        assert rule.enabled
        assert rule.id

    def test_build_rule_requires_folder_name(self):
        """Test build rule requires folder name."""
        with pytest.raises(RuleValidationError, match="folder name"):
            build_rule("   ", "mp3")

    def test_build_rule_rejects_path_segments(self):
        """Test build rule rejects path segments."""
        for name in ("a/b", "..", "."):
            with pytest.raises(RuleValidationError):
                build_rule(name, "mp3")

    def test_build_rule_requires_extensions(self):
        """Test build rule requires extensions."""
        with pytest.raises(RuleValidationError, match="at least one"):
            build_rule("Music", "  ")

        with pytest.raises(RuleValidationError, match="valid file extensions"):
            build_rule("Music", ", .")

    def test_rule_validation_error_is_value_error(self):
        """Test rule validation error is value error."""
        with pytest.raises(ValueError):
            build_rule("", "mp3")


class TestOrganizingRule:
    """Test the OrganizingRule data class."""

    def test_extensions_are_lower_cased(self):
        """Test extensions are lower cased."""
        rule = OrganizingRule(folder_name="Images", extensions=["PNG", ".JPG"])
        assert rule.extensions == ["png", ".jpg"]

    def test_extensions_are_kept_as_given(self):
        """Test extensions are kept as given."""
        rule = OrganizingRule(folder_name="Documents", extensions=["pdf"])

        assert rule.extensions == ["pdf"]
        assert not rule.matches(".pdf")

    def test_matches(self):
        """Test matches."""
        rule = OrganizingRule(folder_name="Images", extensions=[".png"])

        assert rule.matches(".png")
        assert rule.matches(".PNG")
        assert not rule.matches(".jpg")

    def test_disabled_rule_never_matches(self):
        """Test disabled rule never matches."""
        rule = OrganizingRule(folder_name="Images", extensions=[".png"], enabled=False)
        assert not rule.matches(".png")

    def test_dict_round_trip_keeps_id(self):
        """Test dict round trip keeps id."""
        rule = OrganizingRule(folder_name="Code", extensions=[".py"], enabled=False)
        restored = OrganizingRule.from_dict(rule.to_dict())

        assert restored == rule

    def test_from_dict_missing_key(self):
        """Test from dict missing key."""
        with pytest.raises(KeyError):
            OrganizingRule.from_dict({"folder_name": "Code"})

    def test_from_dict_rejects_wrong_types(self):
        """Test from dict rejects wrong types."""
        bad_rules = [
            {"folder_name": "Docs", "extensions": [7]},
            {"folder_name": "Docs", "extensions": [None]},
            {"folder_name": "Docs", "extensions": "pdf"},
            {"folder_name": None, "extensions": [".pdf"]},
            ["Docs", [".pdf"]],
        ]
        for data in bad_rules:
            with pytest.raises(TypeError):
                OrganizingRule.from_dict(data)

    def test_ids_are_unique(self):
        """Test ids are unique."""
        first = OrganizingRule(folder_name="A", extensions=[".a"])
        second = OrganizingRule(folder_name="A", extensions=[".a"])
        assert first.id != second.id


class TestRuleSet:
    """Test the ordered rule set."""

    def setup_method(self):
        self.music = OrganizingRule(folder_name="Music", extensions=[".mp3"])
        self.audio = OrganizingRule(folder_name="Audio", extensions=[".mp3", ".wav"])
        self.rules = RuleSet([self.music, self.audio])

    def test_first_enabled_match_wins(self):
        """Test first enabled match wins."""
        assert self.rules.match(".mp3") is self.music
        assert self.rules.match(".wav") is self.audio
        assert self.rules.match(".xyz") is None

    def test_disabled_rule_is_skipped(self):
        """Test disabled rule is skipped."""
        self.music.enabled = False
        assert self.rules.match(".mp3") is self.audio

    def test_duplicate_id_rejected(self):
        """Test duplicate id rejected."""
        with pytest.raises(ValueError):
            self.rules.append(self.music)

    def test_remove_and_replace(self):
        """Test remove and replace."""
        removed = self.rules.remove_at(0)
        assert removed is self.music
        assert len(self.rules) == 1

        replacement = OrganizingRule(folder_name="Sounds", extensions=[".wav"])
        self.rules.replace_at(0, replacement)
        assert self.rules[0] is replacement

    def test_folder_name_taken(self):
        """Test folder name taken."""
        assert self.rules.folder_name_taken("Music")
        assert not self.rules.folder_name_taken("Music", ignore_index=0)
        assert not self.rules.folder_name_taken("Videos")

    def test_load_defaults_and_clear(self):
        """Test load defaults and clear."""
        self.rules.load_defaults()

        names = [rule.folder_name for rule in self.rules]
        assert names == ["Music", "Images", "Documents", "Videos", "Archives", "Code"]

        self.rules.clear()
        assert len(self.rules) == 0

    def test_default_rules_are_fresh_copies(self):
        """Test default rules are fresh copies."""
        first = default_rules()
        second = default_rules()

        assert first[0].id != second[0].id
        first[0].extensions.append(".ogg")
        assert ".ogg" not in second[0].extensions


class TestClassifier:
    """Test extension-based classification."""

    def setup_method(self):
        self.classifier = Classifier(RuleSet(default_rules()))

    def test_extension_for(self):
        """Test extension for."""
        assert Classifier.extension_for("report.PDF") == ".pdf"
        assert Classifier.extension_for("archive.tar.gz") == ".gz"
        assert Classifier.extension_for("Makefile") == ""

    def test_classify_path(self):
        """Test classify path."""
        assert self.classifier.classify_path("/tmp/report.pdf").folder_name == "Documents"
        assert self.classifier.classify_path("SONG.MP3").folder_name == "Music"

    def test_unmatched_files_stay(self):
        """Test unmatched files stay."""
        assert self.classifier.classify_path("a.xyz") is None
        assert self.classifier.classify_path("README") is None
        assert self.classifier.classify("") is None
