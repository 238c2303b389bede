"""
Organizing rules: folder name + extension list pairings and the ordered rule set.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Iterator

logger = logging.getLogger(__name__)


DEFAULT_RULES = [
    {"folder_name": "Music", "extensions": [".mp3", ".flac", ".m4a", ".wav", ".aac"]},
    {
        "folder_name": "Images",
        "extensions": [".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff"],
    },
    {
        "folder_name": "Documents",
        "extensions": [".pdf", ".doc", ".docx", ".txt", ".rtf", ".pages"],
    },
    {
        "folder_name": "Videos",
        "extensions": [".mp4", ".avi", ".mkv", ".mov", ".wmv", ".m4v"],
    },
    {
        "folder_name": "Archives",
        "extensions": [".zip", ".rar", ".7z", ".tar", ".gz", ".dmg"],
    },
    {
        "folder_name": "Code",
        "extensions": [".swift", ".py", ".js", ".html", ".css", ".json"],
    },
]


class RuleValidationError(ValueError):
    """Raised when user input cannot be turned into a rule."""


def normalize_extension(extension: str) -> str:
    """Normalize an extension to lower-case, leading-dot form.

    Args:
        extension: Raw extension such as "MP3", ".Flac" or " pdf "

    Returns:
        Normalized extension (e.g. ".mp3"), or "" for blank input
    """
    ext = extension.strip().lower()
    if not ext:
        return ""
    if not ext.startswith("."):
        ext = f".{ext}"
    return ext


def parse_extensions(text: str) -> List[str]:
    """Parse a comma separated extension list as typed into a rule form."""
    extensions = []
    for part in text.split(","):
        ext = normalize_extension(part)
        if not ext or ext == ".":
            continue
        if ext not in extensions:
            extensions.append(ext)
    return extensions


def is_valid_folder_name(folder_name: str) -> bool:
    """Check that a folder name is usable as a single relative path segment."""
    if not folder_name or folder_name in (".", ".."):
        return False
    return "/" not in folder_name and "\\" not in folder_name


@dataclass
class OrganizingRule:
    """A folder name paired with the extensions that belong in it."""

    folder_name: str
    extensions: List[str]
    enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        # case-insensitive matching; form input is normalized by build_rule
        self.extensions = [ext.lower() for ext in self.extensions]

    def matches(self, extension: str) -> bool:
        """Check if an enabled rule claims the given extension."""
        return self.enabled and extension.lower() in self.extensions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "folder_name": self.folder_name,
            "extensions": list(self.extensions),
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizingRule":
        """Create a rule from its persisted form.

        Args:
            data: Dictionary with folder_name, extensions, enabled and id

        Returns:
            OrganizingRule instance

        Raises:
            KeyError: If folder_name or extensions is missing
            TypeError: If a field has the wrong type
        """
        if not isinstance(data, dict):
            raise TypeError("Rule must be a mapping")

        folder_name = data["folder_name"]
        extensions = data["extensions"]
        if not isinstance(folder_name, str):
            raise TypeError(f"Rule folder_name must be a string, got {folder_name!r}")
        if not isinstance(extensions, list) or not all(
            isinstance(ext, str) for ext in extensions
        ):
            raise TypeError(f"Rule extensions must be a list of strings, got {extensions!r}")

        kwargs = {
            "folder_name": folder_name,
            "extensions": list(extensions),
            "enabled": bool(data.get("enabled", True)),
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)


def build_rule(folder_name: str, extensions_text: str) -> OrganizingRule:
    """Build a rule from form input.

    Args:
        folder_name: Destination folder name
        extensions_text: Comma separated extensions ("mp3, .flac")

    Returns:
        New enabled rule

    Raises:
        RuleValidationError: If the folder name or extensions are unusable
    """
    name = folder_name.strip()
    if not name:
        raise RuleValidationError("Please enter a folder name")
    if not is_valid_folder_name(name):
        raise RuleValidationError(f"Invalid folder name: {name}")

    if not extensions_text.strip():
        raise RuleValidationError("Please enter at least one file extension")

    extensions = parse_extensions(extensions_text)
    if not extensions:
        raise RuleValidationError("Please enter valid file extensions")

    return OrganizingRule(folder_name=name, extensions=extensions)


def default_rules() -> List[OrganizingRule]:
    """Create a fresh copy of the built-in rule set."""
    return [
        OrganizingRule(folder_name=rule["folder_name"], extensions=rule["extensions"])
        for rule in DEFAULT_RULES
    ]


class RuleSet:
    """Ordered collection of rules; the first enabled match wins."""

    def __init__(self, rules: Optional[List[OrganizingRule]] = None):
        self._rules: List[OrganizingRule] = []
        for rule in rules or []:
            self.append(rule)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[OrganizingRule]:
        return iter(list(self._rules))

    def __getitem__(self, index: int) -> OrganizingRule:
        return self._rules[index]

    def match(self, extension: str) -> Optional[OrganizingRule]:
        """Find the first enabled rule for an extension.

        Args:
            extension: Dotted extension, e.g. ".pdf"

        Returns:
            Matching rule or None
        """
        for rule in self._rules:
            if rule.matches(extension):
                return rule
        return None

    def append(self, rule: OrganizingRule):
        """Append a rule to the end of the set."""
        if any(existing.id == rule.id for existing in self._rules):
            raise ValueError(f"Duplicate rule id: {rule.id}")
        self._rules.append(rule)
        logger.debug(f"Appended rule for folder '{rule.folder_name}'")

    def remove_at(self, index: int) -> OrganizingRule:
        """Remove and return the rule at an index."""
        rule = self._rules.pop(index)
        logger.debug(f"Removed rule for folder '{rule.folder_name}'")
        return rule

    def replace_at(self, index: int, rule: OrganizingRule):
        """Replace the rule at an index, keeping its position."""
        if any(
            existing.id == rule.id
            for i, existing in enumerate(self._rules)
            if i != index
        ):
            raise ValueError(f"Duplicate rule id: {rule.id}")
        self._rules[index] = rule

    def load_defaults(self):
        """Replace all rules with the built-in defaults."""
        self._rules = default_rules()

    def clear(self):
        self._rules = []

    def folder_name_taken(
        self, folder_name: str, ignore_index: Optional[int] = None
    ) -> bool:
        """Check whether another rule already targets a folder name."""
        return any(
            rule.folder_name == folder_name
            for i, rule in enumerate(self._rules)
            if i != ignore_index
        )

    def to_list(self) -> List[OrganizingRule]:
        return list(self._rules)
