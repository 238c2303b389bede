"""
Extension-based classification of files against a rule set.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .rules import OrganizingRule, RuleSet

logger = logging.getLogger(__name__)


class Classifier:
    """Assign files to the first enabled rule claiming their extension."""

    def __init__(self, rules: RuleSet):
        self.rules = rules

    @staticmethod
    def extension_for(path: Union[str, Path]) -> str:
        """Get the dotted lower-case extension of a file name ("" if none)."""
        return Path(path).suffix.lower()

    def classify(self, extension: str) -> Optional[OrganizingRule]:
        """Find the rule for an extension.

        Args:
            extension: Dotted extension, e.g. ".PDF" or ".pdf"

        Returns:
            First enabled matching rule, or None if the file should stay put
        """
        if not extension:
            return None
        return self.rules.match(extension.lower())

    def classify_path(self, path: Union[str, Path]) -> Optional[OrganizingRule]:
        """Find the rule for a file path."""
        rule = self.classify(self.extension_for(path))
        if rule:
            logger.debug(f"Classified {Path(path).name} -> {rule.folder_name}")
        return rule
