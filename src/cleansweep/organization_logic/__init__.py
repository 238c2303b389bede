"""
Organization logic: rules, classification and the organizer engine.
"""

from .rules import (
    OrganizingRule,
    RuleSet,
    RuleValidationError,
    build_rule,
    default_rules,
)
from .classifier import Classifier

__all__ = [
    "OrganizingRule",
    "RuleSet",
    "RuleValidationError",
    "build_rule",
    "default_rules",
    "Classifier",
]
