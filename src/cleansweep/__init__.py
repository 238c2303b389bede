"""
CleanSweep: watch a folder and file new arrivals into subfolders by extension.
"""

from .organization_logic.engine import OrganizerEngine
from .organization_logic.rules import OrganizingRule, RuleSet, build_rule
from .organization_logic.state import EngineState

__version__ = "1.0.0"

__all__ = [
    "OrganizerEngine",
    "OrganizingRule",
    "RuleSet",
    "build_rule",
    "EngineState",
]
