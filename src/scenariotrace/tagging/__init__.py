"""Priority and orphan tagging."""

from scenariotrace.tagging.orphan_rules import RuleOrphanClassifier, orphan_recommendations
from scenariotrace.tagging.priority import classify_priority, most_urgent, scenario_priority

__all__ = [
    "RuleOrphanClassifier",
    "classify_priority",
    "most_urgent",
    "orphan_recommendations",
    "scenario_priority",
]
