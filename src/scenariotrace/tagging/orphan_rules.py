"""Rule table that sorts orphan unit tests into technical and business buckets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence

from scenariotrace.domain.models import OrphanCategory, OrphanTest, Priority, UnitTest
from scenariotrace.domain.ports import OrphanClassification

_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")


@dataclass(frozen=True)
class OrphanRule:
    """One row of the rule table.

    ``path_pattern`` is searched in the lower-cased file path. ``name_pattern``
    is searched in the lower-cased raw name (camelCase split into
    underscores), plus the display text when ``scan_display_text`` is set.
    Either one matching is enough.
    """

    subtype: str
    category: OrphanCategory
    reason: str
    path_pattern: Optional[Pattern[str]] = None
    name_pattern: Optional[Pattern[str]] = None
    priority_floor: Optional[Priority] = None
    scan_display_text: bool = True

    def matches(self, path_text: str, raw_name_text: str, display_text: str) -> bool:
        if self.path_pattern is not None and self.path_pattern.search(path_text):
            return True
        if self.name_pattern is None:
            return False
        if self.name_pattern.search(raw_name_text):
            return True
        return self.scan_display_text and bool(self.name_pattern.search(display_text))


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.MULTILINE)


def _suffix(words: str) -> str:
    """Test class or file named after ``words``, e.g. ``CustomerDtoTest.java`` or ``ProfileService.test.ts``."""
    return rf"(^|/)\w*({words})(test|tests|\.test|\.spec)\."


# Path markers are whole directory segments or test-class suffixes.
# Technical rows come first so infrastructure tests never reach the business rows.
DEFAULT_RULES: Sequence[OrphanRule] = (
    OrphanRule(
        subtype="Entity/Model Test",
        category=OrphanCategory.technical,
        reason="POJO/entity infrastructure test - no scenario needed",
        path_pattern=_rx(r"(^|/)(entity|entities|model|models)/|" + _suffix("entity|model")),
        name_pattern=_rx(
            r"(^|_)(builder|getters?|setters?|equals|hash_?code|to_?string|all_?args|no_?args)(_|$)"
        ),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="DTO Test",
        category=OrphanCategory.technical,
        reason="Data transfer object test - technical infrastructure",
        path_pattern=_rx(r"(^|/)(dtos?|requests|responses)/|" + _suffix("dtos?")),
        name_pattern=_rx(r"(^|_)dto(_|$)"),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="Mapper Test",
        category=OrphanCategory.technical,
        reason="Data mapping/transformation logic - technical layer",
        path_pattern=_rx(
            r"(^|/)(mappers?|converters?|serializers?)/|" + _suffix("mapper|converter|serializer")
        ),
        name_pattern=_rx(r"(^|_)mapper(_|$)"),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="Repository Test",
        category=OrphanCategory.technical,
        reason="Persistence adapter test - technical infrastructure",
        path_pattern=_rx(
            r"(^|/)(repository|repositories|dao|persistence)/|(^|/)infrastructure/database/"
            r"|" + _suffix("repository|dao")
        ),
        name_pattern=_rx(r"(^|_)repository(_|$)"),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="Error Handler Test",
        category=OrphanCategory.technical,
        reason="Global exception handling - business errors are covered by scenarios",
        path_pattern=_rx(_suffix(r"(exception|error)handler\w*")),
        name_pattern=_rx(r"(exception|error)_handler"),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="Exception Test",
        category=OrphanCategory.technical,
        reason="Custom exception class test - technical infrastructure",
        path_pattern=_rx(r"(^|/)exceptions?/|" + _suffix("exception")),
    ),
    OrphanRule(
        subtype="Validation Test",
        category=OrphanCategory.technical,
        reason="Request validation constraints - technical rules",
        path_pattern=_rx(r"(^|/)(validators?|validation)/|" + _suffix("validator")),
    ),
    OrphanRule(
        subtype="Infrastructure Test",
        category=OrphanCategory.technical,
        reason="Setup/configuration test - no scenario needed",
        path_pattern=_rx(r"(^|/)(config|configuration|fixtures?)/|" + _suffix("config|configuration")),
        name_pattern=_rx(r"^(test_)?(setup|teardown|context_loads|before_each|after_each)(_|$)"),
        scan_display_text=False,
    ),
    OrphanRule(
        subtype="Controller/API Test",
        category=OrphanCategory.business,
        reason="API endpoint test without a matching scenario",
        path_pattern=_rx(r"controller|/routes?/|router|endpoint"),
        name_pattern=_rx(r"controller"),
        priority_floor=Priority.P0,
    ),
    OrphanRule(
        subtype="Service Layer Test",
        category=OrphanCategory.business,
        reason="Service layer test - may duplicate a controller scenario",
        path_pattern=_rx(r"(^|/)service/|(^|/)application/services/|" + _suffix(r"service(impl)?")),
        priority_floor=Priority.P2,
    ),
    OrphanRule(
        subtype="Business Logic Test",
        category=OrphanCategory.business,
        reason="Business functionality test without a scenario",
        name_pattern=_rx(
            r"^(test_|should_)?(get|post|put|patch|delete|create|update|remove|fetch|list|search)(_|$)"
        ),
        priority_floor=Priority.P1,
    ),
)

UNCLASSIFIED = OrphanClassification(
    category=OrphanCategory.business,
    subtype="Unknown Business Logic",
    reason="Could not classify automatically - requires manual review",
)


def _name_text(value: str) -> str:
    split = _CAMEL_RE.sub(r"\1_\2", value)
    return re.sub(r"[^a-z0-9]+", "_", split.lower()).strip("_")


class RuleOrphanClassifier:
    def __init__(self, rules: Optional[Sequence[OrphanRule]] = None) -> None:
        self.rules: List[OrphanRule] = list(rules if rules is not None else DEFAULT_RULES)

    def classify(self, test: UnitTest) -> OrphanClassification:
        path_text = test.file_path.replace("\\", "/").lower()
        raw_name_text = _name_text(test.raw_name)
        display_text = _name_text(test.display_text)
        for rule in self.rules:
            if rule.matches(path_text, raw_name_text, display_text):
                return OrphanClassification(
                    category=rule.category,
                    subtype=rule.subtype,
                    reason=rule.reason,
                    priority_floor=rule.priority_floor,
                )
        return UNCLASSIFIED


def orphan_recommendations(orphans: Sequence[OrphanTest]) -> List[str]:
    """QA-facing hints summarising what the orphan list asks of them."""
    business = [orphan for orphan in orphans if orphan.category == OrphanCategory.business]
    technical = len(orphans) - len(business)
    action_required = [orphan for orphan in business if orphan.suggested_scenario_text]
    manual = len(business) - len(action_required)

    recommendations: List[str] = []
    if action_required:
        recommendations.append(
            f"QA action required: {len(action_required)} business test(s) have a suggested "
            "scenario ready to add to the baseline"
        )
    if manual:
        recommendations.append(
            f"{manual} business test(s) need a scenario authored manually or a review"
        )
    if technical:
        recommendations.append(
            f"{technical} technical test(s) are appropriately orphaned (no action needed)"
        )
    return recommendations
