"""Orphan classification, gap aggregation and summary metrics."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from scenariotrace.domain.models import (
    PRIORITY_ORDER,
    Api,
    ApiStatus,
    ApiSummary,
    CompletenessPolicy,
    CoverageVerdict,
    Gap,
    GapKind,
    OrphanApi,
    OrphanCategory,
    OrphanTest,
    Priority,
    Scenario,
    ScenarioSource,
    ScenarioVerdict,
    ScopeMismatch,
    ServiceSummary,
    UnitTest,
)
from scenariotrace.domain.ports import OrphanClassifierPort
from scenariotrace.tagging.orphan_rules import RuleOrphanClassifier, orphan_recommendations
from scenariotrace.tagging.priority import classify_priority, most_urgent, scenario_priority
from scenariotrace.usecases.check_completeness import CompletenessReport, OrphanCandidate

logger = logging.getLogger(__name__)

ORPHAN_API_DEFAULT_PRIORITY = Priority.P1
BLOCKING_PRIORITIES = (Priority.P0, Priority.P1)


def sort_gaps(indexed: Sequence[Tuple[int, Gap]]) -> List[Gap]:
    """Priority first (P0 first), then API key, then discovery order."""
    ordered = sorted(indexed, key=lambda item: (item[1].priority.rank, item[1].api_key, item[0]))
    return [gap for _, gap in ordered]


def gap_histogram(gaps: Sequence[Gap]) -> Dict[str, int]:
    counts = Counter(gap.priority for gap in gaps)
    return {priority.value: counts.get(priority, 0) for priority in PRIORITY_ORDER}


def coverage_percent(fully_covered: int, active: int) -> float:
    if active == 0:
        return 0.0
    return round(100.0 * fully_covered / active, 2)


@dataclass
class OrphanAndGapAggregator:
    orphan_classifier: OrphanClassifierPort = field(default_factory=RuleOrphanClassifier)
    policy: CompletenessPolicy = CompletenessPolicy.flag

    def aggregate(
        self,
        *,
        service: str,
        apis: Sequence[Api],
        scenarios: Sequence[Scenario],
        tests: Sequence[UnitTest],
        completeness: CompletenessReport,
        scope_mismatches: Sequence[ScopeMismatch] = (),
    ) -> ServiceSummary:
        """Build the service summary.

        ``scenarios`` holds every in-scope scenario (baseline and suggested,
        active or not); ``tests`` holds the in-scope tests. Verdicts come from
        ``completeness.verdicts`` so Layer C adjustments are already applied.
        """
        verdicts = completeness.verdicts
        orphan_apis = self.detect_orphan_apis(apis, scenarios, tests)
        orphan_api_keys = {orphan.api.key for orphan in orphan_apis}
        orphan_tests = self.categorize_orphans(completeness.orphan_candidates)

        indexed: List[Tuple[int, Gap]] = []
        for verdict in verdicts:
            gap = _verdict_gap(verdict)
            if gap is not None:
                indexed.append((len(indexed), gap))
        for gap in completeness.suggested_gaps:
            # An orphan API already reports its missing scenarios as one gap.
            if gap.api_key in orphan_api_keys:
                continue
            indexed.append((len(indexed), gap))
        for orphan in orphan_tests:
            if orphan.category == OrphanCategory.business:
                indexed.append((len(indexed), _orphan_test_gap(orphan)))
        for orphan in orphan_apis:
            indexed.append((len(indexed), _orphan_api_gap(orphan)))
        gaps = sort_gaps(indexed)

        fully = sum(1 for v in verdicts if v.verdict == CoverageVerdict.fully_covered)
        partial = sum(1 for v in verdicts if v.verdict == CoverageVerdict.partially_covered)
        not_covered = sum(1 for v in verdicts if v.verdict == CoverageVerdict.not_covered)
        unavailable = sum(1 for v in verdicts if v.match.matcher_unavailable)
        api_summaries = self.summarize_apis(
            apis, verdicts, tests, orphan_tests, orphan_api_keys, completeness
        )
        recommendations = orphan_recommendations(orphan_tests)
        if completeness.baseline_incomplete:
            recommendations.append(
                f"Baseline is incomplete for {len(completeness.baseline_incomplete)} API(s); "
                "review the suggested scenarios"
            )
        if unavailable:
            recommendations.append(
                f"{unavailable} scenario(s) could not be evaluated because the similarity "
                "matcher was unavailable; re-run before trusting these verdicts"
            )

        summary = ServiceSummary(
            service=service,
            coverage_percent=coverage_percent(fully, len(verdicts)),
            total_active_scenarios=len(verdicts),
            fully_covered=fully,
            partially_covered=partial,
            not_covered=not_covered,
            matcher_unavailable_count=unavailable,
            completeness_policy=self.policy,
            no_data=not verdicts and not tests,
            scenario_verdicts=list(verdicts),
            gaps=gaps,
            gap_histogram=gap_histogram(gaps),
            blocking_gap_count=sum(1 for gap in gaps if gap.priority in BLOCKING_PRIORITIES),
            orphan_tests=orphan_tests,
            orphan_apis=orphan_apis,
            api_summaries=api_summaries,
            scope_mismatches=list(scope_mismatches),
            recommendations=recommendations,
        )
        logger.info(
            "%s: coverage %.1f%% (%d/%d), gaps P0=%d P1=%d P2=%d P3=%d, orphans %d tests / %d APIs",
            service,
            summary.coverage_percent,
            fully,
            len(verdicts),
            summary.gap_histogram["P0"],
            summary.gap_histogram["P1"],
            summary.gap_histogram["P2"],
            summary.gap_histogram["P3"],
            len(orphan_tests),
            len(orphan_apis),
        )
        return summary

    def detect_orphan_apis(
        self,
        apis: Sequence[Api],
        scenarios: Sequence[Scenario],
        tests: Sequence[UnitTest],
    ) -> List[OrphanApi]:
        active_baseline: Set[str] = set()
        would_be: Dict[str, List[Priority]] = defaultdict(list)
        for scenario in scenarios:
            if scenario.source == ScenarioSource.baseline and scenario.active:
                active_baseline.add(scenario.api_key)
            else:
                would_be[scenario.api_key].append(scenario_priority(scenario))
        tested = {test.api_key for test in tests}

        orphans: List[OrphanApi] = []
        for api in apis:
            if api.key in active_baseline or api.key in tested:
                continue
            priority = most_urgent(would_be.get(api.key, []), ORPHAN_API_DEFAULT_PRIORITY)
            orphans.append(OrphanApi(api=api, priority=priority))
        return orphans

    def categorize_orphans(self, candidates: Sequence[OrphanCandidate]) -> List[OrphanTest]:
        orphans: List[OrphanTest] = []
        for candidate in candidates:
            test = candidate.test
            classification = self.orphan_classifier.classify(test)
            if classification.category == OrphanCategory.technical:
                priority = Priority.P3
            else:
                priority = most_urgent(
                    [classify_priority(test.description), classification.priority_floor],
                    Priority.P3,
                )
            orphans.append(
                OrphanTest(
                    test=test,
                    category=classification.category,
                    subtype=classification.subtype,
                    priority=priority,
                    reason=classification.reason,
                    suggested_scenario_text=candidate.suggested_scenario_text,
                    needs_manual_authoring=candidate.suggested_scenario_text is None,
                )
            )
        return orphans

    def summarize_apis(
        self,
        apis: Sequence[Api],
        verdicts: Sequence[ScenarioVerdict],
        tests: Sequence[UnitTest],
        orphan_tests: Sequence[OrphanTest],
        orphan_api_keys: Set[str],
        completeness: CompletenessReport,
    ) -> List[ApiSummary]:
        verdicts_by_api: Dict[str, List[ScenarioVerdict]] = defaultdict(list)
        for verdict in verdicts:
            verdicts_by_api[verdict.api_key].append(verdict)
        tests_by_api = Counter(test.api_key for test in tests)
        orphans_by_api = Counter(orphan.test.api_key for orphan in orphan_tests)

        summaries: List[ApiSummary] = []
        for api in sorted(apis, key=lambda item: item.key):
            api_verdicts = verdicts_by_api.get(api.key, [])
            fully = sum(1 for v in api_verdicts if v.verdict == CoverageVerdict.fully_covered)
            summaries.append(
                ApiSummary(
                    api_key=api.key,
                    status=ApiStatus.orphan if api.key in orphan_api_keys else ApiStatus.tracked,
                    active_scenarios=len(api_verdicts),
                    fully_covered=fully,
                    partially_covered=sum(
                        1 for v in api_verdicts if v.verdict == CoverageVerdict.partially_covered
                    ),
                    not_covered=sum(
                        1 for v in api_verdicts if v.verdict == CoverageVerdict.not_covered
                    ),
                    coverage_percent=(
                        coverage_percent(fully, len(api_verdicts)) if api_verdicts else None
                    ),
                    test_count=tests_by_api.get(api.key, 0),
                    orphan_test_count=orphans_by_api.get(api.key, 0),
                    suggested_missing=len(completeness.missing_by_api.get(api.key, [])),
                    baseline_incomplete=api.key in completeness.baseline_incomplete,
                )
            )
        return summaries


def _verdict_gap(verdict: ScenarioVerdict) -> Optional[Gap]:
    if verdict.verdict == CoverageVerdict.fully_covered:
        return None
    match = verdict.match
    if verdict.verdict == CoverageVerdict.partially_covered:
        if verdict.adjusted_for_completeness:
            recommendation = (
                "Covered by a unit test, but the API's baseline is incomplete; "
                "add the suggested scenarios and their tests"
            )
        else:
            recommendation = (
                f"Strengthen unit test {match.test_id} so it verifies: {verdict.text}"
            )
        kind = GapKind.partial
    else:
        if match.matcher_unavailable:
            recommendation = "Re-run the analysis once the similarity matcher is reachable"
        else:
            recommendation = f"Create a unit test that covers: {verdict.text}"
        kind = GapKind.not_covered
    return Gap(
        api_key=verdict.api_key,
        priority=verdict.priority,
        kind=kind,
        description=verdict.text,
        recommendation=recommendation,
        scenario_id=verdict.scenario_id,
        test_id=match.test_id,
        matcher_unavailable=match.matcher_unavailable,
    )


def _orphan_test_gap(orphan: OrphanTest) -> Gap:
    test = orphan.test
    if orphan.suggested_scenario_text:
        recommendation = (
            f"QA should add a baseline scenario: \"{orphan.suggested_scenario_text}\""
        )
    else:
        recommendation = "QA should author a baseline scenario for this test (no suggestion available)"
    return Gap(
        api_key=test.api_key,
        priority=orphan.priority,
        kind=GapKind.orphan_unit_test,
        description=f"Unit test without a baseline scenario: {test.description}",
        recommendation=recommendation,
        test_id=test.id,
    )


def _orphan_api_gap(orphan: OrphanApi) -> Gap:
    return Gap(
        api_key=orphan.api.key,
        priority=orphan.priority,
        kind=GapKind.orphan_api,
        description=f"{orphan.api.key} has no scenarios and no unit tests",
        recommendation="QA should write baseline scenarios and developers should add unit tests",
    )
