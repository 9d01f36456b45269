"""Three-layer reconciliation of baseline scenarios, suggestions and unit tests.

Layer A (forward): AI-suggested scenarios with no baseline counterpart.
Layer B (reverse): unit tests no baseline scenario claims, each paired with a
best-effort suggested scenario text.
Layer C (adjustment): mark APIs whose baseline is incomplete and, under the
``downgrade`` policy, demote their FULLY_COVERED verdicts.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from scenariotrace.domain.models import (
    CompletenessPolicy,
    CoverageVerdict,
    Gap,
    GapKind,
    Scenario,
    ScenarioVerdict,
    UnitTest,
)
from scenariotrace.domain.ports import SimilarityMatcherPort
from scenariotrace.errors import AnalysisCancelled, MatcherUnavailable
from scenariotrace.tagging.priority import scenario_priority
from scenariotrace.usecases.resolve_coverage import (
    FULL_THRESHOLD,
    PARTIAL_THRESHOLD,
    best_candidate,
    scoped_candidates,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class OrphanCandidate:
    test: UnitTest
    suggested_scenario_text: Optional[str] = None
    suggestion_unavailable: bool = False


@dataclass
class CompletenessReport:
    suggested_gaps: List[Gap] = field(default_factory=list)
    missing_by_api: Dict[str, List[Scenario]] = field(default_factory=dict)
    orphan_candidates: List[OrphanCandidate] = field(default_factory=list)
    verdicts: List[ScenarioVerdict] = field(default_factory=list)
    baseline_incomplete: Set[str] = field(default_factory=set)


@dataclass
class _ForwardResult:
    suggestion: Scenario
    present: bool
    has_unit_test: bool
    matcher_unavailable: bool


@dataclass
class CompletenessAnalyzer:
    matcher: SimilarityMatcherPort
    policy: CompletenessPolicy = CompletenessPolicy.flag
    executor: Optional[Executor] = None
    cancel_event: Optional[threading.Event] = None

    def analyze(
        self,
        *,
        baseline: Sequence[Scenario],
        suggestions: Sequence[Scenario],
        tests: Sequence[UnitTest],
        verdicts: Sequence[ScenarioVerdict],
    ) -> CompletenessReport:
        """Run the three layers over already scope-checked, active entities."""
        suggested_gaps, missing_by_api = self.forward_check(baseline, suggestions, tests)
        orphan_candidates = self.reverse_check(tests, verdicts, suggestions)
        adjusted, incomplete = self.adjust(verdicts, missing_by_api)
        return CompletenessReport(
            suggested_gaps=suggested_gaps,
            missing_by_api=missing_by_api,
            orphan_candidates=orphan_candidates,
            verdicts=adjusted,
            baseline_incomplete=incomplete,
        )

    def forward_check(
        self,
        baseline: Sequence[Scenario],
        suggestions: Sequence[Scenario],
        tests: Sequence[UnitTest],
    ) -> Tuple[List[Gap], Dict[str, List[Scenario]]]:
        baseline_by_api = _group_by_api(baseline)

        def check(suggestion: Scenario) -> _ForwardResult:
            self._checkpoint()
            present, unavailable = self._present_in_baseline(
                suggestion, baseline_by_api.get(suggestion.api_key, [])
            )
            has_test = False
            if not present:
                has_test = self._has_unit_test(suggestion, tests)
            return _ForwardResult(suggestion, present, has_test, unavailable)

        gaps: List[Gap] = []
        missing_by_api: Dict[str, List[Scenario]] = defaultdict(list)
        for result in self._map(check, suggestions):
            if result.present:
                continue
            suggestion = result.suggestion
            missing_by_api[suggestion.api_key].append(suggestion)
            gaps.append(_suggested_gap(result))
        if gaps:
            logger.info("%d suggested scenario(s) are missing from the baseline", len(gaps))
        return gaps, dict(missing_by_api)

    def reverse_check(
        self,
        tests: Sequence[UnitTest],
        verdicts: Sequence[ScenarioVerdict],
        suggestions: Sequence[Scenario],
    ) -> List[OrphanCandidate]:
        claimed = {
            verdict.match.test_id
            for verdict in verdicts
            if verdict.match.test_id and verdict.match.score >= PARTIAL_THRESHOLD
        }
        suggestions_by_api = _group_by_api(suggestions)
        unclaimed = [test for test in tests if test.id not in claimed]

        def suggest(test: UnitTest) -> OrphanCandidate:
            self._checkpoint()
            pool = suggestions_by_api.get(test.api_key, [])
            if not pool:
                return OrphanCandidate(test=test)
            try:
                ranked = self.matcher.compare(test.description, [item.text for item in pool])
            except MatcherUnavailable as exc:
                logger.warning("No scenario suggestion for test %s: %s", test.id, exc)
                return OrphanCandidate(test=test, suggestion_unavailable=True)
            best = best_candidate(ranked)
            if best is None or best.score < PARTIAL_THRESHOLD:
                return OrphanCandidate(test=test)
            return OrphanCandidate(test=test, suggested_scenario_text=pool[best.index].text)

        return list(self._map(suggest, unclaimed))

    def adjust(
        self,
        verdicts: Sequence[ScenarioVerdict],
        missing_by_api: Dict[str, List[Scenario]],
    ) -> Tuple[List[ScenarioVerdict], Set[str]]:
        incomplete = {api_key for api_key, missing in missing_by_api.items() if missing}
        if self.policy == CompletenessPolicy.flag:
            return list(verdicts), incomplete

        adjusted: List[ScenarioVerdict] = []
        for verdict in verdicts:
            if verdict.api_key in incomplete and verdict.verdict == CoverageVerdict.fully_covered:
                logger.info(
                    "Scenario %s downgraded to PARTIALLY_COVERED: baseline for %s is incomplete",
                    verdict.scenario_id,
                    verdict.api_key,
                )
                verdict = verdict.model_copy(
                    update={
                        "verdict": CoverageVerdict.partially_covered,
                        "adjusted_for_completeness": True,
                    }
                )
            adjusted.append(verdict)
        return adjusted, incomplete

    def _present_in_baseline(
        self, suggestion: Scenario, baseline: Sequence[Scenario]
    ) -> Tuple[bool, bool]:
        if not baseline:
            return False, False
        try:
            ranked = self.matcher.compare(suggestion.text, [item.text for item in baseline])
        except MatcherUnavailable as exc:
            logger.warning("Could not compare suggestion %s with baseline: %s", suggestion.id, exc)
            return False, True
        best = best_candidate(ranked)
        return best is not None and best.score >= FULL_THRESHOLD, False

    def _has_unit_test(self, suggestion: Scenario, tests: Sequence[UnitTest]) -> bool:
        candidates = scoped_candidates(tests, suggestion.api_key)
        if not candidates:
            return False
        try:
            ranked = self.matcher.compare(suggestion.text, [test.description for test in candidates])
        except MatcherUnavailable as exc:
            logger.warning("Could not look up tests for suggestion %s: %s", suggestion.id, exc)
            return False
        best = best_candidate(ranked)
        return best is not None and best.score >= PARTIAL_THRESHOLD

    def _map(self, func: Callable[[T], R], items: Iterable[T]) -> Iterable[R]:
        # Executor.map yields in submission order, so results stay deterministic.
        if self.executor is None:
            return [func(item) for item in items]
        return list(self.executor.map(func, items))

    def _checkpoint(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise AnalysisCancelled("Analysis cancelled during completeness check")


def _group_by_api(scenarios: Iterable[Scenario]) -> Dict[str, List[Scenario]]:
    grouped: Dict[str, List[Scenario]] = defaultdict(list)
    for scenario in scenarios:
        grouped[scenario.api_key].append(scenario)
    return dict(grouped)


def _suggested_gap(result: _ForwardResult) -> Gap:
    suggestion = result.suggestion
    if result.has_unit_test:
        recommendation = (
            "A unit test already exercises this behaviour but the baseline lacks the scenario; "
            f"QA should add: \"{suggestion.text}\""
        )
    else:
        recommendation = (
            "The API definition suggests this scenario but neither the baseline nor a unit test covers it; "
            "QA should review and add it, then developers add a unit test"
        )
    if result.matcher_unavailable:
        recommendation += " (baseline comparison could not be evaluated; re-run to confirm)"
    return Gap(
        api_key=suggestion.api_key,
        priority=scenario_priority(suggestion),
        kind=GapKind.not_covered_suggested,
        description=suggestion.text,
        recommendation=recommendation,
        scenario_id=suggestion.id,
        matcher_unavailable=result.matcher_unavailable,
    )
