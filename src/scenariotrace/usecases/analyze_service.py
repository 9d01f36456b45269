"""Analyze one service: resolve, reconcile and aggregate."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from scenariotrace.domain.models import (
    AnalysisRequest,
    CompletenessPolicy,
    Scenario,
    ScenarioSource,
    ScenarioVerdict,
    ScopeMismatch,
    ServiceSummary,
    UnitTest,
)
from scenariotrace.domain.ports import OrphanClassifierPort, SimilarityMatcherPort
from scenariotrace.errors import AnalysisCancelled, InconsistentInputError
from scenariotrace.tagging.orphan_rules import RuleOrphanClassifier
from scenariotrace.usecases.aggregate_gaps import OrphanAndGapAggregator
from scenariotrace.usecases.check_completeness import CompletenessAnalyzer
from scenariotrace.usecases.resolve_coverage import CoverageResolver

logger = logging.getLogger(__name__)


def analyze_service(
    request: AnalysisRequest,
    matcher: SimilarityMatcherPort,
    *,
    policy: CompletenessPolicy = CompletenessPolicy.flag,
    orphan_classifier: Optional[OrphanClassifierPort] = None,
    max_workers: int = 4,
    cancel_event: Optional[threading.Event] = None,
) -> ServiceSummary:
    """Run the whole engine for one service.

    Raises ``InconsistentInputError`` for malformed input and
    ``AnalysisCancelled`` when ``cancel_event`` is set; in both cases no
    summary is produced.
    """
    validate_request(request)
    known = {api.key for api in request.apis}
    scenarios, tests, mismatches = partition_scope(request.scenarios, request.tests, known)

    baseline = [s for s in scenarios if s.source == ScenarioSource.baseline and s.active]
    suggestions = [s for s in scenarios if s.source == ScenarioSource.ai_suggested and s.active]
    logger.info(
        "Analyzing %s: %d API(s), %d active baseline scenario(s), %d suggestion(s), %d test(s)",
        request.service,
        len(request.apis),
        len(baseline),
        len(suggestions),
        len(tests),
    )

    resolver = CoverageResolver(matcher=matcher)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scenario") as executor:
        verdicts = _resolve_all(resolver, baseline, tests, executor, cancel_event)
        analyzer = CompletenessAnalyzer(
            matcher=matcher,
            policy=policy,
            executor=executor,
            cancel_event=cancel_event,
        )
        completeness = analyzer.analyze(
            baseline=baseline,
            suggestions=suggestions,
            tests=tests,
            verdicts=verdicts,
        )
    _check_cancelled(cancel_event)

    aggregator = OrphanAndGapAggregator(
        orphan_classifier=orphan_classifier or RuleOrphanClassifier(),
        policy=policy,
    )
    return aggregator.aggregate(
        service=request.service,
        apis=request.apis,
        scenarios=scenarios,
        tests=tests,
        completeness=completeness,
        scope_mismatches=mismatches,
    )


def validate_request(request: AnalysisRequest) -> None:
    if not request.service.strip():
        raise InconsistentInputError("Service name must not be empty")
    _require_unique("API key", (api.key for api in request.apis))
    _require_unique("scenario id", (scenario.id for scenario in request.scenarios))
    _require_unique("test id", (test.id for test in request.tests))


def partition_scope(
    scenarios: Sequence[Scenario],
    tests: Sequence[UnitTest],
    known: Iterable[str],
) -> Tuple[List[Scenario], List[UnitTest], List[ScopeMismatch]]:
    """Split entities into those on a known API and scope mismatches."""
    known_keys = set(known)
    mismatches: List[ScopeMismatch] = []
    in_scope_scenarios: List[Scenario] = []
    for scenario in scenarios:
        if scenario.api_key in known_keys:
            in_scope_scenarios.append(scenario)
            continue
        logger.warning("Scenario %s targets unknown API %s; excluded", scenario.id, scenario.api_key)
        mismatches.append(
            ScopeMismatch(entity="scenario", entity_id=scenario.id, api_key=scenario.api_key)
        )
    in_scope_tests: List[UnitTest] = []
    for test in tests:
        if test.api_key in known_keys:
            in_scope_tests.append(test)
            continue
        logger.warning("Test %s targets unknown API %s; excluded", test.id, test.api_key)
        mismatches.append(ScopeMismatch(entity="test", entity_id=test.id, api_key=test.api_key))
    return in_scope_scenarios, in_scope_tests, mismatches


def _resolve_all(
    resolver: CoverageResolver,
    baseline: Sequence[Scenario],
    tests: Sequence[UnitTest],
    executor: ThreadPoolExecutor,
    cancel_event: Optional[threading.Event],
) -> List[ScenarioVerdict]:
    futures: List[Future] = []
    try:
        for scenario in baseline:
            _check_cancelled(cancel_event)
            futures.append(executor.submit(resolver.resolve, scenario, tests))
        # Collect in submission order, never completion order.
        results = [future.result() for future in futures]
    except AnalysisCancelled:
        for future in futures:
            future.cancel()
        raise
    _check_cancelled(cancel_event)
    return [verdict for verdict in results if verdict is not None]


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Analysis cancelled")


def _require_unique(label: str, values: Iterable[str]) -> None:
    seen = set()
    duplicates = []
    for value in values:
        if value in seen:
            duplicates.append(value)
        seen.add(value)
    if duplicates:
        raise InconsistentInputError(f"Duplicate {label}(s): {sorted(set(duplicates))}")
