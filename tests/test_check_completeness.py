from __future__ import annotations

import threading

import pytest

from scenariotrace.domain.models import CompletenessPolicy, CoverageVerdict, GapKind, Priority
from scenariotrace.errors import AnalysisCancelled
from scenariotrace.usecases.check_completeness import CompletenessAnalyzer
from scenariotrace.usecases.resolve_coverage import CoverageResolver

from helpers import (
    CUSTOMERS,
    CUSTOMER_BY_ID,
    FailingMatcher,
    ScriptedMatcher,
    make_scenario,
    make_suggestion,
    make_test,
)

B1 = "Create customer with valid data"
S_DUPLICATE = "Create a customer with valid data"
S_EMAIL = "Reject duplicate email"
S_PHONE = "Return 400 for invalid phone"
T_CREATE = "creates customer"
T_EMAIL = "rejects duplicate email"

SCORES = {
    (B1, T_CREATE): 0.8,
    (S_DUPLICATE, B1): 0.9,
    (S_EMAIL, T_EMAIL): 0.7,
    (T_EMAIL, S_EMAIL): 0.7,
}


def _fixture():
    baseline = [make_scenario("B-1", B1)]
    suggestions = [
        make_suggestion("S-1", S_DUPLICATE),
        make_suggestion("S-2", S_EMAIL),
        make_suggestion("S-3", S_PHONE),
    ]
    tests = [make_test("T-1", T_CREATE, line_number=10), make_test("T-2", T_EMAIL, line_number=20)]
    return baseline, suggestions, tests


def _analyze(policy=CompletenessPolicy.flag, matcher=None):
    matcher = matcher or ScriptedMatcher(SCORES)
    baseline, suggestions, tests = _fixture()
    verdicts = [CoverageResolver(matcher).resolve(scenario, tests) for scenario in baseline]
    analyzer = CompletenessAnalyzer(matcher=matcher, policy=policy)
    return analyzer.analyze(baseline=baseline, suggestions=suggestions, tests=tests, verdicts=verdicts)


def test_forward_check_reports_suggestions_missing_from_baseline():
    report = _analyze()
    assert [gap.scenario_id for gap in report.suggested_gaps] == ["S-2", "S-3"]
    assert all(gap.kind == GapKind.not_covered_suggested for gap in report.suggested_gaps)
    assert [s.id for s in report.missing_by_api[CUSTOMERS]] == ["S-2", "S-3"]
    assert report.baseline_incomplete == {CUSTOMERS}


def test_forward_check_recommendation_depends_on_unit_test():
    email_gap, phone_gap = _analyze().suggested_gaps
    assert "already exercises" in email_gap.recommendation
    assert "neither the baseline nor a unit test" in phone_gap.recommendation
    assert email_gap.priority == Priority.P3
    assert phone_gap.priority == Priority.P1


def test_reverse_check_pairs_unclaimed_tests_with_suggestions():
    report = _analyze()
    assert [candidate.test.id for candidate in report.orphan_candidates] == ["T-2"]
    assert report.orphan_candidates[0].suggested_scenario_text == S_EMAIL


def test_reverse_check_without_suggestion_pool():
    matcher = ScriptedMatcher()
    tests = [make_test("T-9", "lists customers", CUSTOMER_BY_ID)]
    analyzer = CompletenessAnalyzer(matcher=matcher)
    candidates = analyzer.reverse_check(tests, [], [])
    assert candidates[0].suggested_scenario_text is None
    assert matcher.calls == []


def test_flag_policy_leaves_verdicts_alone():
    report = _analyze(CompletenessPolicy.flag)
    assert report.verdicts[0].verdict == CoverageVerdict.fully_covered
    assert report.verdicts[0].adjusted_for_completeness is False


def test_downgrade_policy_demotes_fully_covered():
    report = _analyze(CompletenessPolicy.downgrade)
    verdict = report.verdicts[0]
    assert verdict.verdict == CoverageVerdict.partially_covered
    assert verdict.adjusted_for_completeness is True
    assert verdict.match.score == 0.8


def test_complete_baseline_is_not_flagged():
    matcher = ScriptedMatcher({(S_DUPLICATE, B1): 0.9})
    analyzer = CompletenessAnalyzer(matcher=matcher, policy=CompletenessPolicy.downgrade)
    report = analyzer.analyze(
        baseline=[make_scenario("B-1", B1)],
        suggestions=[make_suggestion("S-1", S_DUPLICATE)],
        tests=[],
        verdicts=[],
    )
    assert report.suggested_gaps == []
    assert report.baseline_incomplete == set()


def test_matcher_failure_is_flagged_on_gaps_and_candidates():
    report = _analyze(matcher=FailingMatcher())
    assert report.suggested_gaps
    assert all(gap.matcher_unavailable for gap in report.suggested_gaps)
    assert all("re-run" in gap.recommendation for gap in report.suggested_gaps)
    assert all(candidate.suggestion_unavailable for candidate in report.orphan_candidates)


def test_cancelled_run_raises():
    event = threading.Event()
    event.set()
    baseline, suggestions, tests = _fixture()
    analyzer = CompletenessAnalyzer(matcher=ScriptedMatcher(SCORES), cancel_event=event)
    with pytest.raises(AnalysisCancelled):
        analyzer.analyze(baseline=baseline, suggestions=suggestions, tests=tests, verdicts=[])


@pytest.mark.parametrize("score, present", [(0.75, True), (0.74, False)])
def test_suggestion_presence_threshold(score, present):
    matcher = ScriptedMatcher({(S_DUPLICATE, B1): score})
    analyzer = CompletenessAnalyzer(matcher=matcher)
    gaps, missing = analyzer.forward_check(
        [make_scenario("B-1", B1)], [make_suggestion("S-1", S_DUPLICATE)], []
    )
    assert (gaps == []) is present
    assert (CUSTOMERS in missing) is not present


@pytest.mark.parametrize("score, attached", [(0.60, True), (0.59, False)])
def test_suggested_text_threshold(score, attached):
    matcher = ScriptedMatcher({(T_EMAIL, S_EMAIL): score})
    analyzer = CompletenessAnalyzer(matcher=matcher)
    candidates = analyzer.reverse_check(
        [make_test("T-2", T_EMAIL)], [], [make_suggestion("S-2", S_EMAIL)]
    )
    expected = S_EMAIL if attached else None
    assert candidates[0].suggested_scenario_text == expected


@pytest.mark.parametrize("score, orphaned", [(0.60, False), (0.59, True)])
def test_claim_threshold(score, orphaned):
    matcher = ScriptedMatcher({(B1, T_CREATE): score})
    baseline = [make_scenario("B-1", B1)]
    tests = [make_test("T-1", T_CREATE)]
    verdicts = [CoverageResolver(matcher).resolve(scenario, tests) for scenario in baseline]
    candidates = CompletenessAnalyzer(matcher=matcher).reverse_check(tests, verdicts, [])
    assert bool(candidates) is orphaned
