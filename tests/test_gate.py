from __future__ import annotations

from scenariotrace.config import GateConfig
from scenariotrace.domain.models import AnalysisRequest
from scenariotrace.usecases.analyze_service import analyze_service
from scenariotrace.usecases.gate import evaluate_gate

from helpers import CUSTOMERS, ScriptedMatcher, make_api, make_scenario, make_test

COVERED = "Create customer with valid data"
INVALID = "Return 400 for invalid email"


def _summary(scores):
    request = AnalysisRequest(
        service="customer-service",
        apis=[make_api(CUSTOMERS)],
        scenarios=[make_scenario("B-1", COVERED), make_scenario("B-2", INVALID)],
        tests=[make_test("T-1", "creates customer", line_number=1), make_test("T-2", "rejects bad email", line_number=2)],
    )
    return analyze_service(request, ScriptedMatcher(scores))


def test_gate_passes_when_nothing_blocks():
    summary = _summary({(COVERED, "creates customer"): 0.9, (INVALID, "rejects bad email"): 0.8})
    result = evaluate_gate(summary, GateConfig(block_on_p1_gaps=True, minimum_coverage_percent=100.0))
    assert result.passed is True
    assert result.reasons == []


def test_gate_blocks_on_p1_gaps_when_configured():
    summary = _summary({(COVERED, "creates customer"): 0.9})
    assert evaluate_gate(summary, GateConfig()).passed is True
    result = evaluate_gate(summary, GateConfig(block_on_p1_gaps=True))
    assert result.passed is False
    assert result.reasons == ["1 P1 gap(s)"]


def test_gate_checks_minimum_coverage():
    summary = _summary({(COVERED, "creates customer"): 0.9})
    result = evaluate_gate(summary, GateConfig(minimum_coverage_percent=75.0))
    assert result.passed is False
    assert "below minimum" in result.reasons[0]


def test_gate_limits_business_orphans():
    summary = _summary({(COVERED, "creates customer"): 0.9})
    assert any(orphan.test.id == "T-2" for orphan in summary.orphan_tests)
    result = evaluate_gate(summary, GateConfig(max_business_orphans=0))
    assert result.passed is False
