"""Pass/fail gate over a service summary."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel

from scenariotrace.config import GateConfig
from scenariotrace.domain.models import OrphanCategory, ServiceSummary


class GateResult(BaseModel):
    passed: bool
    reasons: List[str]


def evaluate_gate(summary: ServiceSummary, rules: GateConfig) -> GateResult:
    reasons: List[str] = []
    p0 = summary.gap_histogram.get("P0", 0)
    p1 = summary.gap_histogram.get("P1", 0)
    if rules.block_on_p0_gaps and p0:
        reasons.append(f"{p0} P0 gap(s)")
    if rules.block_on_p1_gaps and p1:
        reasons.append(f"{p1} P1 gap(s)")
    if summary.total_active_scenarios and summary.coverage_percent < rules.minimum_coverage_percent:
        reasons.append(
            f"coverage {summary.coverage_percent:.1f}% below minimum "
            f"{rules.minimum_coverage_percent:.1f}%"
        )
    if rules.max_business_orphans is not None:
        business = sum(
            1 for orphan in summary.orphan_tests if orphan.category == OrphanCategory.business
        )
        if business > rules.max_business_orphans:
            reasons.append(
                f"{business} business orphan test(s) exceed the limit of {rules.max_business_orphans}"
            )
    return GateResult(passed=not reasons, reasons=reasons)
