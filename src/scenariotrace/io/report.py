"""Summary JSON writer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from scenariotrace.domain.models import ServiceSummary


def summary_payload(summary: ServiceSummary) -> Dict[str, Any]:
    return summary.model_dump(mode="json")


def write_summary_json(path: Path, summary: ServiceSummary) -> Dict[str, Any]:
    """Write the report model and return the trend snapshot for this run."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(json.dumps(summary_payload(summary), ensure_ascii=False, indent=2))
        handle.write("\n")
    return trend_snapshot(summary)


def trend_snapshot(summary: ServiceSummary) -> Dict[str, Any]:
    return {
        "service": summary.service,
        "coverage_percent": summary.coverage_percent,
        "gap_counts": dict(summary.gap_histogram),
        "orphan_tests": len(summary.orphan_tests),
        "orphan_apis": len(summary.orphan_apis),
    }
