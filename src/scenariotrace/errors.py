"""Error taxonomy for analysis runs."""

from __future__ import annotations


class ScenarioTraceError(Exception):
    """Base class for run-level errors."""


class MatcherUnavailable(ScenarioTraceError):
    """The similarity matcher failed, timed out or returned malformed output."""


class InconsistentInputError(ScenarioTraceError, ValueError):
    """Input entities are malformed or contradict each other; the run must not publish."""


class AnalysisCancelled(ScenarioTraceError):
    """The run was cancelled between scenarios; no summary is produced."""
