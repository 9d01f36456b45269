"""Resolve one baseline scenario to a coverage verdict."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from scenariotrace.domain.models import (
    Confidence,
    CoverageVerdict,
    MatchResult,
    Scenario,
    ScenarioVerdict,
    UnitTest,
)
from scenariotrace.domain.ports import MatchCandidate, SimilarityMatcherPort
from scenariotrace.errors import MatcherUnavailable
from scenariotrace.tagging.priority import scenario_priority

logger = logging.getLogger(__name__)

HIGH_THRESHOLD = 0.90
FULL_THRESHOLD = 0.75
PARTIAL_THRESHOLD = 0.60
LOW_THRESHOLD = 0.40


def confidence_for(score: float) -> Confidence:
    if score >= FULL_THRESHOLD:
        return Confidence.high
    if score >= PARTIAL_THRESHOLD:
        return Confidence.medium
    if score >= LOW_THRESHOLD:
        return Confidence.low
    return Confidence.none


def verdict_for(score: float) -> CoverageVerdict:
    if score >= FULL_THRESHOLD:
        return CoverageVerdict.fully_covered
    if score >= PARTIAL_THRESHOLD:
        return CoverageVerdict.partially_covered
    return CoverageVerdict.not_covered


def scoped_candidates(tests: Iterable[UnitTest], api_key: str) -> List[UnitTest]:
    """Tests on ``api_key`` in tie-break order: earliest line first, then test id."""
    scoped = [test for test in tests if test.api_key == api_key]
    scoped.sort(key=lambda test: (test.line_number, test.id))
    return scoped


def best_candidate(ranked: Sequence[MatchCandidate]) -> Optional[MatchCandidate]:
    """Highest score wins; equal scores fall back to the lowest candidate index."""
    if not ranked:
        return None
    return min(ranked, key=lambda item: (-item.score, item.index))


@dataclass
class CoverageResolver:
    matcher: SimilarityMatcherPort

    def resolve(self, scenario: Scenario, tests: Iterable[UnitTest]) -> Optional[ScenarioVerdict]:
        if not scenario.active:
            return None

        candidates = scoped_candidates(tests, scenario.api_key)
        if not candidates:
            return self._verdict(
                scenario,
                score=0.0,
                explanation=f"No unit tests are scoped to {scenario.api_key}",
            )

        try:
            ranked = self.matcher.compare(
                scenario.text, [test.description for test in candidates]
            )
        except MatcherUnavailable as exc:
            logger.warning("Could not evaluate scenario %s: %s", scenario.id, exc)
            return self._verdict(
                scenario,
                score=0.0,
                explanation="Similarity matcher unavailable; coverage could not be evaluated",
                matcher_unavailable=True,
            )

        best = best_candidate(ranked)
        if best is None:
            return self._verdict(scenario, score=0.0, explanation="Matcher returned no candidates")

        test = candidates[best.index]
        test_id, explanation = _describe(best.score, test)
        verdict = self._verdict(scenario, score=best.score, explanation=explanation, test_id=test_id)
        logger.debug(
            "Scenario %s -> %s (score=%.2f, test=%s)",
            scenario.id,
            verdict.verdict.value,
            best.score,
            test_id,
        )
        return verdict

    def _verdict(
        self,
        scenario: Scenario,
        *,
        score: float,
        explanation: str,
        test_id: Optional[str] = None,
        matcher_unavailable: bool = False,
    ) -> ScenarioVerdict:
        match = MatchResult(
            scenario_id=scenario.id,
            test_id=test_id,
            confidence=confidence_for(score),
            score=score,
            explanation=explanation,
            matcher_unavailable=matcher_unavailable,
        )
        return ScenarioVerdict(
            scenario_id=scenario.id,
            api_key=scenario.api_key,
            text=scenario.text,
            priority=scenario_priority(scenario),
            verdict=verdict_for(score),
            match=match,
        )


def _describe(score: float, test: UnitTest) -> Tuple[Optional[str], str]:
    location = f"{test.file_path}:{test.line_number}" if test.file_path else test.id
    if score >= HIGH_THRESHOLD:
        return test.id, f"Strong match with '{test.description}' ({location})"
    if score >= FULL_THRESHOLD:
        return test.id, f"Good match with '{test.description}' ({location})"
    if score >= PARTIAL_THRESHOLD:
        return test.id, f"Partial match with '{test.description}' ({location}); test may not verify every condition"
    return None, f"Best candidate '{test.description}' scored {score:.2f}, below the match threshold"
