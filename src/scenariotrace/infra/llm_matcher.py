"""Similarity matcher backed by a hosted chat-completion model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import requests

from scenariotrace.config import LlmConfig
from scenariotrace.domain.ports import MatchCandidate, SimilarityMatcherPort
from scenariotrace.errors import MatcherUnavailable
from scenariotrace.infra.llm_client import chat_json


@dataclass
class LlmMatcher(SimilarityMatcherPort):
    llm: LlmConfig
    timeout: float = 30.0

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        if not candidates:
            return []
        try:
            data = chat_json(self.llm, self._prompt(text, candidates), timeout=self.timeout)
        except (requests.RequestException, ValueError) as exc:
            raise MatcherUnavailable(f"Hosted matcher failed: {exc}") from exc
        return self._coerce(data, len(candidates))

    def _prompt(self, text: str, candidates: Sequence[str]) -> str:
        numbered = "\n".join(f"{index}. {candidate}" for index, candidate in enumerate(candidates))
        return (
            "Rate how well each unit test description demonstrates the behaviour described "
            "by the scenario. 1.0 means the test fully verifies it, 0.0 means unrelated.\n"
            'Return JSON: {"matches": [{"index": <int>, "score": <0..1>}]} with one entry '
            "per test.\n"
            f"Scenario: {text}\n"
            f"Tests:\n{numbered}"
        )

    def _coerce(self, data: Dict[str, Any], count: int) -> List[MatchCandidate]:
        matches = data.get("matches")
        if not isinstance(matches, list):
            raise MatcherUnavailable("Hosted matcher reply has no 'matches' list")
        scores: Dict[int, float] = {}
        for entry in matches:
            if not isinstance(entry, dict):
                raise MatcherUnavailable(f"Malformed match entry: {entry!r}")
            index = entry.get("index")
            score = entry.get("score")
            if not isinstance(index, int) or not 0 <= index < count:
                raise MatcherUnavailable(f"Match index out of range: {index!r}")
            if not isinstance(score, (int, float)):
                raise MatcherUnavailable(f"Match score is not numeric: {score!r}")
            scores[index] = max(scores.get(index, 0.0), min(1.0, max(0.0, float(score))))
        ranked = [MatchCandidate(index=index, score=scores.get(index, 0.0)) for index in range(count)]
        ranked.sort(key=lambda item: (-item.score, item.index))
        return ranked
