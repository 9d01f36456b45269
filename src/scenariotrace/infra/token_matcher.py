"""Local deterministic similarity matcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set

from scenariotrace.domain.ports import MatchCandidate, SimilarityMatcherPort
from scenariotrace.infra.scoring import (
    DEFAULT_STOP_WORDS,
    DEFAULT_SYNONYMS,
    build_synonym_index,
    edit_score,
    jaccard_score,
    overlap_score,
    semantic_score,
    tokenize,
)

DEFAULT_WEIGHTS: Mapping[str, float] = {
    "semantic": 0.4,
    "overlap": 0.25,
    "jaccard": 0.15,
    "edit": 0.2,
}


@dataclass
class TokenOverlapMatcher(SimilarityMatcherPort):
    """Weighted blend of token overlap, synonym-aware overlap, Jaccard and edit similarity.

    Identical token sequences score 1.0; scores never leave [0, 1].
    """

    weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    synonyms: Mapping[str, Sequence[str]] = field(default_factory=lambda: dict(DEFAULT_SYNONYMS))
    stop_words: Set[str] = field(default_factory=lambda: set(DEFAULT_STOP_WORDS))

    def __post_init__(self) -> None:
        self._synonym_index = build_synonym_index(self.synonyms)
        total = sum(self.weights.values())
        if total <= 0:
            raise ValueError("Matcher weights must sum to a positive value")
        self._weights: Dict[str, float] = {
            name: value / total for name, value in self.weights.items()
        }

    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        query = tokenize(text, self.stop_words)
        ranked = [
            MatchCandidate(index=index, score=self.score_tokens(query, tokenize(candidate, self.stop_words)))
            for index, candidate in enumerate(candidates)
        ]
        ranked.sort(key=lambda item: (-item.score, item.index))
        return ranked

    def score(self, left: str, right: str) -> float:
        return self.score_tokens(tokenize(left, self.stop_words), tokenize(right, self.stop_words))

    def score_tokens(self, left: List[str], right: List[str]) -> float:
        if not left or not right:
            return 0.0
        if left == right:
            return 1.0
        left_set, right_set = set(left), set(right)
        parts = {
            "semantic": semantic_score(left, right_set, self._synonym_index),
            "overlap": overlap_score(left_set, right_set),
            "jaccard": jaccard_score(left_set, right_set),
            "edit": edit_score(left, right),
        }
        total = sum(self._weights.get(name, 0.0) * value for name, value in parts.items())
        return round(min(1.0, max(0.0, total)), 4)
