"""Ports (interfaces) for the analysis engine."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from scenariotrace.domain.models import OrphanCategory, Priority, UnitTest


class MatchCandidate(BaseModel):
    index: int = Field(ge=0)
    score: float = Field(ge=0.0, le=1.0)


class OrphanClassification(BaseModel):
    category: OrphanCategory
    subtype: str
    reason: str
    priority_floor: Optional[Priority] = None


class SimilarityMatcherPort(Protocol):
    def compare(self, text: str, candidates: Sequence[str]) -> List[MatchCandidate]:
        """Rank ``candidates`` against ``text``, best first."""
        ...


class OrphanClassifierPort(Protocol):
    def classify(self, test: UnitTest) -> OrphanClassification:
        ...
