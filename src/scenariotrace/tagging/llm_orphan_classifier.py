"""LLM-based orphan test classification."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from scenariotrace.config import LlmConfig
from scenariotrace.domain.models import OrphanCategory, Priority, UnitTest
from scenariotrace.domain.ports import OrphanClassification, OrphanClassifierPort
from scenariotrace.infra.llm_client import chat_json
from scenariotrace.tagging.orphan_rules import RuleOrphanClassifier

logger = logging.getLogger(__name__)


class LlmOrphanClassifier:
    """Ask a hosted model for TECHNICAL/BUSINESS; fall back to the rule table on failure."""

    def __init__(
        self,
        llm: LlmConfig,
        *,
        timeout: float = 30.0,
        fallback: Optional[OrphanClassifierPort] = None,
    ) -> None:
        self.llm = llm
        self.timeout = timeout
        self.fallback = fallback or RuleOrphanClassifier()

    def classify(self, test: UnitTest) -> OrphanClassification:
        try:
            data = chat_json(self.llm, self._prompt(test), timeout=self.timeout)
            classification = self._coerce(data)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("LLM orphan classification failed for %s: %s", test.id, exc)
            return self.fallback.classify(test)
        if classification is None:
            logger.warning("LLM orphan classification for %s was invalid; using rules", test.id)
            return self.fallback.classify(test)
        return classification

    def _prompt(self, test: UnitTest) -> str:
        return (
            "Categorize this unit test as TECHNICAL (infrastructure/utility test that needs no "
            "business scenario, e.g. entity, DTO, mapper, repository) or BUSINESS (a test that "
            "should have a business scenario, e.g. controller or service behaviour).\n"
            'Return JSON with keys: category ("TECHNICAL"|"BUSINESS"), subtype (string), '
            'priority ("P0"|"P1"|"P2"|"P3"), reason (string).\n'
            f"Test name: {test.raw_name}\n"
            f"Test description: {test.display_text}\n"
            f"File: {test.file_path}"
        )

    def _coerce(self, data: Dict[str, Any]) -> Optional[OrphanClassification]:
        category = str(data.get("category", "")).upper()
        if category not in {item.value for item in OrphanCategory}:
            return None
        priority = data.get("priority")
        floor = None
        if priority in {item.value for item in Priority}:
            floor = Priority(priority)
        subtype = str(data.get("subtype") or "AI Classified")
        reason = str(data.get("reason") or "Classified by hosted model")
        return OrphanClassification(
            category=OrphanCategory(category),
            subtype=subtype,
            reason=reason,
            priority_floor=floor,
        )
