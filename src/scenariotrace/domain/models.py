"""Domain models for scenario traceability analysis."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scenariotrace.normalize import normalize_api_key, normalize_api_key_text, normalize_light


class Priority(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        return PRIORITY_ORDER.index(self)


PRIORITY_ORDER = [Priority.P0, Priority.P1, Priority.P2, Priority.P3]


class CategoryTag(str, Enum):
    happy_case = "happy_case"
    error_case = "error_case"
    edge_case = "edge_case"
    security = "security"
    uncategorized = "uncategorized"


class ScenarioSource(str, Enum):
    baseline = "baseline"
    ai_suggested = "ai_suggested"


class Confidence(str, Enum):
    high = "HIGH"
    medium = "MEDIUM"
    low = "LOW"
    none = "NONE"


class CoverageVerdict(str, Enum):
    fully_covered = "FULLY_COVERED"
    partially_covered = "PARTIALLY_COVERED"
    not_covered = "NOT_COVERED"


class CompletenessPolicy(str, Enum):
    flag = "flag"
    downgrade = "downgrade"


class OrphanCategory(str, Enum):
    technical = "TECHNICAL"
    business = "BUSINESS"


class GapKind(str, Enum):
    not_covered = "NOT_COVERED"
    partial = "PARTIAL"
    not_covered_suggested = "NOT_COVERED_SUGGESTED"
    orphan_unit_test = "ORPHAN_UNIT_TEST"
    orphan_api = "ORPHAN_API"


class ApiStatus(str, Enum):
    tracked = "TRACKED"
    orphan = "ORPHAN"


class Api(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    method: str
    path: str

    @model_validator(mode="before")
    @classmethod
    def _derive_key(cls, data):
        if isinstance(data, dict) and data.get("method") and data.get("path"):
            derived = normalize_api_key(data["method"], data["path"])
            if data.get("key") and normalize_api_key_text(data["key"]) != derived:
                raise ValueError(
                    f"API key {data['key']!r} does not match {data['method']} {data['path']}"
                )
            data = {**data, "key": derived}
        return data


class Scenario(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    api_key: str
    category: CategoryTag = CategoryTag.uncategorized
    text: str
    priority: Optional[Priority] = None
    source: ScenarioSource = ScenarioSource.baseline
    active: bool = True

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: str) -> str:
        return normalize_api_key_text(value)

    @field_validator("text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        value = normalize_light(value)
        if not value:
            raise ValueError("Scenario text must not be empty")
        return value


class UnitTest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_text: str = ""
    raw_name: str = ""
    file_path: str = ""
    line_number: int = 0
    api_key: str

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: str) -> str:
        return normalize_api_key_text(value)

    @model_validator(mode="after")
    def _require_description(self) -> "UnitTest":
        if not self.display_text.strip() and not self.raw_name.strip():
            raise ValueError(f"Test {self.id} has neither display_text nor raw_name")
        return self

    @property
    def description(self) -> str:
        return normalize_light(self.display_text) or normalize_light(self.raw_name)


class MatchResult(BaseModel):
    scenario_id: str
    test_id: Optional[str] = None
    confidence: Confidence
    score: float = Field(ge=0.0, le=1.0)
    explanation: str
    matcher_unavailable: bool = False


class ScenarioVerdict(BaseModel):
    scenario_id: str
    api_key: str
    text: str
    priority: Priority
    verdict: CoverageVerdict
    match: MatchResult
    adjusted_for_completeness: bool = False


class OrphanTest(BaseModel):
    test: UnitTest
    category: OrphanCategory
    subtype: str
    priority: Priority
    reason: str
    suggested_scenario_text: Optional[str] = None
    needs_manual_authoring: bool = False


class OrphanApi(BaseModel):
    api: Api
    priority: Priority


class Gap(BaseModel):
    api_key: str
    priority: Priority
    kind: GapKind
    description: str
    recommendation: str
    scenario_id: Optional[str] = None
    test_id: Optional[str] = None
    matcher_unavailable: bool = False


class ScopeMismatch(BaseModel):
    entity: str
    entity_id: str
    api_key: str


class ApiSummary(BaseModel):
    api_key: str
    status: ApiStatus
    active_scenarios: int
    fully_covered: int
    partially_covered: int
    not_covered: int
    coverage_percent: Optional[float]
    test_count: int
    orphan_test_count: int
    suggested_missing: int
    baseline_incomplete: bool = False


class ServiceSummary(BaseModel):
    service: str
    coverage_percent: float
    total_active_scenarios: int
    fully_covered: int
    partially_covered: int
    not_covered: int
    matcher_unavailable_count: int
    completeness_policy: CompletenessPolicy
    no_data: bool
    scenario_verdicts: List[ScenarioVerdict]
    gaps: List[Gap]
    gap_histogram: Dict[str, int]
    blocking_gap_count: int
    orphan_tests: List[OrphanTest]
    orphan_apis: List[OrphanApi]
    api_summaries: List[ApiSummary]
    scope_mismatches: List[ScopeMismatch] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class AnalysisRequest(BaseModel):
    service: str
    apis: List[Api]
    scenarios: List[Scenario] = Field(default_factory=list)
    tests: List[UnitTest] = Field(default_factory=list)
