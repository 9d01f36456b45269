"""Configuration loading for scenariotrace."""

from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from scenariotrace.domain.models import CompletenessPolicy
from scenariotrace.yaml_utils import load_yaml


class ProjectConfig(BaseModel):
    name: str
    repo_root: str = "."


class InputsConfig(BaseModel):
    baseline: str
    ai_suggestions: Optional[str] = None
    tests: str
    apis: str


class OutputConfig(BaseModel):
    report_dir: str = "reports"
    report_filename: str = "coverage-summary.json"


class LlmConfig(BaseModel):
    model: str
    base_url: str
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    temperature: float = 0.0

    def resolve_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            value = os.environ.get(self.api_key_env)
            if value:
                return value
            raise ValueError(f"Environment variable {self.api_key_env} is not set")
        raise ValueError("LLM config needs either api_key or api_key_env")


class MatcherConfig(BaseModel):
    provider: Literal["token", "llm"] = "token"
    timeout_s: float = Field(default=30.0, gt=0)
    max_workers: int = Field(default=4, ge=1)
    llm: Optional[LlmConfig] = None

    @model_validator(mode="after")
    def validate_llm(self) -> "MatcherConfig":
        if self.provider == "llm" and self.llm is None:
            raise ValueError("matcher.provider 'llm' requires a matcher.llm section")
        return self


class AnalysisConfig(BaseModel):
    completeness_policy: CompletenessPolicy = CompletenessPolicy.flag
    orphan_classifier: Literal["rules", "llm"] = "rules"


class GateConfig(BaseModel):
    block_on_p0_gaps: bool = True
    block_on_p1_gaps: bool = False
    minimum_coverage_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    max_business_orphans: Optional[int] = Field(default=None, ge=0)


class ScenarioTraceConfig(BaseModel):
    version: int
    project: ProjectConfig
    inputs: InputsConfig
    outputs: OutputConfig = OutputConfig()
    matcher: MatcherConfig = MatcherConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    gate: GateConfig = GateConfig()

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("Only version 1 config is supported")
        return value

    @model_validator(mode="after")
    def validate_llm_classifier(self) -> "ScenarioTraceConfig":
        if self.analysis.orphan_classifier == "llm" and self.matcher.llm is None:
            raise ValueError("analysis.orphan_classifier 'llm' requires a matcher.llm section")
        return self


def load_config(path: str) -> ScenarioTraceConfig:
    payload = load_yaml(path)
    return ScenarioTraceConfig(**payload)
