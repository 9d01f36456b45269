"""Composition root for scenariotrace."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from scenariotrace.config import MatcherConfig, ScenarioTraceConfig
from scenariotrace.domain.models import AnalysisRequest, ScenarioSource, ServiceSummary
from scenariotrace.domain.ports import OrphanClassifierPort, SimilarityMatcherPort
from scenariotrace.errors import InconsistentInputError
from scenariotrace.infra.guarded_matcher import GuardedMatcher
from scenariotrace.infra.llm_matcher import LlmMatcher
from scenariotrace.infra.token_matcher import TokenOverlapMatcher
from scenariotrace.loaders import load_apis, load_scenarios, load_tests
from scenariotrace.paths import resolve_optional, resolve_path, resolve_repo_root
from scenariotrace.tagging.llm_orphan_classifier import LlmOrphanClassifier
from scenariotrace.tagging.orphan_rules import RuleOrphanClassifier
from scenariotrace.usecases.analyze_service import analyze_service
from scenariotrace.usecases.gate import GateResult, evaluate_gate


@dataclass
class InputPaths:
    baseline: Path
    tests: Path
    apis: Path
    report: Path
    ai_suggestions: Optional[Path] = None


@dataclass
class ServiceBundle:
    config: ScenarioTraceConfig
    orphan_classifier: OrphanClassifierPort

    def analyze(
        self,
        request: AnalysisRequest,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ServiceSummary:
        # A fresh matcher per run keeps caches from leaking across services.
        with build_matcher(self.config.matcher) as matcher:
            return analyze_service(
                request,
                matcher,
                policy=self.config.analysis.completeness_policy,
                orphan_classifier=self.orphan_classifier,
                max_workers=self.config.matcher.max_workers,
                cancel_event=cancel_event,
            )

    def evaluate_gate(self, summary: ServiceSummary) -> GateResult:
        return evaluate_gate(summary, self.config.gate)


def resolve_input_paths(config_path: Path, config: ScenarioTraceConfig) -> InputPaths:
    repo_root = resolve_repo_root(config_path, config.project.repo_root)
    report_dir = resolve_path(repo_root, config.outputs.report_dir)
    return InputPaths(
        baseline=resolve_path(repo_root, config.inputs.baseline),
        tests=resolve_path(repo_root, config.inputs.tests),
        apis=resolve_path(repo_root, config.inputs.apis),
        report=report_dir / config.outputs.report_filename,
        ai_suggestions=resolve_optional(repo_root, config.inputs.ai_suggestions),
    )


def build_request(paths: InputPaths) -> AnalysisRequest:
    baseline = load_scenarios(str(paths.baseline), ScenarioSource.baseline)
    scenarios = list(baseline.scenarios)
    if paths.ai_suggestions is not None and paths.ai_suggestions.exists():
        suggested = load_scenarios(str(paths.ai_suggestions), ScenarioSource.ai_suggested)
        if suggested.service != baseline.service:
            raise InconsistentInputError(
                f"Suggestions are for service {suggested.service!r}, "
                f"baseline is for {baseline.service!r}"
            )
        scenarios.extend(suggested.scenarios)
    return AnalysisRequest(
        service=baseline.service,
        apis=load_apis(str(paths.apis)),
        scenarios=scenarios,
        tests=load_tests(str(paths.tests)),
    )


def build_matcher(config: MatcherConfig) -> GuardedMatcher:
    inner: SimilarityMatcherPort
    if config.provider == "llm":
        inner = LlmMatcher(llm=config.llm, timeout=config.timeout_s)
    else:
        inner = TokenOverlapMatcher()
    return GuardedMatcher(inner, timeout_s=config.timeout_s, max_workers=config.max_workers)


def build_orphan_classifier(config: ScenarioTraceConfig) -> OrphanClassifierPort:
    if config.analysis.orphan_classifier == "llm":
        return LlmOrphanClassifier(config.matcher.llm, timeout=config.matcher.timeout_s)
    return RuleOrphanClassifier()


def build_services(config: ScenarioTraceConfig) -> ServiceBundle:
    return ServiceBundle(config=config, orphan_classifier=build_orphan_classifier(config))
