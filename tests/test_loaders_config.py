from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from scenariotrace.config import load_config
from scenariotrace.domain.models import CategoryTag, Priority, ScenarioSource
from scenariotrace.loaders import load_apis, load_scenarios, load_tests, parse_scenarios
from scenariotrace.server.wire import build_request, resolve_input_paths
from scenariotrace.yaml_utils import load_yaml

BASELINE = """
service: customer-service
POST /v1/customers:
  happy_case:
    - Create customer with valid data ✅
  error_case:
    - id: CUST-ERR-1
      text: Return 400 for invalid email
      priority: p0
    - description: Legacy rule no longer enforced
      active: false
  misc:
    - Accepts unicode names
GET /v1/customers/:id:
"""


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_parse_scenarios_yaml(tmp_path: Path):
    document = load_scenarios(str(_write(tmp_path / "baseline.yml", BASELINE)), ScenarioSource.baseline)
    assert document.service == "customer-service"
    scenarios = document.scenarios
    assert [s.id for s in scenarios] == ["CUSTOM-B-001", "CUST-ERR-1", "CUSTOM-B-003", "CUSTOM-B-004"]
    assert scenarios[0].text == "Create customer with valid data"
    assert scenarios[1].priority == Priority.P0
    assert scenarios[2].active is False
    assert scenarios[3].category == CategoryTag.uncategorized
    assert all(s.api_key == "POST /v1/customers" for s in scenarios)


def test_suggestion_ids_use_their_own_sequence():
    document = parse_scenarios(
        {"service": "billing", "GET /v1/invoices": {"happy_case": ["List invoices"]}},
        ScenarioSource.ai_suggested,
    )
    assert document.scenarios[0].id == "BILLIN-S-001"
    assert document.scenarios[0].source == ScenarioSource.ai_suggested


def test_parse_scenarios_requires_service():
    with pytest.raises(ValueError):
        parse_scenarios({"GET /x": {"happy_case": ["a"]}}, ScenarioSource.baseline)


def test_load_tests_and_apis(tmp_path: Path):
    tests_path = tmp_path / "tests.json"
    tests_path.write_text(
        json.dumps(
            {
                "tests": [
                    {
                        "id": "T-1",
                        "raw_name": "testGetCustomerById",
                        "file_path": "src/test/CustomerControllerTest.java",
                        "line_number": 14,
                        "api_key": "get /v1/customers/:id",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    apis_path = tmp_path / "apis.json"
    apis_path.write_text(json.dumps([{"method": "get", "path": "v1/customers/:id"}]), encoding="utf-8")

    tests = load_tests(str(tests_path))
    apis = load_apis(str(apis_path))
    assert tests[0].api_key == "GET /v1/customers/{id}"
    assert tests[0].description == "testGetCustomerById"
    assert apis[0].key == "GET /v1/customers/{id}"


def test_api_key_must_match_method_and_path():
    from scenariotrace.domain.models import Api

    with pytest.raises(ValidationError):
        Api(key="POST /v1/customers", method="GET", path="/v1/customers")


def test_load_yaml_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_yaml(str(tmp_path / "missing.yml"))
    assert load_yaml(str(_write(tmp_path / "empty.yml", ""))) == {}
    with pytest.raises(ValueError):
        load_yaml(str(_write(tmp_path / "list.yml", "- a\n- b\n")))


def test_config_defaults(tmp_path: Path):
    config = load_config(
        str(
            _write(
                tmp_path / "scenariotrace.yml",
                """
                version: 1
                project:
                  name: demo
                inputs:
                  baseline: baseline.yml
                  tests: tests.json
                  apis: apis.json
                """,
            )
        )
    )
    assert config.matcher.provider == "token"
    assert config.analysis.completeness_policy.value == "flag"
    assert config.gate.block_on_p0_gaps is True


@pytest.mark.parametrize(
    "extra",
    [
        "matcher:\n  provider: llm\n",
        "analysis:\n  orphan_classifier: llm\n",
        "matcher:\n  timeout_s: 0\n",
    ],
)
def test_config_rejects_inconsistent_sections(tmp_path: Path, extra: str):
    base = textwrap.dedent(
        """
        version: 1
        project:
          name: demo
        inputs:
          baseline: baseline.yml
          tests: tests.json
          apis: apis.json
        """
    )
    path = tmp_path / "scenariotrace.yml"
    path.write_text(base + extra, encoding="utf-8")
    with pytest.raises(ValidationError):
        load_config(str(path))


def test_build_request_resolves_paths_against_repo_root(tmp_path: Path):
    repo = tmp_path / "repo"
    (repo / "qa").mkdir(parents=True)
    _write(repo / "qa" / "baseline.yml", BASELINE)
    _write(
        repo / "qa" / "suggestions.yml",
        """
        service: customer-service
        POST /v1/customers:
          error_case:
            - Reject duplicate email
        """,
    )
    (repo / "tests.json").write_text("[]", encoding="utf-8")
    (repo / "apis.json").write_text(
        json.dumps([{"method": "POST", "path": "/v1/customers"}]), encoding="utf-8"
    )
    config_dir = tmp_path / "cfg"
    config_dir.mkdir()
    config_path = _write(
        config_dir / "scenariotrace.yml",
        """
        version: 1
        project:
          name: demo
          repo_root: ../repo
        inputs:
          baseline: qa/baseline.yml
          ai_suggestions: qa/suggestions.yml
          tests: tests.json
          apis: apis.json
        """,
    )
    config = load_config(str(config_path))
    paths = resolve_input_paths(config_path, config)
    assert paths.report == (repo / "reports" / "coverage-summary.json").resolve()

    request = build_request(paths)
    assert request.service == "customer-service"
    assert [s.source for s in request.scenarios].count(ScenarioSource.ai_suggested) == 1
    assert request.tests == []


@pytest.mark.parametrize("value, expected", [("false", False), ("No", False), (0, False), ("true", True), (True, True)])
def test_active_flag_accepts_quoted_values(value, expected):
    document = parse_scenarios(
        {"service": "billing", "GET /v1/invoices": {"happy_case": [{"text": "List invoices", "active": value}]}},
        ScenarioSource.baseline,
    )
    assert document.scenarios[0].active is expected


def test_active_flag_rejects_unknown_words():
    with pytest.raises(ValueError):
        parse_scenarios(
            {"service": "billing", "GET /v1/invoices": {"happy_case": [{"text": "List invoices", "active": "maybe"}]}},
            ScenarioSource.baseline,
        )
