"""Loaders for baseline/suggestion YAML and scanner JSON output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from scenariotrace.domain.models import Api, CategoryTag, Priority, Scenario, ScenarioSource, UnitTest
from scenariotrace.normalize import strip_review_markers
from scenariotrace.yaml_utils import load_yaml

RESERVED_KEYS = {"service"}
_TEXT_KEYS = ("text", "description", "scenario")


@dataclass
class ScenarioDocument:
    service: str
    scenarios: List[Scenario]


class ScenarioIdGenerator:
    """Sequential ids per service and source, e.g. ``CUSTOM-B-001``."""

    def __init__(self, service: str, source: ScenarioSource) -> None:
        sanitized = re.sub(r"[^A-Z0-9]", "", service.upper())[:6] or "SVC"
        marker = "B" if source == ScenarioSource.baseline else "S"
        self._prefix = f"{sanitized}-{marker}"
        self._counter = 0

    def next_id(self) -> str:
        self._counter += 1
        return f"{self._prefix}-{self._counter:03d}"


def load_scenarios(path: str, source: ScenarioSource) -> ScenarioDocument:
    payload = load_yaml(path)
    return parse_scenarios(payload, source, origin=path)


def parse_scenarios(
    payload: Dict[str, Any],
    source: ScenarioSource,
    *,
    origin: str = "<memory>",
) -> ScenarioDocument:
    service = str(payload.get("service") or "").strip()
    if not service:
        raise ValueError(f"Missing 'service' in {origin}")
    ids = ScenarioIdGenerator(service, source)
    scenarios: List[Scenario] = []
    for api_key, categories in payload.items():
        if api_key in RESERVED_KEYS:
            continue
        if categories is None:
            continue
        if not isinstance(categories, dict):
            raise ValueError(f"API {api_key!r} in {origin} must map categories to scenario lists")
        for category_name, items in categories.items():
            category = _category(category_name)
            for item in items or []:
                scenarios.append(_scenario(item, api_key, category, source, ids, origin))
    return ScenarioDocument(service=service, scenarios=scenarios)


def load_tests(path: str) -> List[UnitTest]:
    return [UnitTest(**item) for item in _load_json_list(path, "tests")]


def load_apis(path: str) -> List[Api]:
    return [Api(**item) for item in _load_json_list(path, "apis")]


def _category(name: str) -> CategoryTag:
    try:
        return CategoryTag(str(name))
    except ValueError:
        return CategoryTag.uncategorized


def _scenario(
    item: Any,
    api_key: str,
    category: CategoryTag,
    source: ScenarioSource,
    ids: ScenarioIdGenerator,
    origin: str,
) -> Scenario:
    if isinstance(item, str):
        return Scenario(
            id=ids.next_id(),
            api_key=api_key,
            category=category,
            text=strip_review_markers(item),
            source=source,
        )
    if not isinstance(item, dict):
        raise ValueError(f"Unsupported scenario entry under {api_key!r} in {origin}: {item!r}")
    text = _first_text(item)
    if text is None:
        raise ValueError(f"Scenario entry under {api_key!r} in {origin} has no text")
    generated = ids.next_id()
    priority: Optional[Priority] = None
    if item.get("priority"):
        priority = Priority(str(item["priority"]).upper())
    return Scenario(
        id=str(item.get("id") or generated),
        api_key=api_key,
        category=category,
        text=strip_review_markers(text),
        priority=priority,
        source=source,
        active=_active_flag(item.get("active", True), api_key, origin),
    )


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def _active_flag(value: Any, api_key: str, origin: str) -> bool:
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"Invalid 'active' value {value!r} under {api_key!r} in {origin}")


def _first_text(item: Dict[str, Any]) -> Optional[str]:
    for key in _TEXT_KEYS:
        value = item.get(key)
        if value:
            return str(value)
    return None


def _load_json_list(path: str, key: str) -> List[Dict[str, Any]]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"JSON file not found: {file_path}")
    data = json.loads(file_path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of {key} in {file_path}")
    return data
