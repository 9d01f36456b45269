"""Minimal client for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import json
import re
from typing import Any, Dict

import requests

from scenariotrace.config import LlmConfig

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

SYSTEM_PROMPT = "You are a strict evaluator. Reply with strict JSON only, no extra text."


def chat_json(llm: LlmConfig, prompt: str, *, timeout: float) -> Dict[str, Any]:
    """Send one prompt and decode the JSON object in the reply.

    Raises ``requests.RequestException`` on transport/HTTP failures and
    ``ValueError`` when the reply is not a JSON object.
    """
    response = requests.post(
        f"{llm.base_url.rstrip('/')}/chat/completions",
        headers={"Authorization": f"Bearer {llm.resolve_api_key()}"},
        json={
            "model": llm.model,
            "temperature": llm.temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        },
        timeout=timeout,
    )
    response.raise_for_status()
    payload = response.json()
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError(f"Unexpected completion payload: {exc}") from exc
    if not isinstance(content, str):
        raise ValueError("Completion has no text content")
    return parse_json_reply(content)


def parse_json_reply(content: str) -> Dict[str, Any]:
    match = _FENCE_RE.search(content)
    body = match.group(1) if match else content
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object in the reply")
    return data
