"""Hashing utilities."""

import hashlib
import json
from typing import Sequence


def comparison_key(text: str, candidates: Sequence[str]) -> str:
    """Deterministic cache key for one matcher comparison."""
    payload = json.dumps([text, list(candidates)], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
