"""Normalization utilities."""

import re


_WHITESPACE_RE = re.compile(r"\s+")
_SLASHES_RE = re.compile(r"/{2,}")
_COLON_PARAM_RE = re.compile(r"/:([A-Za-z_][A-Za-z0-9_]*)")
_REVIEW_MARKER_RE = re.compile(r"\s*(✅|\U0001F195)\s*$")


def normalize_light(text: str) -> str:
    """Collapse whitespace runs and strip leading/trailing whitespace."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_review_markers(text: str) -> str:
    """Drop the trailing check-mark / NEW markers reviewers leave on scenario lines."""
    return normalize_light(_REVIEW_MARKER_RE.sub("", text))


def normalize_path(path: str) -> str:
    path = normalize_light(path)
    if not path.startswith("/"):
        path = "/" + path
    path = _SLASHES_RE.sub("/", path)
    path = _COLON_PARAM_RE.sub(r"/{\1}", path)
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def normalize_api_key(method: str, path: str) -> str:
    """Build the unique API key: upper-cased method plus normalized path."""
    return f"{normalize_light(method).upper()} {normalize_path(path)}"


def normalize_api_key_text(key: str) -> str:
    """Normalize an already-joined ``"METHOD /path"`` key."""
    if not isinstance(key, str):
        raise ValueError(f"API key must be a string: {key!r}")
    parts = normalize_light(key).split(" ", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"API key must look like 'METHOD /path': {key!r}")
    return normalize_api_key(parts[0], parts[1])
