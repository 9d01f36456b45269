"""Deterministic text scoring helpers."""

from __future__ import annotations

import re
from difflib import SequenceMatcher
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set

_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")

DEFAULT_STOP_WORDS: FrozenSet[str] = frozenset(
    """
    a an the and or but is are was were be been being have has had do does did
    will would should could may might must can of to in for on at by with from as
    into through during before after above below between under over again then
    once here there when where why how all each every both few more most other
    some such only own same so than too very that this these those what which who
    whom whose if because while up down out off about it its test tests
    """.split()
)

DEFAULT_SYNONYMS: Mapping[str, Sequence[str]] = {
    "create": ("add", "post", "insert", "new", "register"),
    "get": ("fetch", "retrieve", "read", "find", "load"),
    "update": ("modify", "edit", "put", "patch", "change"),
    "delete": ("remove", "destroy", "erase"),
    "list": ("all", "search", "query", "filter"),
    "invalid": ("bad", "malformed", "wrong", "incorrect"),
    "missing": ("absent", "without", "empty", "null", "blank"),
    "unauthorized": ("unauthenticated", "401", "forbidden", "403"),
    "notfound": ("404", "nonexistent", "unknown"),
    "return": ("respond", "response", "yield"),
    "success": ("succeed", "ok", "200", "valid"),
}

_SUFFIXES = ("ing", "ed", "s")


def split_identifier(text: str) -> str:
    """Turn ``testGetCustomerById_NotFound`` into ``test Get Customer By Id NotFound``."""
    text = _ACRONYM_RE.sub(r"\1 \2", text)
    return _CAMEL_RE.sub(r"\1 \2", text)


def stem(word: str) -> str:
    for suffix in _SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            if suffix == "s" and word.endswith("ss"):
                return word
            return word[: -len(suffix)]
    return word


def tokenize(text: str, stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> List[str]:
    stops = set(stop_words)
    raw = _TOKEN_SPLIT_RE.split(split_identifier(text).lower())
    return [stem(token) for token in raw if token and token not in stops]


def build_synonym_index(synonyms: Mapping[str, Sequence[str]]) -> Dict[str, Set[str]]:
    """Symmetric lookup: every word in a group points at the rest of its group."""
    index: Dict[str, Set[str]] = {}
    for head, alternates in synonyms.items():
        group = {stem(word) for word in (head, *alternates)}
        for word in group:
            index.setdefault(word, set()).update(group - {word})
    return index


def overlap_score(left: Set[str], right: Set[str]) -> float:
    if not left or not right:
        return 0.0
    return len(left & right) / max(len(left), len(right))


def jaccard_score(left: Set[str], right: Set[str]) -> float:
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def semantic_score(
    left: Sequence[str],
    right: Set[str],
    synonym_index: Mapping[str, Set[str]],
) -> float:
    """Share of ``left`` tokens found in ``right`` directly (1.0) or via a synonym (0.8)."""
    if not left:
        return 0.0
    total = 0.0
    for token in left:
        if token in right:
            total += 1.0
        elif synonym_index.get(token, set()) & right:
            total += 0.8
    return total / len(left)


def edit_score(left: Sequence[str], right: Sequence[str]) -> float:
    if not left or not right:
        return 0.0
    return SequenceMatcher(None, " ".join(left), " ".join(right), autojunk=False).ratio()
