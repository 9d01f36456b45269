"""Path resolution helpers for config-driven paths."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


def is_absolute_like(path: str) -> bool:
    return Path(path).is_absolute() or path.startswith("~")


def resolve_repo_root(config_file_path: Path, repo_root: str) -> Path:
    config_dir = config_file_path.resolve().parent
    if is_absolute_like(repo_root):
        return Path(repo_root).expanduser().resolve()
    return (config_dir / repo_root).resolve()


def resolve_path(repo_root_abs: Path, path: str) -> Path:
    if is_absolute_like(path):
        return Path(path).expanduser().resolve()
    return (repo_root_abs / path).resolve()


def resolve_optional(repo_root_abs: Path, path: Optional[str]) -> Optional[Path]:
    if not path:
        return None
    return resolve_path(repo_root_abs, path)
