"""Utilities to normalize file paths into languages and project names."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

UNKNOWN_LANGUAGE = "unknown"

_DOCUMENTATION_MARKERS = ("readme",)
_DOCUMENTATION_SUFFIXES = (".md",)


def language_for_extension(extension: Optional[str]) -> str:
    """Turn ``".TS"`` into ``"ts"``; files without an extension are ``unknown``."""
    if not extension:
        return UNKNOWN_LANGUAGE
    normalized = extension.strip().lstrip(".").lower()
    return normalized or UNKNOWN_LANGUAGE


def is_documentation(path: Path) -> bool:
    """README and Markdown files, which report writers touch on their own."""
    name = path.name.lower()
    return any(marker in name for marker in _DOCUMENTATION_MARKERS) or name.endswith(
        _DOCUMENTATION_SUFFIXES
    )


def resolve_project_name(
    path: Path,
    *,
    project_name: Optional[str] = None,
    workspace_root: Optional[Path] = None,
) -> str:
    """Pick the project a file belongs to.

    An explicit project name wins, then the workspace directory containing the
    file, then the file's parent directory.
    """
    if project_name and project_name.strip():
        return project_name.strip()
    if workspace_root is not None:
        root = Path(workspace_root)
        if path == root or root in path.parents:
            return root.name or str(root)
    return path.parent.name or str(path.parent)
