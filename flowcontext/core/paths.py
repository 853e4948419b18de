from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

ENV_STORE_DIR = "FLOWCTX_STORE_DIR"
ENV_PROJECT_DIR = "FLOWCTX_PROJECT_DIR"


def get_project_dir() -> Path:
    return Path(os.environ.get(ENV_PROJECT_DIR) or os.getcwd())


def get_store_dir(project_dir: Optional[Path] = None) -> Path:
    """Return the directory holding saved solutions.

    Defaults to `<project_dir>/.flowcontext/solutions`.
    Override with `FLOWCTX_STORE_DIR` (absolute path recommended).
    """

    override = (os.environ.get(ENV_STORE_DIR) or "").strip()
    if override:
        p = Path(override)
        return p if p.is_absolute() else (Path.cwd() / p).resolve()
    base = project_dir if project_dir is not None else get_project_dir()
    return base / ".flowcontext" / "solutions"


def solution_filename(solution_name: str) -> str:
    """File name for a solution ("Order Flow" -> "order-flow.json")."""
    slug = "".join(ch if ch.isalnum() else "-" for ch in solution_name.strip().lower())
    while "--" in slug:
        slug = slug.replace("--", "-")
    return f"{slug.strip('-') or 'solution'}.json"
