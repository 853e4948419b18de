"""Resolver limits.

Defaults are generous for hand-built editor graphs; override through the
environment for unusually large solutions.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MAX_BRANCH_PATH_LENGTH = 32
DEFAULT_MAX_EXPANSIONS = 10_000

ENV_MAX_BRANCH_PATH = "FLOWCTX_MAX_BRANCH_PATH"
ENV_MAX_EXPANSIONS = "FLOWCTX_MAX_EXPANSIONS"


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class ResolverConfig:
    # Longest branch path recorded before further branch points are dropped.
    max_branch_path_length: int = DEFAULT_MAX_BRANCH_PATH_LENGTH
    # Upper bound on (state, branch path) expansions per resolve() call.
    max_expansions: int = DEFAULT_MAX_EXPANSIONS

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        return cls(
            max_branch_path_length=_env_int(ENV_MAX_BRANCH_PATH, DEFAULT_MAX_BRANCH_PATH_LENGTH),
            max_expansions=_env_int(ENV_MAX_EXPANSIONS, DEFAULT_MAX_EXPANSIONS),
        )
