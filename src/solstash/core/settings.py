from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
UNBOUNDED_VALUES = frozenset({"none", "null", "nil"})


def _env_value(name: str) -> Optional[str]:
    """Stripped value of ``name``, or None when unset or blank."""
    raw = os.getenv(name, "").strip()
    return raw or None


def _env_flag(name: str, default: bool) -> bool:
    raw = _env_value(name)
    if raw is None:
        return default
    return raw.lower() in TRUE_VALUES


def _env_positive_int(name: str, default: Optional[int]) -> Optional[int]:
    """
    Read a strictly positive integer; ``none`` disables the bound.

    Zero, negative and unparseable values fall back to ``default``.
    """
    raw = _env_value(name)
    if raw is None:
        return default
    if raw.lower() in UNBOUNDED_VALUES:
        return None
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_seconds(name: str, default: float) -> float:
    raw = _env_value(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    # 0 is meaningful (no timeout); negative durations are not.
    return value if value >= 0 else default


def running_in_ci() -> bool:
    return os.getenv("CI", "").strip().lower() in {"true", "1"}


@dataclass(frozen=True)
class SolstashSettings:
    pulled_artifacts_path: Path = Path(".solstash")
    # None means one worker per pulled item
    pull_concurrency: Optional[int] = 8
    selection_timeout_seconds: float = 30.0
    debug: bool = False
    is_ci: bool = False

    @classmethod
    def from_env(cls) -> "SolstashSettings":
        return cls(
            pulled_artifacts_path=Path(
                os.getenv("SOLSTASH_PULLED_ARTIFACTS_PATH", "") or ".solstash"
            ),
            pull_concurrency=_env_positive_int("SOLSTASH_PULL_CONCURRENCY", 8),
            selection_timeout_seconds=_env_seconds(
                "SOLSTASH_SELECTION_TIMEOUT_SECONDS", 30.0
            ),
            debug=_env_flag("SOLSTASH_DEBUG", False),
            is_ci=running_in_ci(),
        )
