"""Environment helpers: .env loading and prefixed credential lookup."""
from __future__ import annotations

import os
from typing import Dict, Iterable, Tuple


def load_env(*args, **kwargs):
    """Proxy to python-dotenv that surfaces actionable errors when missing."""
    try:
        from dotenv import load_dotenv as _load_dotenv
    except ModuleNotFoundError as exc:  # pragma: no cover - dependency missing
        raise RuntimeError(
            "python-dotenv is not installed. Install project dependencies with "
            "`pip install -e '.[test]'` before running commands."
        ) from exc
    return _load_dotenv(*args, **kwargs)


def env_key(prefix: str, suffix: str) -> str:
    return f"{prefix.upper()}_{suffix}"


def read_prefixed(prefix: str, suffixes: Iterable[str]) -> Tuple[Dict[str, str], list[str]]:
    """Return ``(values, missing)`` for ``{PREFIX}_{SUFFIX}`` environment variables."""
    values: Dict[str, str] = {}
    missing: list[str] = []
    for suffix in suffixes:
        key = env_key(prefix, suffix)
        value = os.getenv(key)
        if not value:
            missing.append(key)
        else:
            values[suffix] = value
    return values, missing


__all__ = ["env_key", "load_env", "read_prefixed"]
