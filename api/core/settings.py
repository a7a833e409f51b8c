"""
Environment-backed settings helpers.

Every setting is read at call time so tests can override it with
`monkeypatch.setenv`. Blank values fall back to the default.
"""

from __future__ import annotations

import os


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def env_float_tuple(name: str, default: tuple[float, ...]) -> tuple[float, ...]:
    """
    Parse a comma-separated list of floats, e.g. `MODEL_MEAN=0.485,0.456,0.406`.

    Unlike `env_int`, a malformed value raises: these settings shape model
    input and silently falling back would produce wrong predictions.
    """
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return tuple(float(part) for part in raw.split(","))
    except ValueError as exc:
        raise ValueError(f"{name} must be a comma-separated list of numbers.") from exc
