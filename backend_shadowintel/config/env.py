"""
Environment variable loading for ShadowIntel.

- SHADOWINTEL_ENABLE_ROUTING / _REPUTATION / _PRIVACY / _FRAUD: feature toggles (default on)
- SHADOWINTEL_SENSITIVITY: anomaly sensitivity in [0, 1] (default 0.5)
- SHADOWINTEL_PRESERVE_PRIVACY: hash-derived fraud features (default on)
- SHADOWINTEL_DEFAULT_TIER: requested tier when the caller gives none (default high)
- SHADOWINTEL_*_HISTORY_CAPACITY: bounded history sizes
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_shadowintel/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def load_shadowintel_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag; unrecognized values fall back to default."""
    raw = (os.getenv(name) or "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default
