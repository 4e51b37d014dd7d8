"""
structlog setup for decision logs.

Every record carries event_type, level, logger and an ISO timestamp. Identity
keys are pseudonyms: any `identity` field is cut to a short hex prefix before
rendering, so full keys never reach the log stream.

LOG_LEVEL picks the threshold; LOG_FORMAT=json (default) or console.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

IDENTITY_LOG_CHARS = 16
IDENTITY_FIELD = "identity"


def short_identity(identity_hex: str) -> str:
    """Truncate an identity hex string for log output."""
    if len(identity_hex) > IDENTITY_LOG_CHARS:
        return identity_hex[:IDENTITY_LOG_CHARS] + "..."
    return identity_hex


def _stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _mask_identity(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    identity = event_dict.get(IDENTITY_FIELD)
    if isinstance(identity, (bytes, bytearray)):
        identity = bytes(identity).hex()
    if isinstance(identity, str):
        event_dict[IDENTITY_FIELD] = short_identity(identity)
    return event_dict


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        _stamp,
        _event_type,
        _mask_identity,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Module logger: get_logger(__name__).info("route_selected", venue="solana", tier="high")."""
    return structlog.get_logger(name).bind(logger=name)


def bind_identity(identity_hex: str) -> structlog.BoundLogger:
    """Logger with the (truncated) identity bound to every subsequent call."""
    return get_logger("backend_shadowintel").bind(identity=short_identity(identity_hex))
