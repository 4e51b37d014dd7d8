"""
Application-level exceptions.

Scoring, routing and tier adaptation are total functions: sparse data falls
back to documented defaults and never raises. The only failure class is a
configuration inconsistency (unknown tier, venue or transaction type name,
out-of-range sensitivity, bad capacity, malformed identity hex), which is a
programming error and is surfaced to the caller instead of silently defaulted.
"""

from __future__ import annotations

from typing import Any


class ShadowIntelError(Exception):
    """Base error with a stable code for API and log consumers."""

    code = "shadowintel_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.message, **self.details}


class ConfigurationError(ShadowIntelError):
    """Unknown enum value, venue tag or invalid engine parameter."""

    code = "configuration_error"
