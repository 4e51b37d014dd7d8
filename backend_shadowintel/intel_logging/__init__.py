"""
Structured logging for Backend ShadowIntel.

JSON logs with timestamp, event_type and decision context (identity, venue, tier).
Use get_logger() in all engine modules for aggregation-friendly output.
"""

from backend_shadowintel.intel_logging.logger import bind_identity, get_logger, short_identity

__all__ = ["bind_identity", "get_logger", "short_identity"]
