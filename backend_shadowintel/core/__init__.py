"""
Core utilities: shared exceptions and identity-key helpers.

Used across history store, analysis engine, routing, privacy adapter and API server.
"""

from backend_shadowintel.core.exceptions import ConfigurationError, ShadowIntelError
from backend_shadowintel.core.identity import identity_key_hex, parse_identity_key

__all__ = [
    "ConfigurationError",
    "ShadowIntelError",
    "identity_key_hex",
    "parse_identity_key",
]
