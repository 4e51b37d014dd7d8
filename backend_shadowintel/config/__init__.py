"""
Configuration management for the Backend ShadowIntel engine.

Loads and validates settings from environment variables and an optional
.env file. Exposes a single source of truth for engine configuration.
"""

from backend_shadowintel.config.settings import IntelligenceSettings, get_settings  # noqa: F401

__all__ = ["IntelligenceSettings", "get_settings"]
