"""
Backend ShadowIntel: decision engine for private multi-venue payments.

Selects an execution venue and a privacy/proof tier for a pending payment,
scores its fraud risk and estimates the paying identity's reputation.
Modular architecture with clear separation between history storage,
feature extraction, scoring, routing, tier adaptation and the API server.
"""

__version__ = "0.1.0"
