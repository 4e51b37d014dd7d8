"""
API server package: HTTP interface over the intelligence engine.

Exposes route selection, risk assessment, tier adaptation and reputation
prediction to clients. Holds no state of its own; the engine built in the
app lifespan owns all history.
"""
