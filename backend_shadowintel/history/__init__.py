# Bounded per-key history: payment patterns, threat observations, route outcomes.
# FIFO eviction; per-key read-modify-write guarded by striped locks.

from backend_shadowintel.history.store import HistoryStore

__all__ = ["HistoryStore"]
