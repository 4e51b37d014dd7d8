# Composition layer: decision facade and the toggled intelligence engine.
from backend_shadowintel.engine.bridge import OptimizedPayment, PaymentBridge, PaymentRequest, estimate_cost
from backend_shadowintel.engine.intelligence import IntelligenceEngine

__all__ = [
    "IntelligenceEngine",
    "OptimizedPayment",
    "PaymentBridge",
    "PaymentRequest",
    "estimate_cost",
]
