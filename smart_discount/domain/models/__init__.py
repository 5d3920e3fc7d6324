"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    DemandForecast,
    DiscountType,
    EventType,
    MarketPosition,
    RiskLevel,

    # Entities
    ChatReply,
    Discount,
    DiscountRecommendation,
    DiscountRequest,
    DiscountSuggestion,
    HistoricalSignal,
    MarketSignal,
    ProductSignal,
    ProfitProtectionResult,
    UserEvent,
)

__all__ = [
    # Enums
    "DemandForecast",
    "DiscountType",
    "EventType",
    "MarketPosition",
    "RiskLevel",

    # Entities
    "ChatReply",
    "Discount",
    "DiscountRecommendation",
    "DiscountRequest",
    "DiscountSuggestion",
    "HistoricalSignal",
    "MarketSignal",
    "ProductSignal",
    "ProfitProtectionResult",
    "UserEvent",
]
