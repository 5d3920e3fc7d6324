"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MarketPosition(str, Enum):
    """Coarse product tier, used to pick historical baselines"""
    BUDGET = "budget"
    PREMIUM = "premium"
    LUXURY = "luxury"


class DemandForecast(str, Enum):
    """Category demand outlook"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    """How close a recommended discount sits to the safety ceiling"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DiscountType(str, Enum):
    """Kind of offer handed to a shopper"""
    PERCENTAGE = "percentage"
    FLAT_AMOUNT = "flat_amount"
    FREE_SHIPPING = "free_shipping"


class EventType(str, Enum):
    """Shopper behaviour events tracked by the storefront"""
    CART_ABANDON = "cart_abandon"
    PRODUCT_VIEW = "product_view"
    SEARCH_QUERY = "search_query"
    NO_RESULTS_SEARCH = "no_results_search"
    PRICE_HOVER = "price_hover"
    MULTIPLE_PRODUCT_VIEWS = "multiple_product_views"
    SMART_SEARCH = "smart_search"
    CART_ADD = "cart_add"
    PURCHASE = "purchase"


DEFAULT_PROFIT_MARGIN = 0.35
DEFAULT_RATING = 4.0
DEFAULT_INVENTORY = 100
DEFAULT_PRICE = 89.99
DEFAULT_COMPETITOR_PRICES: Tuple[float, ...] = (79.99, 95.99, 84.99)
DEFAULT_SEASONAL_TREND = "normal"


def _coerce_enum(enum_cls, value, default):
    if value is None:
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


def _value(hit: Dict[str, Any], key: str, default):
    value = hit.get(key)
    return default if value is None else value


@dataclass(frozen=True)
class ProductSignal:
    """Product attributes consumed by the recommendation engine"""
    profit_margin: float = DEFAULT_PROFIT_MARGIN
    average_rating: float = DEFAULT_RATING
    inventory_level: int = DEFAULT_INVENTORY
    price: float = DEFAULT_PRICE
    market_position: MarketPosition = MarketPosition.PREMIUM

    def __post_init__(self):
        if self.inventory_level < 0:
            raise ValueError("Inventory level cannot be negative")
        if self.price <= 0:
            raise ValueError("Price must be positive")

    @classmethod
    def from_hit(cls, hit: Optional[Dict[str, Any]]) -> "ProductSignal":
        """Build from a product index record, defaulting absent fields.

        A non-positive price carries no pricing signal and is treated as absent.
        """
        hit = hit or {}
        price = float(_value(hit, "price", DEFAULT_PRICE))
        return cls(
            profit_margin=float(_value(hit, "profit_margin", DEFAULT_PROFIT_MARGIN)),
            average_rating=float(_value(hit, "average_rating", DEFAULT_RATING)),
            inventory_level=int(_value(hit, "inventory_level", DEFAULT_INVENTORY)),
            price=price if price > 0 else DEFAULT_PRICE,
            market_position=_coerce_enum(
                MarketPosition, hit.get("market_position"), MarketPosition.PREMIUM
            ),
        )


@dataclass(frozen=True)
class MarketSignal:
    """Category-level market intelligence"""
    competitor_prices: Tuple[float, ...] = DEFAULT_COMPETITOR_PRICES
    demand_forecast: DemandForecast = DemandForecast.MEDIUM
    seasonal_trend: str = DEFAULT_SEASONAL_TREND
    market_share: Optional[float] = None
    brand_strength: Optional[str] = None

    @classmethod
    def from_hit(cls, hit: Optional[Dict[str, Any]]) -> "MarketSignal":
        hit = hit or {}
        prices = hit.get("competitor_prices")
        if prices is None:
            prices = DEFAULT_COMPETITOR_PRICES
        market_share = hit.get("market_share")
        return cls(
            competitor_prices=tuple(float(p) for p in prices),
            demand_forecast=_coerce_enum(
                DemandForecast, hit.get("demand_forecast"), DemandForecast.MEDIUM
            ),
            seasonal_trend=str(_value(hit, "seasonal_trends", DEFAULT_SEASONAL_TREND)),
            market_share=float(market_share) if market_share is not None else None,
            brand_strength=hit.get("brand_strength"),
        )


@dataclass(frozen=True)
class HistoricalSignal:
    """Past discount performance for a market tier (carried, not scored)"""
    historical_discounts: Tuple[float, ...] = ()
    conversion_rates: Tuple[float, ...] = ()
    revenue_impact: Optional[str] = None
    customer_lifetime_value: Optional[float] = None
    churn_risk: Optional[str] = None
    price_sensitivity: Optional[str] = None

    @classmethod
    def from_hit(cls, hit: Optional[Dict[str, Any]]) -> "HistoricalSignal":
        hit = hit or {}
        clv = hit.get("customer_lifetime_value")
        return cls(
            historical_discounts=tuple(float(d) for d in hit.get("historical_discounts") or ()),
            conversion_rates=tuple(float(r) for r in hit.get("conversion_rates") or ()),
            revenue_impact=hit.get("revenue_impact"),
            customer_lifetime_value=float(clv) if clv is not None else None,
            churn_risk=hit.get("churn_risk"),
            price_sensitivity=hit.get("price_sensitivity"),
        )


@dataclass(frozen=True)
class DiscountRequest:
    """A caller's ask: how deep a discount, for whom, at what local hour"""
    requested_discount: float
    user_id: str = ""
    timestamp_hour: int = 12

    def __post_init__(self):
        if not 0 <= self.requested_discount <= 100:
            raise ValueError("Requested discount must be between 0 and 100")
        if not 0 <= self.timestamp_hour <= 23:
            raise ValueError("Hour must be between 0 and 23")


@dataclass(frozen=True)
class DiscountRecommendation:
    """Engine output. Never persisted."""
    recommended_discount: float
    confidence_score: float
    risk_level: RiskLevel
    reasoning: str
    market_impact: str
    market_insights: Tuple[str, ...]
    alternative_strategies: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_discount": self.recommended_discount,
            "confidence_score": self.confidence_score,
            "risk_level": self.risk_level.value,
            "reasoning": self.reasoning,
            "market_impact": self.market_impact,
            "market_insights": list(self.market_insights),
            "alternative_strategies": list(self.alternative_strategies),
        }


@dataclass(frozen=True)
class UserEvent:
    """Storefront behaviour event"""
    object_id: str
    user_id: str
    event_type: str
    timestamp: datetime
    product_id: Optional[str] = None
    query: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return {
            "objectID": self.object_id,
            "userId": self.user_id,
            "eventType": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "productId": self.product_id,
            "query": self.query,
            "details": dict(self.details),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserEvent":
        ts = record.get("timestamp")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        if not isinstance(ts, datetime):
            ts = datetime.min
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(
            object_id=str(record.get("objectID", "")),
            user_id=str(record.get("userId", "")),
            event_type=str(record.get("eventType", "")),
            timestamp=ts,
            product_id=record.get("productId"),
            query=record.get("query"),
            details=dict(record.get("details") or {}),
        )


@dataclass(frozen=True)
class DiscountSuggestion:
    """Offer proposed by a discount strategy, before profit protection"""
    type: DiscountType
    value: float
    headline: str
    message: str
    reasoning: str

    @property
    def amount(self) -> str:
        if self.type == DiscountType.FLAT_AMOUNT:
            return f"${self.value:.0f} off"
        if self.type == DiscountType.FREE_SHIPPING:
            return "Free Shipping"
        return f"{self.value:.0f}% off"


@dataclass
class Discount:
    """Issued offer. Mutable: deactivated on use or expiry."""
    code: str
    user_id: str
    product_id: Optional[str]
    type: DiscountType
    value: float
    amount: str
    headline: str
    message: str
    reasoning: str
    created_at: datetime
    expires_at: datetime
    active: bool = True
    profit_protected: bool = False
    original_requested_discount: Optional[float] = None
    protection_message: Optional[str] = None

    @property
    def expires_in_seconds(self) -> int:
        return int((self.expires_at - self.created_at).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["created_at"] = self.created_at.isoformat()
        data["expires_at"] = self.expires_at.isoformat()
        data["expires_in_seconds"] = self.expires_in_seconds
        return data


@dataclass(frozen=True)
class ProfitProtectionResult:
    """Outcome of a profit-protection check"""
    allowed: bool
    approved_discount: float
    profit_margin: float
    message: str


@dataclass(frozen=True)
class ChatReply:
    message: str
    type: str
    confidence: float
    suggested_actions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "type": self.type,
            "confidence": self.confidence,
            "suggestedActions": list(self.suggested_actions),
        }
