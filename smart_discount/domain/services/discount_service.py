"""
DISCOUNT SERVICE
Issue, store and redeem personalised discount offers

RESPONSIBILITIES:
- Track shopper behaviour events
- Decide whether a shopper's behaviour warrants an offer
- Ask the configured strategies for an offer, then apply profit protection
- Keep issued offers in memory until used or expired
"""

from __future__ import annotations

import logging
import math
import secrets
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from smart_discount.domain.models import (
    Discount,
    DiscountSuggestion,
    DiscountType,
    EventType,
    UserEvent,
)
from smart_discount.domain.services.discount_strategies import DiscountStrategy
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.utils.time import local_hour

logger = logging.getLogger(__name__)

CODE_PREFIXES = {
    DiscountType.PERCENTAGE: "SAVE",
    DiscountType.FLAT_AMOUNT: "OFF",
    DiscountType.FREE_SHIPPING: "SHIP",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def should_offer_discount(events: Sequence[UserEvent]) -> bool:
    """Hesitation or search frustration earns an offer."""
    counts: Dict[str, int] = {}
    for event in events:
        counts[event.event_type] = counts.get(event.event_type, 0) + 1

    cart_abandons = counts.get(EventType.CART_ABANDON.value, 0)
    price_hovers = counts.get(EventType.PRICE_HOVER.value, 0)
    multiple_views = counts.get(EventType.MULTIPLE_PRODUCT_VIEWS.value, 0)
    no_results = counts.get(EventType.NO_RESULTS_SEARCH.value, 0)

    logger.debug(
        f"Discount eligibility - Cart abandonments: {cart_abandons}, Price hovers: {price_hovers}, "
        f"Multiple views: {multiple_views}, No results: {no_results}"
    )
    hesitation = cart_abandons > 0 or price_hovers >= 2 or multiple_views >= 3
    return hesitation or no_results > 0


def generate_code(user_id: str, suggestion_type: DiscountType, value: float) -> str:
    prefix = CODE_PREFIXES.get(suggestion_type, "SAVE")
    user_suffix = (user_id[-3:] if user_id else "ANY").upper()
    return f"{prefix}{round(value)}-{user_suffix}-{secrets.token_hex(4).upper()}"


class DiscountService:
    def __init__(
        self,
        catalog: CatalogProvider,
        strategies: Sequence[DiscountStrategy],
        profit_protection: ProfitProtectionService,
        events_index: str = "sdg_user_events",
        expiry_minutes: int = 30,
        clock: Callable[[], datetime] = _utcnow,
        hour_provider: Callable[[], int] = local_hour,
    ):
        if not strategies:
            raise ValueError("At least one discount strategy is required")
        self.catalog = catalog
        self.strategies = list(strategies)
        self.profit_protection = profit_protection
        self.events_index = events_index
        self.expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock
        self._hour_provider = hour_provider
        self._active: Dict[str, Discount] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # BEHAVIOUR
    # ------------------------------------------------------------------

    async def track_event(
        self,
        user_id: str,
        event_type: str,
        product_id: Optional[str] = None,
        query: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> UserEvent:
        if not user_id:
            raise ValueError("User ID is required")
        if not event_type:
            raise ValueError("Event type is required")
        event = UserEvent(
            object_id=str(uuid.uuid4()),
            user_id=user_id,
            event_type=event_type,
            timestamp=_aware(timestamp) if timestamp else self._clock(),
            product_id=product_id,
            query=query,
            details=details or {},
        )
        await self.catalog.store_event(self.events_index, event.to_record())
        logger.info(f"Tracked {event_type} for user: {user_id}")
        return event

    async def behaviour_history(self, user_id: str, limit: int = 20) -> List[UserEvent]:
        records = await self.catalog.search_events(self.events_index, user_id=user_id, limit=limit)
        events = [UserEvent.from_record(r) for r in records]
        return sorted(events, key=lambda e: e.timestamp, reverse=True)

    # ------------------------------------------------------------------
    # OFFER GENERATION
    # ------------------------------------------------------------------

    async def generate_personalized_discount(
        self,
        user_id: str,
        product_id: Optional[str] = None,
    ) -> Optional[Discount]:
        logger.debug(f"Generating personalized discount for user: {user_id} and product: {product_id}")
        events = await self.behaviour_history(user_id, 20)

        if product_id:
            product = await self.catalog.get_product(product_id)
            if product is None:
                logger.warning(f"Product not found: {product_id}")
                return None
        else:
            if not events:
                logger.info(f"No behavior history found for user: {user_id}")
                return None
            if not should_offer_discount(events):
                logger.info(f"Discount criteria not met for user: {user_id}")
                return None
            product = await self._relevant_product(events)
            if product is None:
                return None

        suggestion = await self._suggest(user_id, events, product)
        if suggestion is None:
            logger.info(f"No offer suggested for user: {user_id}")
            return None

        discount = await self._protect(user_id, product, suggestion)
        if discount is None:
            return None

        self.store(discount)
        logger.info(f"Generated personalized discount: {discount.code} for user: {user_id}")
        return discount

    async def _relevant_product(self, events: Sequence[UserEvent]) -> Optional[Dict[str, Any]]:
        for event in events:
            if event.product_id:
                return await self.catalog.get_product(event.product_id)
        return None

    async def _suggest(
        self,
        user_id: str,
        events: Sequence[UserEvent],
        product: Dict[str, Any],
    ) -> Optional[DiscountSuggestion]:
        hour = self._hour_provider()
        last_error: Optional[Exception] = None
        for strategy in self.strategies:
            try:
                return await strategy.suggest(user_id, events, product, hour)
            except Exception as exc:
                logger.error(f"{strategy.name} strategy failed, falling back: {exc}")
                last_error = exc
        raise RuntimeError("All discount strategies failed") from last_error

    @staticmethod
    def _percentage_of(suggestion: DiscountSuggestion, product: Dict[str, Any]) -> Optional[float]:
        """Express a suggestion as a percentage of price, where that makes sense."""
        if suggestion.type == DiscountType.PERCENTAGE:
            return suggestion.value
        if suggestion.type == DiscountType.FLAT_AMOUNT:
            price = float(product.get("price") or 0)
            return suggestion.value / price * 100 if price > 0 else None
        return None

    async def _protect(
        self,
        user_id: str,
        product: Dict[str, Any],
        suggestion: DiscountSuggestion,
    ) -> Optional[Discount]:
        product_id = str(product.get("objectID", ""))
        now = self._clock()
        discount = Discount(
            code="",
            user_id=user_id,
            product_id=product_id or None,
            type=suggestion.type,
            value=suggestion.value,
            amount=suggestion.amount,
            headline=suggestion.headline,
            message=suggestion.message,
            reasoning=suggestion.reasoning,
            created_at=now,
            expires_at=now + self.expiry,
        )

        requested_pct = self._percentage_of(suggestion, product)
        if requested_pct is None:
            discount.code = generate_code(user_id, discount.type, discount.value)
            return discount

        result = await self.profit_protection.validate(product_id, requested_pct, user_id)
        if result.allowed:
            discount.code = generate_code(user_id, discount.type, discount.value)
            return discount

        logger.warning(f"Discount blocked by profit protection: {result.message}")
        if result.approved_discount <= 0:
            logger.info(f"No discount can be offered due to profit protection for product: {product_id}")
            return None

        approved = math.floor(result.approved_discount * 10) / 10
        adjusted = DiscountSuggestion(
            type=DiscountType.PERCENTAGE,
            value=approved,
            headline=suggestion.headline,
            message=f"{suggestion.message} (Discount adjusted for sustainable pricing)",
            reasoning=f"{suggestion.reasoning} (Adjusted for profit protection)",
        )
        discount.type = adjusted.type
        discount.value = adjusted.value
        discount.amount = adjusted.amount
        discount.message = adjusted.message
        discount.reasoning = adjusted.reasoning
        discount.profit_protected = True
        discount.original_requested_discount = requested_pct
        discount.protection_message = result.message
        discount.code = generate_code(user_id, discount.type, discount.value)
        logger.info(f"Created adjusted discount: {approved}% instead of {requested_pct}%")
        return discount

    # ------------------------------------------------------------------
    # ACTIVE OFFERS
    # ------------------------------------------------------------------

    def store(self, discount: Discount) -> None:
        with self._lock:
            removed = self.clear_expired()
            while discount.code in self._active:
                logger.warning(f"Discount code collision, reissuing: {discount.code}")
                discount.code = generate_code(discount.user_id, discount.type, discount.value)
            self._active[discount.code] = discount
        if removed:
            logger.info(f"Cleared {removed} expired discounts before storing {discount.code}")
        logger.debug(f"Stored active discount: {discount.code}")

    def get(self, code: str) -> Optional[Discount]:
        with self._lock:
            return self._active.get(code)

    def validate(self, code: str, user_id: str) -> bool:
        with self._lock:
            discount = self._active.get(code)
            if discount is None:
                logger.warning(f"Discount code not found: {code}")
                return False
            if discount.user_id != user_id:
                logger.warning(f"Discount code {code} does not belong to user: {user_id}")
                return False
            if not discount.active:
                logger.warning(f"Discount code {code} is not active")
                return False
            if discount.expires_at <= self._clock():
                logger.warning(f"Discount code {code} has expired")
                discount.active = False
                return False
        logger.info(f"Discount code {code} validated successfully for user: {user_id}")
        return True

    def mark_used(self, code: str) -> None:
        with self._lock:
            discount = self._active.get(code)
            if discount is not None:
                discount.active = False
                logger.info(f"Marked discount as used: {code}")

    def apply(self, code: str, user_id: str) -> bool:
        """Validate and redeem in one step."""
        with self._lock:
            if not self.validate(code, user_id):
                return False
            self.mark_used(code)
            return True

    def active_discounts(self) -> Dict[str, Discount]:
        with self._lock:
            return dict(self._active)

    def clear_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [code for code, d in self._active.items() if d.expires_at <= now]
            for code in expired:
                logger.debug(f"Removing expired discount: {code}")
                del self._active[code]
        return len(expired)
