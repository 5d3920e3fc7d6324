"""
Discount strategies
Two independent ways to propose an offer for a shopper and product:

- HeuristicDiscountStrategy: deterministic, backed by the recommendation engine
- LlmDiscountStrategy: asks a text generator for a JSON offer

Both return a DiscountSuggestion (or None for "no offer"); profit protection
is applied afterwards by the discount service.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from smart_discount.domain.models import (
    DiscountRecommendation,
    DiscountRequest,
    DiscountSuggestion,
    DiscountType,
    EventType,
    UserEvent,
)
from smart_discount.domain.services.recommendation_service import RecommendationService
from smart_discount.infrastructure.llm.types import TextGenerator

logger = logging.getLogger(__name__)


DEFAULT_SUGGESTION = DiscountSuggestion(
    type=DiscountType.PERCENTAGE,
    value=15.0,
    headline="Special Product Offer!",
    message="Get 15% off this amazing product today!",
    reasoning=(
        "We're offering this discount to enhance your shopping experience "
        "and help you save on quality products."
    ),
)

BEHAVIOUR_REASONS = {
    EventType.CART_ABANDON.value: "You left this item in your cart - here's a special offer to complete your purchase",
    EventType.PRICE_HOVER.value: "We noticed you're price-conscious - this discount makes it more affordable",
    EventType.MULTIPLE_PRODUCT_VIEWS.value: "You've shown interest in this product - here's an exclusive discount",
    EventType.PRODUCT_VIEW.value: "You've shown interest in this product - here's an exclusive discount",
}
DIRECT_REQUEST_REASON = "Based on your interest in this product, we're happy to offer this discount"


class DiscountStrategy(Protocol):
    name: str

    async def suggest(
        self,
        user_id: str,
        events: Sequence[UserEvent],
        product: Dict[str, Any],
        hour: int,
    ) -> Optional[DiscountSuggestion]:
        ...


def behaviour_reason(events: Sequence[UserEvent]) -> str:
    """Short shopper-facing reason for the most recent telling event."""
    for event in events:
        reason = BEHAVIOUR_REASONS.get(event.event_type)
        if reason:
            return reason
    return DIRECT_REQUEST_REASON


class HeuristicDiscountStrategy:
    name = "heuristic"

    def __init__(self, recommendations: RecommendationService, requested_discount: float = 15.0):
        self.recommendations = recommendations
        self.requested_discount = requested_discount

    async def suggest(
        self,
        user_id: str,
        events: Sequence[UserEvent],
        product: Dict[str, Any],
        hour: int,
    ) -> Optional[DiscountSuggestion]:
        signals = await self.recommendations.load_signals(str(product.get("objectID", "")), product)
        request = DiscountRequest(
            requested_discount=self.requested_discount,
            user_id=user_id,
            timestamp_hour=hour,
        )
        recommendation = self.recommendations.recommend(signals, request)
        value = float(recommendation.recommended_discount)
        if value <= 0:
            logger.info(f"Engine recommended no discount for {product.get('objectID')}")
            return None

        name = product.get("name") or "this product"
        return DiscountSuggestion(
            type=DiscountType.PERCENTAGE,
            value=value,
            headline=f"{value:.0f}% off {name}"[:50],
            message=f"{behaviour_reason(events)}: {value:.0f}% off {name}.",
            reasoning=recommendation.reasoning,
        )


def build_discount_prompt(
    user_id: str,
    events: Sequence[UserEvent],
    product: Dict[str, Any],
    max_discount: int,
    min_profit_margin: float,
) -> str:
    margin = float(product.get("profit_margin") or 0.0)
    lines = [
        "You are an AI discount optimization expert for an e-commerce platform. "
        "Analyze the user behavior and product information to generate a personalized discount offer.",
        "",
        "PRODUCT INFORMATION:",
        f"- Name: {product.get('name')}",
        f"- Price: ${product.get('price')}",
        f"- Category: {product.get('category')}",
        f"- Profit Margin: {margin * 100:.1f}%",
        f"- Average Rating: {product.get('average_rating')}/5",
        f"- Reviews: {product.get('number_of_reviews')}",
        "",
        "USER BEHAVIOR SIGNALS:",
    ]
    if not events:
        lines.append("- No specific behavior history available - user is directly requesting discount for this product")
        lines.append("- This indicates strong purchase intent for the specific product")
    for event in events:
        line = f"- {event.event_type} at {event.timestamp.isoformat()}"
        if event.details:
            line += f" ({event.details})"
        lines.append(line)

    lines += [
        "",
        "CONSTRAINTS:",
        f"- Maximum discount: {max_discount}%",
        f"- Minimum profit margin must remain: {min_profit_margin * 100:.1f}%",
        "",
        "TASK:",
    ]
    if not events:
        lines.append(
            "Since the user is directly requesting a discount for this specific product, "
            "you should offer a discount (shouldOffer: true) to encourage purchase. "
            "Use the product name in both headline and message."
        )
    lines += [
        "Based on the behavior signals, determine if a discount should be offered and generate:",
        "1. Discount type: 'percentage', 'flat_amount', or 'free_shipping'",
        "2. Discount value (numeric, e.g., 15 for 15% or 10 for $10)",
        "3. Compelling headline including the product name (max 50 characters)",
        "4. Personalized message mentioning the specific product (max 100 characters)",
        "5. Brief reasoning explaining WHY this discount is offered (max 80 characters)",
        "",
        "REASONING GUIDELINES:",
    ]
    lines += [f"- {reason}" for reason in dict.fromkeys(BEHAVIOUR_REASONS.values())]
    lines += [
        f"- For direct requests: '{DIRECT_REQUEST_REASON}'",
        "",
        "Respond in JSON format:",
        json.dumps(
            {
                "shouldOffer": "true/false",
                "type": "percentage|flat_amount|free_shipping",
                "value": "numeric_value",
                "headline": "compelling headline",
                "message": "personalized message",
                "reasoning": "brief explanation why this discount is offered",
            },
            indent=2,
        ),
    ]
    return "\n".join(lines)


def parse_discount_suggestion(text: Optional[str]) -> Optional[DiscountSuggestion]:
    """
    Parse a generator's JSON answer.

    - shouldOffer false -> None (no offer)
    - missing fields -> defaults
    - no parseable JSON -> the default 15% suggestion
    """
    if not text:
        return DEFAULT_SUGGESTION

    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        logger.warning("Discount suggestion contained no JSON object")
        return DEFAULT_SUGGESTION

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as exc:
        logger.warning(f"Could not parse discount suggestion: {exc}")
        return DEFAULT_SUGGESTION
    if not isinstance(data, dict):
        return DEFAULT_SUGGESTION

    should_offer = data.get("shouldOffer", False)
    if isinstance(should_offer, str):
        should_offer = should_offer.strip().lower() == "true"
    if not should_offer:
        return None

    try:
        discount_type = DiscountType(str(data.get("type", "percentage")).lower())
    except ValueError:
        discount_type = DiscountType.PERCENTAGE
    try:
        value = float(data.get("value", 10.0))
    except (TypeError, ValueError):
        value = 10.0

    return DiscountSuggestion(
        type=discount_type,
        value=value,
        headline=str(data.get("headline") or "Special Offer!"),
        message=str(data.get("message") or "Limited time discount just for you!"),
        reasoning=str(data.get("reasoning") or "Personalized offer based on your activity"),
    )


class LlmDiscountStrategy:
    name = "llm"

    def __init__(
        self,
        generator: TextGenerator,
        max_discount: int = 25,
        min_profit_margin: float = 0.15,
    ):
        self.generator = generator
        self.max_discount = max_discount
        self.min_profit_margin = min_profit_margin

    async def suggest(
        self,
        user_id: str,
        events: Sequence[UserEvent],
        product: Dict[str, Any],
        hour: int,
    ) -> Optional[DiscountSuggestion]:
        prompt = build_discount_prompt(
            user_id, events, product, self.max_discount, self.min_profit_margin
        )
        text = await self.generator.generate(prompt)
        if text is None:
            logger.warning(f"{self.generator.name} unavailable; using default suggestion")
        return parse_discount_suggestion(text)


async def polish_reasoning(
    generator: Optional[TextGenerator],
    recommendation: DiscountRecommendation,
) -> str:
    """Rephrase engine reasoning for chat presentation. Cosmetic only."""
    if generator is None:
        return recommendation.reasoning
    prompt = (
        "Rewrite the following discount analysis as two friendly sentences for a shopper. "
        "Keep every number unchanged and do not add new claims.\n\n"
        f"Analysis: {recommendation.reasoning}\n"
        f"Market impact: {recommendation.market_impact}"
    )
    text = await generator.generate(prompt)
    return text.strip() if text else recommendation.reasoning


def suggestion_strategies(
    recommendations: RecommendationService,
    generator: Optional[TextGenerator],
    use_llm: bool,
    requested_discount: float,
    max_discount: int,
    min_profit_margin: float,
) -> List[DiscountStrategy]:
    """Ordered strategies: LLM first when enabled, heuristic always available."""
    strategies: List[DiscountStrategy] = []
    if use_llm and generator is not None:
        strategies.append(LlmDiscountStrategy(generator, max_discount, min_profit_margin))
    strategies.append(HeuristicDiscountStrategy(recommendations, requested_discount))
    return strategies
