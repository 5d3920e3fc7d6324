"""
DISCOUNT RECOMMENDATION ENGINE
Turn product, market and shopper signals into a safe discount recommendation

RESPONSIBILITIES:
- Cap the requested discount against the profit-margin safety ceiling
- Score confidence from demand, season, rating, segment and time of day
- Explain the decision (reasoning, market insights, alternatives, impact)

RULES:
✅ Pure and deterministic: no I/O, no clock, no randomness
✅ Recommended discount never exceeds the requested discount
✅ Confidence always within [0, 0.95]
"""

import math
from statistics import mean
from typing import List, Optional, Sequence

from smart_discount.domain.models import (
    DemandForecast,
    DiscountRecommendation,
    DiscountRequest,
    HistoricalSignal,
    MarketSignal,
    ProductSignal,
    RiskLevel,
)


SAFETY_CEILING_FACTOR = 60
LOW_RISK_RATIO = 0.7
MAX_CONFIDENCE = 0.95
MIN_CONFIDENCE = 0.0
LOW_DEMAND_FLOOR = 5
BUSINESS_HOURS = (9, 17)

IMPACT_STRONG = "Strong competitive advantage with aggressive pricing"
IMPACT_PREMIUM = "Premium positioning maintained despite discount"
IMPACT_NEUTRAL = "Neutral competitive positioning expected"

PREMIUM_SEGMENT_REASON = "Premium customer status supports enhanced discount eligibility"
NEW_SEGMENT_REASON = "New customer acquisition strategy supports competitive pricing"


def _fmt(value: float) -> str:
    """Render 15.0 as '15' and 12.5 as '12.5'."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


class DiscountRecommendationEngine:
    """
    Discount Recommendation Engine
    Stateless; a single instance may be shared across requests.
    """

    def recommend(
        self,
        product: ProductSignal,
        market: MarketSignal,
        history: Optional[HistoricalSignal],
        request: DiscountRequest,
    ) -> DiscountRecommendation:
        requested = request.requested_discount
        user_id = (request.user_id or "").lower()
        demand = market.demand_forecast
        season = market.seasonal_trend.lower()
        margin_pct = round(product.profit_margin * 100)

        # 1) Safety ceiling
        max_safe = math.floor(product.profit_margin * SAFETY_CEILING_FACTOR)
        recommended = requested
        if requested > max_safe:
            recommended = max_safe
            confidence = 0.6
            risk = RiskLevel.HIGH
        elif requested <= max_safe * LOW_RISK_RATIO:
            confidence = 0.95
            risk = RiskLevel.LOW
        else:
            confidence = 0.75
            risk = RiskLevel.MEDIUM

        # 2) Demand
        if demand == DemandForecast.HIGH:
            confidence += 0.05
            recommended = min(recommended + 2, requested)
        elif demand == DemandForecast.LOW:
            confidence -= 0.10
            recommended = max(recommended - 3, min(LOW_DEMAND_FLOOR, requested))

        # 3) Season
        if "peak" in season:
            confidence += 0.03

        # 4) Rating
        if product.average_rating >= 4.5:
            confidence += 0.02
        elif product.average_rating < 4.0:
            confidence -= 0.05

        # 5) Shopper segment
        segment_reason = None
        if "premium" in user_id or "vip" in user_id:
            confidence += 0.05
            recommended = min(recommended + 2, requested)
            segment_reason = PREMIUM_SEGMENT_REASON
        elif "new" in user_id or "first-time" in user_id:
            confidence += 0.03
            segment_reason = NEW_SEGMENT_REASON

        # 6) Time of day
        start, end = BUSINESS_HOURS
        if start <= request.timestamp_hour <= end:
            confidence -= 0.02
        else:
            confidence += 0.01

        # 7) Clamp
        confidence = max(MIN_CONFIDENCE, min(confidence, MAX_CONFIDENCE))

        reasoning = self._reasoning(product, demand, requested, recommended, margin_pct, segment_reason)
        strategies = self._alternative_strategies(demand, season, requested, recommended)
        insights = self._market_insights(product, market, demand, season, risk, margin_pct)
        impact = self._market_impact(product.price, market.competitor_prices, recommended)

        return DiscountRecommendation(
            recommended_discount=recommended,
            confidence_score=round(confidence, 2),
            risk_level=risk,
            reasoning=". ".join(reasoning) + ".",
            market_impact=impact,
            market_insights=tuple(insights),
            alternative_strategies=tuple(strategies),
        )

    def _reasoning(
        self,
        product: ProductSignal,
        demand: DemandForecast,
        requested: float,
        recommended: float,
        margin_pct: int,
        segment_reason: Optional[str],
    ) -> List[str]:
        outcome = "approved" if requested <= recommended else f"optimized to {_fmt(recommended)}%"
        reasons = [f"{_fmt(requested)}% discount {outcome} based on {margin_pct}% profit margin"]
        if segment_reason:
            reasons.append(segment_reason)

        if product.average_rating >= 4.5:
            reasons.append(
                f"Strong product performance ({_fmt(product.average_rating)}/5 stars) supports discount viability"
            )

        if demand == DemandForecast.HIGH:
            reasons.append("High market demand provides pricing flexibility")
        elif demand == DemandForecast.LOW:
            reasons.append("Conservative approach due to lower demand forecast")

        if product.inventory_level < 50:
            reasons.append("Limited inventory suggests premium pricing strategy")
        elif product.inventory_level > 200:
            reasons.append("High inventory levels support aggressive discounting")
        return reasons

    def _alternative_strategies(
        self,
        demand: DemandForecast,
        season: str,
        requested: float,
        recommended: float,
    ) -> List[str]:
        strategies = []
        if requested > recommended:
            strategies.append(f"Consider {_fmt(recommended + 5)}% discount with purchase of 2+ items")
            strategies.append("Implement loyalty program benefits for frequent buyers")

        if "peak" in season:
            strategies.append("Limited-time seasonal promotion with urgency messaging")
        else:
            strategies.append("Create bundle offers with complementary products")

        if demand == DemandForecast.HIGH:
            strategies.append("Flash sale approach to capitalize on demand")
        else:
            strategies.append("Extended promotion period to build momentum")

        strategies.append("A/B test messaging: value vs. savings emphasis")
        return strategies

    def _market_insights(
        self,
        product: ProductSignal,
        market: MarketSignal,
        demand: DemandForecast,
        season: str,
        risk: RiskLevel,
        margin_pct: int,
    ) -> List[str]:
        insights = [f"{margin_pct}% profit margin provides {risk.value} risk tolerance for discounting"]

        if market.competitor_prices:
            avg_competitor = mean(market.competitor_prices)
            if product.price > avg_competitor:
                position = "premium"
            elif product.price < avg_competitor:
                position = "competitive"
            else:
                position = "market-aligned"
            insights.append(
                f"Current pricing is {position} compared to competitors (avg: ${avg_competitor:.2f})"
            )

        if demand == DemandForecast.HIGH:
            insights.append("High demand forecast supports flexible pricing strategy")
        elif demand == DemandForecast.LOW:
            insights.append("Lower demand requires careful discount optimization")
        else:
            insights.append("Moderate demand allows for balanced pricing approach")

        inventory = product.inventory_level
        if inventory < 50:
            insights.append(f"Limited inventory ({inventory} units) suggests scarcity value")
        elif inventory > 200:
            insights.append(f"High inventory levels ({inventory} units) support promotional pricing")
        else:
            insights.append(f"Healthy inventory levels ({inventory} units) allow pricing flexibility")

        if "peak" in season:
            insights.append("Peak season trends favor premium pricing with selective discounting")
        elif "off" in season:
            insights.append("Off-season conditions support aggressive promotional strategies")
        else:
            insights.append("Normal seasonal patterns allow standard discount approaches")
        return insights

    def _market_impact(
        self,
        price: float,
        competitor_prices: Sequence[float],
        recommended: float,
    ) -> str:
        if not competitor_prices:
            return IMPACT_NEUTRAL
        avg_competitor = mean(competitor_prices)
        discounted_price = price * (1 - recommended / 100)
        if discounted_price < avg_competitor * 0.95:
            return IMPACT_STRONG
        if discounted_price > avg_competitor * 1.05:
            return IMPACT_PREMIUM
        return IMPACT_NEUTRAL


_default_engine = DiscountRecommendationEngine()


def recommend(
    product: ProductSignal,
    market: MarketSignal,
    history: Optional[HistoricalSignal],
    request: DiscountRequest,
) -> DiscountRecommendation:
    """Module-level shortcut over a shared engine instance."""
    return _default_engine.recommend(product, market, history, request)
