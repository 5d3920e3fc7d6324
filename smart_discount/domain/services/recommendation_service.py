"""
Recommendation service
Gathers product, market and history signals, then runs the engine.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from smart_discount.domain.models import (
    DiscountRecommendation,
    DiscountRequest,
    HistoricalSignal,
    MarketSignal,
    ProductSignal,
)
from smart_discount.domain.services.recommendation_engine import DiscountRecommendationEngine
from smart_discount.infrastructure.catalog.types import CatalogProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalBundle:
    product_hit: Dict[str, Any]
    product: ProductSignal
    market: MarketSignal
    history: HistoricalSignal


class ProductNotFoundError(LookupError):
    pass


class RecommendationService:
    def __init__(
        self,
        catalog: CatalogProvider,
        engine: Optional[DiscountRecommendationEngine] = None,
    ):
        self.catalog = catalog
        self.engine = engine or DiscountRecommendationEngine()

    async def load_signals(
        self,
        product_id: str,
        product_hit: Optional[Dict[str, Any]] = None,
    ) -> SignalBundle:
        """Look up a product and its category/tier context."""
        if product_hit is None:
            product_hit = await self.catalog.get_product(product_id)
        if not product_hit:
            raise ProductNotFoundError(f"Product not found: {product_id}")

        product = ProductSignal.from_hit(product_hit)
        # Market and history lookups are independent of each other
        market_hit, history_hit = await asyncio.gather(
            self.catalog.get_market(str(product_hit.get("category", ""))),
            self.catalog.get_history(product.market_position.value),
        )
        if market_hit is None:
            logger.info(f"No market data for {product_id}; using defaults")

        return SignalBundle(
            product_hit=product_hit,
            product=product,
            market=MarketSignal.from_hit(market_hit),
            history=HistoricalSignal.from_hit(history_hit),
        )

    def recommend(self, signals: SignalBundle, request: DiscountRequest) -> DiscountRecommendation:
        recommendation = self.engine.recommend(
            signals.product, signals.market, signals.history, request
        )
        logger.info(
            f"Recommendation for {signals.product_hit.get('objectID')}: "
            f"requested={request.requested_discount} "
            f"recommended={recommendation.recommended_discount} "
            f"confidence={recommendation.confidence_score} "
            f"risk={recommendation.risk_level.value}"
        )
        return recommendation

    async def recommend_for_product(
        self,
        product_id: str,
        request: DiscountRequest,
    ) -> tuple[SignalBundle, DiscountRecommendation]:
        signals = await self.load_signals(product_id)
        return signals, self.recommend(signals, request)
