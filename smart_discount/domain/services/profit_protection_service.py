"""
Profit protection
Veto discounts that would eat more than a set share of a product's margin.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from smart_discount.domain.models import ProfitProtectionResult
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.utils.time import utc_iso

logger = logging.getLogger(__name__)

VETO_EVENT_TYPE = "discount_veto"


class ProfitProtectionService:
    def __init__(
        self,
        catalog: CatalogProvider,
        veto_index: str = "veto_decisions",
        threshold: float = 0.8,
    ):
        if not 0 < threshold <= 1:
            raise ValueError("Profit protection threshold must be in (0, 1]")
        self.catalog = catalog
        self.veto_index = veto_index
        self.threshold = threshold

    @staticmethod
    def margin_percentage(profit_margin: float) -> float:
        """Margins up to 1.0 are fractions; larger values are already percentages."""
        return profit_margin if profit_margin > 1.0 else profit_margin * 100

    async def _profit_margin(self, product_id: str) -> Optional[float]:
        product = await self.catalog.get_product(product_id)
        if not product or product.get("profit_margin") is None:
            return None
        return float(product["profit_margin"])

    async def validate(
        self,
        product_id: str,
        requested_discount: float,
        user_id: str,
    ) -> ProfitProtectionResult:
        logger.info(
            f"Validating discount protection for product: {product_id}, requested: {requested_discount}%"
        )
        try:
            profit_margin = await self._profit_margin(product_id)
        except Exception:
            logger.exception(f"Error in profit protection validation for product: {product_id}")
            return ProfitProtectionResult(
                True, requested_discount, 0.0, "Error in profit validation - discount allowed"
            )

        if profit_margin is None:
            logger.warning(f"No profit margin found for product: {product_id}, allowing discount")
            return ProfitProtectionResult(True, requested_discount, 0.0, "No profit margin data available")

        margin_pct = self.margin_percentage(profit_margin)
        max_allowed = margin_pct * self.threshold
        allowed = requested_discount <= max_allowed

        logger.info(
            f"Profit protection check - Product: {product_id}, Profit Margin: {margin_pct:.1f}%, "
            f"Max Allowed: {max_allowed:.1f}%, Requested: {requested_discount}%, Allowed: {allowed}"
        )

        if allowed:
            return ProfitProtectionResult(True, requested_discount, margin_pct, "Discount approved")

        await self._log_veto(product_id, requested_discount, max_allowed, user_id, margin_pct)
        return ProfitProtectionResult(
            False,
            max_allowed,
            margin_pct,
            (
                f"Discount blocked: Requested {requested_discount:.1f}% exceeds maximum allowed "
                f"{max_allowed:.1f}% ({self.threshold * 100:.0f}% of {margin_pct:.1f}% profit margin)"
            ),
        )

    async def _log_veto(
        self,
        product_id: str,
        requested_discount: float,
        max_allowed: float,
        user_id: str,
        margin_pct: float,
    ) -> None:
        record: Dict[str, Any] = {
            "objectID": f"veto-{int(time.time() * 1000)}-{product_id}",
            "eventType": VETO_EVENT_TYPE,
            "productId": product_id,
            "userId": user_id,
            "requestedDiscount": requested_discount,
            "maxAllowedDiscount": max_allowed,
            "profitMargin": margin_pct,
            "protectionThreshold": self.threshold,
            "timestamp": utc_iso(),
            "reason": "Discount exceeds profit protection threshold",
        }
        try:
            await self.catalog.store_event(self.veto_index, record)
            logger.info(f"Logged veto decision for product: {product_id}, user: {user_id}")
        except Exception:
            logger.exception("Failed to log veto decision")

    async def recent_vetoes(self, limit: int = 10) -> List[Dict[str, Any]]:
        return await self.catalog.search_events(
            self.veto_index, event_type=VETO_EVENT_TYPE, limit=limit
        )
