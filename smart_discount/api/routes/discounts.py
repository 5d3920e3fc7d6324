"""
Discount API Routes
Behaviour tracking, personalised offers and offer redemption
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from smart_discount.api.dependencies import get_discount_service, get_profit_protection
from smart_discount.domain.services.discount_service import DiscountService
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.utils.time import utc_iso

logger = logging.getLogger(__name__)

router = APIRouter()


# Request models
class UserBehaviorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    event_type: str = Field(..., alias="eventType", min_length=1)
    product_id: Optional[str] = Field(None, alias="productId")
    query: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[datetime] = None


@router.post("/user-behavior")
async def track_user_behavior(
    payload: UserBehaviorRequest,
    discounts: DiscountService = Depends(get_discount_service),
):
    """Record a storefront behaviour event."""
    logger.info(f"Tracking user behavior: {payload.event_type} for user: {payload.user_id}")
    try:
        event = await discounts.track_event(
            user_id=payload.user_id,
            event_type=payload.event_type,
            product_id=payload.product_id,
            query=payload.query,
            details=payload.details,
            timestamp=payload.timestamp,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RuntimeError:
        logger.exception("Error tracking user behavior")
        raise HTTPException(status_code=500, detail="Failed to track user behavior")

    return {
        "status": "success",
        "message": "User behavior tracked successfully",
        "eventId": event.object_id,
    }


@router.get("/user-behavior/{user_id}")
async def get_user_behavior(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    discounts: DiscountService = Depends(get_discount_service),
):
    events = await discounts.behaviour_history(user_id, limit)
    return {
        "userId": user_id,
        "events": [event.to_record() for event in events],
        "totalEvents": len(events),
    }


@router.get("/get-discount")
async def get_discount(
    user_id: str = Query(..., alias="userId", min_length=1),
    product_id: Optional[str] = Query(None, alias="productId"),
    discounts: DiscountService = Depends(get_discount_service),
):
    """
    Generate a personalised offer.

    With a product id the shopper is always eligible; otherwise their recent
    behaviour decides.
    """
    logger.info(f"Getting discount for user: {user_id} and product: {product_id}")
    try:
        discount = await discounts.generate_personalized_discount(user_id, product_id)
    except RuntimeError:
        logger.exception(f"Error generating discount for user: {user_id}")
        raise HTTPException(status_code=500, detail="Error generating discount offer")

    if discount is None:
        return {
            "status": "no_offer",
            "message": "No specific offer for this user at this time.",
            "discount": None,
        }
    return {"status": "offer_generated", "message": None, "discount": discount.to_dict()}


@router.post("/validate-discount")
async def validate_discount(
    code: str = Query(..., alias="discountCode"),
    user_id: str = Query(..., alias="userId"),
    discounts: DiscountService = Depends(get_discount_service),
):
    logger.info(f"Validating discount code: {code} for user: {user_id}")
    is_valid = discounts.validate(code, user_id)
    discount = discounts.get(code)
    return {
        "valid": is_valid,
        "discount": discount.to_dict() if discount else {},
        "message": "Discount is valid" if is_valid else "Invalid or expired discount",
    }


@router.post("/apply-discount")
async def apply_discount(
    code: str = Query(..., alias="discountCode"),
    user_id: str = Query(..., alias="userId"),
    discounts: DiscountService = Depends(get_discount_service),
):
    logger.info(f"Applying discount code: {code} for user: {user_id}")
    if not discounts.apply(code, user_id):
        raise HTTPException(status_code=400, detail="Invalid or expired discount code")
    return {"status": "success", "message": "Discount applied successfully"}


@router.get("/active-discounts")
async def active_discounts(discounts: DiscountService = Depends(get_discount_service)):
    removed = discounts.clear_expired()
    if removed:
        logger.info(f"Cleared {removed} expired discounts")
    active = discounts.active_discounts()
    return {
        "activeDiscounts": {code: d.to_dict() for code, d in active.items()},
        "count": len(active),
    }


@router.get("/profit-protection/veto-decisions")
async def veto_decisions(
    limit: int = Query(10, ge=1, le=100),
    profit_protection: ProfitProtectionService = Depends(get_profit_protection),
):
    logger.info(f"Getting recent veto decisions, limit: {limit}")
    vetoes = await profit_protection.recent_vetoes(limit)
    return {"vetoDecisions": vetoes, "count": len(vetoes), "timestamp": utc_iso()}
