"""
Insights API Routes
Behaviour analytics and personalised product search
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from smart_discount.api.dependencies import get_discount_service, get_insights_service
from smart_discount.domain.models import EventType
from smart_discount.domain.services.discount_service import DiscountService
from smart_discount.domain.services.insights_service import InsightsService

logger = logging.getLogger(__name__)

router = APIRouter()


class SmartSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")
    context: Dict[str, Any] = Field(default_factory=dict)


@router.get("/ai-insights")
async def ai_insights(
    user_id: Optional[str] = Query(None, alias="userId"),
    days: int = Query(7, ge=1, le=90),
    insights: InsightsService = Depends(get_insights_service),
):
    """Search, behaviour and product-view analytics with scored insights."""
    logger.info(f"Generating insights for user: {user_id}, days: {days}")
    try:
        return await insights.analyse(user_id, days)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RuntimeError:
        logger.exception("Error generating insights")
        raise HTTPException(status_code=500, detail="Failed to generate AI insights")


@router.post("/smart-search")
async def smart_search(
    payload: SmartSearchRequest,
    insights: InsightsService = Depends(get_insights_service),
    discounts: DiscountService = Depends(get_discount_service),
):
    """Product search re-ranked by the shopper's category engagement."""
    logger.info(f"Smart search: '{payload.query}' for user: {payload.user_id}")
    try:
        result = await insights.smart_search(payload.query, payload.user_id)
    except RuntimeError:
        logger.exception("Error performing smart search")
        raise HTTPException(status_code=500, detail="Failed to perform smart search")

    if payload.user_id:
        try:
            await discounts.track_event(
                user_id=payload.user_id,
                event_type=EventType.SMART_SEARCH.value,
                query=payload.query,
                details={**payload.context, "resultCount": result["resultCount"]},
            )
        except Exception as exc:
            logger.warning(f"Failed to track smart search: {exc}")

    return result
