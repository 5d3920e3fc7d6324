"""
Recommendation routes
Direct engine access: product id + requested discount in, recommendation out.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from smart_discount.api.dependencies import get_recommendation_service, get_text_generator
from smart_discount.config import settings
from smart_discount.domain.models import DiscountRequest
from smart_discount.domain.services.discount_strategies import polish_reasoning
from smart_discount.domain.services.recommendation_service import (
    ProductNotFoundError,
    RecommendationService,
)
from smart_discount.infrastructure.llm.types import TextGenerator
from smart_discount.utils.time import local_hour, utc_iso

logger = logging.getLogger(__name__)

router = APIRouter()


class RecommendationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1)
    requested_discount: float = Field(
        default_factory=lambda: settings.DEFAULT_REQUESTED_DISCOUNT, alias="requestedDiscount"
    )
    user_id: str = Field("", alias="userId")
    timestamp_hour: Optional[int] = Field(None, alias="timestampHour")


@router.post("")
async def recommend_discount(
    payload: RecommendationRequest,
    recommendations: RecommendationService = Depends(get_recommendation_service),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    hour = payload.timestamp_hour if payload.timestamp_hour is not None else local_hour()
    try:
        request = DiscountRequest(
            requested_discount=payload.requested_discount,
            user_id=payload.user_id,
            timestamp_hour=hour,
        )
        _, recommendation = await recommendations.recommend_for_product(
            payload.product_id, request
        )
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    response = {
        "productId": payload.product_id,
        "requestedDiscount": request.requested_discount,
        "recommendation": recommendation.to_dict(),
        "timestamp": utc_iso(),
    }
    if settings.POLISH_REASONING:
        response["summary"] = await polish_reasoning(generator, recommendation)

    sources = getattr(recommendations.catalog, "get_last_sources", None)
    if sources is not None:
        response["source"] = sources().get("products", {}).get(payload.product_id)
    return response
