"""
Shopping assistant chat route
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from smart_discount.api.dependencies import get_catalog, get_discount_service, get_text_generator
from smart_discount.domain.services.assistant_service import generate_chat_reply, search_terms
from smart_discount.domain.services.discount_service import DiscountService
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.infrastructure.llm.types import TextGenerator
from smart_discount.utils.time import utc_iso

logger = logging.getLogger(__name__)

router = APIRouter()

CHAT_EVENT_TYPE = "ai_chat"
MAX_SUGGESTED_PRODUCTS = 5


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")
    history: List[Dict[str, Any]] = Field(default_factory=list)


@router.post("")
async def ai_chat(
    payload: ChatRequest,
    catalog: CatalogProvider = Depends(get_catalog),
    discounts: DiscountService = Depends(get_discount_service),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    logger.info(f"Processing AI chat message from user: {payload.user_id}")
    products = await catalog.search_products(search_terms(payload.message), MAX_SUGGESTED_PRODUCTS)

    returning = False
    if payload.user_id:
        returning = bool(await discounts.behaviour_history(payload.user_id, 1))

    reply = await generate_chat_reply(
        generator, payload.message, products, payload.history, returning
    )

    if payload.user_id:
        try:
            await discounts.track_event(
                user_id=payload.user_id,
                event_type=CHAT_EVENT_TYPE,
                query=payload.message,
                details={"responseType": reply.type, "productsFound": len(products)},
            )
        except Exception as exc:
            logger.warning(f"Failed to track chat interaction: {exc}")

    return {
        "response": reply.message,
        "suggestedProducts": products,
        "responseType": reply.type,
        "confidence": reply.confidence,
        "suggestedActions": reply.suggested_actions,
        "timestamp": utc_iso(),
    }
