"""
Route dependencies - services wired onto app.state during startup.
"""

from typing import Optional

from fastapi import HTTPException, Request

from smart_discount.domain.services.discount_service import DiscountService
from smart_discount.domain.services.insights_service import InsightsService
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.domain.services.recommendation_service import RecommendationService
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.infrastructure.llm.types import TextGenerator


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return service


def get_catalog(request: Request) -> CatalogProvider:
    return _state(request, "catalog")


def get_recommendation_service(request: Request) -> RecommendationService:
    return _state(request, "recommendation_service")


def get_discount_service(request: Request) -> DiscountService:
    return _state(request, "discount_service")


def get_insights_service(request: Request) -> InsightsService:
    return _state(request, "insights_service")


def get_profit_protection(request: Request) -> ProfitProtectionService:
    return _state(request, "profit_protection")


def get_text_generator(request: Request) -> Optional[TextGenerator]:
    """The LLM is optional; routes fall back to deterministic answers."""
    return getattr(request.app.state, "text_generator", None)
