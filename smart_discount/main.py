"""
FastAPI Main Application
Discount recommendations, personalised offers and MCP tools in one service
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from smart_discount.config import Settings, settings
from smart_discount.core.logging import get_logger, setup_logging
from smart_discount.domain.services.discount_service import DiscountService
from smart_discount.domain.services.discount_strategies import suggestion_strategies
from smart_discount.domain.services.insights_service import InsightsService
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.domain.services.recommendation_service import RecommendationService
from smart_discount.infrastructure.catalog.provider_factory import get_catalog_provider
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.infrastructure.llm.provider_factory import get_text_generator
from smart_discount.infrastructure.llm.types import TextGenerator
from smart_discount.utils.logging_redaction import install_redaction_filter
from smart_discount.utils.time import local_hour, now_utc, utc_iso

# Configure logging
setup_logging(settings.LOG_LEVEL)
install_redaction_filter()
logger = get_logger(__name__)


def init_services(
    app: FastAPI,
    catalog: CatalogProvider,
    generator: Optional[TextGenerator],
    cfg: Settings = settings,
    clock: Callable[[], datetime] = now_utc,
    hour_provider: Callable[[], int] = local_hour,
) -> None:
    """Build the domain services and hang them on app.state."""
    recommendation_service = RecommendationService(catalog)
    profit_protection = ProfitProtectionService(
        catalog,
        veto_index=cfg.ALGOLIA_VETO_INDEX,
        threshold=cfg.PROFIT_PROTECTION_THRESHOLD,
    )
    strategies = suggestion_strategies(
        recommendation_service,
        generator,
        use_llm=cfg.USE_LLM_STRATEGY,
        requested_discount=cfg.DEFAULT_REQUESTED_DISCOUNT,
        max_discount=cfg.MAX_DISCOUNT_PERCENTAGE,
        min_profit_margin=cfg.MIN_PROFIT_MARGIN,
    )
    discount_service = DiscountService(
        catalog,
        strategies,
        profit_protection,
        events_index=cfg.ALGOLIA_EVENTS_INDEX,
        expiry_minutes=cfg.DISCOUNT_EXPIRY_MINUTES,
        clock=clock,
        hour_provider=hour_provider,
    )

    app.state.catalog = catalog
    app.state.text_generator = generator
    app.state.recommendation_service = recommendation_service
    app.state.profit_protection = profit_protection
    app.state.discount_service = discount_service
    app.state.insights_service = InsightsService(catalog, events_index=cfg.ALGOLIA_EVENTS_INDEX, clock=clock)
    logger.info(f"Discount strategies: {[s.name for s in strategies]}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Builds providers and services on startup
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})")
    logger.info("=" * 60)

    catalog = get_catalog_provider(settings)
    logger.info(f"Catalog providers: {catalog.names}")

    generator = get_text_generator(settings)
    logger.info(f"Text generator: {generator.name if generator else 'none'}")

    init_services(app, catalog, generator, settings)

    logger.info(f"API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    yield

    discount_service = getattr(app.state, "discount_service", None)
    if discount_service is not None:
        removed = discount_service.clear_expired()
        logger.info(f"Cleared {removed} expired discounts on shutdown")
    logger.info(f"{settings.APP_NAME} shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Margin-aware discount recommendations and personalised offers",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check(request: Request):
    """Liveness plus the providers currently wired in."""
    catalog = getattr(request.app.state, "catalog", None)
    generator = getattr(request.app.state, "text_generator", None)
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utc_iso(),
        "providers": {
            "catalog": getattr(catalog, "names", []),
            "llm": generator.name if generator else None,
        },
    }


# Import and include routers
from smart_discount.api.routes import chat, discounts, insights, mcp, products, recommendations  # noqa: E402

app.include_router(mcp.router, prefix="/mcp", tags=["MCP"])
app.include_router(discounts.router, prefix="/api", tags=["Discounts"])
app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(recommendations.router, prefix="/api/recommendations", tags=["Recommendations"])
app.include_router(chat.router, prefix="/api/ai-chat", tags=["Assistant"])
app.include_router(insights.router, prefix="/api", tags=["Insights"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("smart_discount.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
