"""
MCP routes
Tool endpoints the storefront and agents call for search-index lookups and
discount analysis, plus a JSON-RPC 2.0 entry point speaking the same tools.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from smart_discount.api.dependencies import (
    get_catalog,
    get_profit_protection,
    get_recommendation_service,
)
from smart_discount.config import settings
from smart_discount.domain.models import (
    DiscountRecommendation,
    DiscountRequest,
    HistoricalSignal,
    MarketSignal,
    ProductSignal,
)
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.domain.services.recommendation_service import (
    ProductNotFoundError,
    RecommendationService,
)
from smart_discount.infrastructure.catalog.types import CatalogProvider
from smart_discount.utils.time import local_hour, utc_iso

logger = logging.getLogger(__name__)

router = APIRouter()

PROTOCOL_VERSION = "2024-11-05"
ENGINE_MODEL = "smart-discount-engine"

OBJECT_ID_FILTER = re.compile(r"objectID:(\w+)")
CATEGORY_FILTER = re.compile(r"product_category:'([^']+)'")
PRODUCT_ID_FILTER = re.compile(r"product_id:'(\w+)'")
REQUESTED_DISCOUNT = re.compile(r"Requested Discount: ([\d.]+)%")

METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "algolia_search",
        "description": "Look up products, market intelligence or pricing history",
        "inputSchema": {
            "type": "object",
            "properties": {
                "index_name": {"type": "string", "description": "Index to search"},
                "filters": {"type": "string", "description": "objectID:X, product_category:'Y' or product_id:'Z'"},
            },
            "required": ["index_name"],
        },
    },
    {
        "name": "analyze_discount",
        "description": "Recommend a safe discount for a product",
        "inputSchema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string"},
                "requested_discount": {"type": "number"},
                "user_id": {"type": "string"},
                "timestamp_hour": {"type": "integer", "minimum": 0, "maximum": 23},
            },
            "required": ["product_id", "requested_discount"],
        },
    },
    {
        "name": "check_profit_protection",
        "description": "Check a discount against the product's profit margin",
        "inputSchema": {
            "type": "object",
            "properties": {
                "product_id": {"type": "string"},
                "requested_discount": {"type": "number"},
                "user_id": {"type": "string"},
            },
            "required": ["product_id", "requested_discount"],
        },
    },
]


# Request models
class SearchArguments(BaseModel):
    index_name: str
    filters: Optional[str] = None


class AlgoliaSearchRequest(BaseModel):
    arguments: SearchArguments


class AnalyzeArguments(BaseModel):
    product_data: Optional[Dict[str, Any]] = None
    market_intelligence: Optional[Dict[str, Any]] = None
    historical_performance: Optional[Dict[str, Any]] = None
    user_id: str = ""
    timestamp_hour: Optional[int] = None


class AnalyzeRequest(BaseModel):
    user_message: str = ""
    arguments: AnalyzeArguments = Field(default_factory=AnalyzeArguments)


class JsonRpcRequest(BaseModel):
    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ToolError(Exception):
    pass


def _first_hit(payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    hits = (payload or {}).get("hits") or []
    return hits[0] if hits else None


def _match(pattern: re.Pattern, filters: Optional[str]) -> Optional[str]:
    found = pattern.search(filters or "")
    return found.group(1) if found else None


async def search_index(
    catalog: CatalogProvider,
    index_name: str,
    filters: Optional[str],
) -> List[Dict[str, Any]]:
    """Resolve an index lookup against the catalog."""
    if index_name == settings.ALGOLIA_PRODUCTS_INDEX:
        product_id = _match(OBJECT_ID_FILTER, filters)
        if product_id is None:
            return await catalog.search_products("")
        product = await catalog.get_product(product_id)
        return [product] if product else []

    if index_name == settings.ALGOLIA_MARKET_INDEX:
        category = _match(CATEGORY_FILTER, filters)
        market = await catalog.get_market(category) if category else None
        return [market] if market else []

    if index_name == settings.ALGOLIA_HISTORY_INDEX:
        product_id = _match(PRODUCT_ID_FILTER, filters)
        product = await catalog.get_product(product_id) if product_id else None
        tier = ProductSignal.from_hit(product).market_position.value
        history = await catalog.get_history(tier)
        return [history] if history else []

    logger.warning(f"Search requested for unknown index: {index_name}")
    return []


def parse_requested_discount(user_message: str) -> float:
    found = REQUESTED_DISCOUNT.search(user_message or "")
    return float(found.group(1)) if found else settings.DEFAULT_REQUESTED_DISCOUNT


def _analysis_response(recommendation: DiscountRecommendation) -> Dict[str, Any]:
    return {
        "analysis": recommendation.to_dict(),
        "model": ENGINE_MODEL,
        "timestamp": utc_iso(),
    }


@router.post("/tools/algolia_search")
async def algolia_search(
    payload: AlgoliaSearchRequest,
    catalog: CatalogProvider = Depends(get_catalog),
):
    """Look up records by index name and filter expression."""
    args = payload.arguments
    logger.info(f"MCP search on {args.index_name} with filters: {args.filters}")
    hits = await search_index(catalog, args.index_name, args.filters)
    return {"hits": hits}


@router.post("/ai/analyze")
async def analyze(
    payload: AnalyzeRequest,
    recommendations: RecommendationService = Depends(get_recommendation_service),
):
    """
    Run the recommendation engine over caller-supplied signals.

    Missing signals fall back to the engine defaults.
    """
    args = payload.arguments
    hour = args.timestamp_hour if args.timestamp_hour is not None else local_hour()
    try:
        request = DiscountRequest(
            requested_discount=parse_requested_discount(payload.user_message),
            user_id=args.user_id,
            timestamp_hour=hour,
        )
        product = ProductSignal.from_hit(_first_hit(args.product_data))
        market = MarketSignal.from_hit(_first_hit(args.market_intelligence))
        history = HistoricalSignal.from_hit(_first_hit(args.historical_performance))
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    recommendation = recommendations.engine.recommend(product, market, history, request)
    return _analysis_response(recommendation)


# ======================
# JSON-RPC
# ======================

async def _call_tool(
    name: str,
    arguments: Dict[str, Any],
    catalog: CatalogProvider,
    recommendations: RecommendationService,
    profit_protection: ProfitProtectionService,
) -> Dict[str, Any]:
    if name == "algolia_search":
        index_name = arguments.get("index_name")
        if not index_name:
            raise ToolError("index_name is required")
        return {"hits": await search_index(catalog, index_name, arguments.get("filters"))}

    if name == "analyze_discount":
        hour = arguments.get("timestamp_hour")
        request = DiscountRequest(
            requested_discount=float(arguments.get("requested_discount", settings.DEFAULT_REQUESTED_DISCOUNT)),
            user_id=str(arguments.get("user_id") or ""),
            timestamp_hour=int(hour) if hour is not None else local_hour(),
        )
        _, recommendation = await recommendations.recommend_for_product(
            str(arguments.get("product_id") or ""), request
        )
        return _analysis_response(recommendation)

    if name == "check_profit_protection":
        result = await profit_protection.validate(
            str(arguments.get("product_id") or ""),
            float(arguments.get("requested_discount", 0)),
            str(arguments.get("user_id") or ""),
        )
        return {
            "allowed": result.allowed,
            "approved_discount": result.approved_discount,
            "profit_margin": result.profit_margin,
            "message": result.message,
        }

    raise ToolError(f"Unknown tool: {name}")


def _rpc_error(request_id, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


@router.post("")
async def json_rpc(
    payload: JsonRpcRequest,
    catalog: CatalogProvider = Depends(get_catalog),
    recommendations: RecommendationService = Depends(get_recommendation_service),
    profit_protection: ProfitProtectionService = Depends(get_profit_protection),
):
    """JSON-RPC 2.0: initialize, tools/list, tools/call."""
    logger.info(f"MCP request: {payload.method}")

    if payload.method == "initialize":
        result: Dict[str, Any] = {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": "smart-discount-mcp", "version": settings.APP_VERSION},
            "capabilities": {"tools": {"listChanged": False}},
        }
    elif payload.method == "tools/list":
        result = {"tools": TOOLS}
    elif payload.method == "tools/call":
        name = str(payload.params.get("name", ""))
        arguments = payload.params.get("arguments") or {}
        try:
            data = await _call_tool(name, arguments, catalog, recommendations, profit_protection)
        except (ToolError, ProductNotFoundError, TypeError, ValueError) as exc:
            logger.warning(f"MCP tool {name} failed: {exc}")
            return _rpc_error(payload.id, INTERNAL_ERROR, str(exc))
        except Exception as exc:
            logger.exception(f"MCP tool {name} raised")
            return _rpc_error(payload.id, INTERNAL_ERROR, str(exc))
        result = {
            "content": [{"type": "text", "text": json.dumps(data)}],
            "isError": False,
        }
    else:
        return _rpc_error(payload.id, METHOD_NOT_FOUND, f"Unknown method: {payload.method}")

    return {"jsonrpc": "2.0", "id": payload.id, "result": result}
