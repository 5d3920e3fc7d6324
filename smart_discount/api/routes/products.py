"""
Product catalog routes
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from smart_discount.api.dependencies import get_catalog
from smart_discount.infrastructure.catalog.types import CatalogProvider

logger = logging.getLogger(__name__)

router = APIRouter()


class ProductBatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_ids: List[str] = Field(..., alias="productIds")


@router.get("")
async def list_products(
    query: str = Query(""),
    limit: int = Query(20, ge=1, le=100),
    catalog: CatalogProvider = Depends(get_catalog),
):
    """Search the catalog; an empty query lists products."""
    logger.info(f"Getting products with query: '{query}', limit: {limit}")
    products = await catalog.search_products(query, limit)
    return {"products": products, "count": len(products), "query": query}


@router.get("/{product_id}")
async def get_product(product_id: str, catalog: CatalogProvider = Depends(get_catalog)):
    product = await catalog.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
    return {"product": product, "found": True}


@router.post("/batch")
async def get_products_batch(
    payload: ProductBatchRequest,
    catalog: CatalogProvider = Depends(get_catalog),
):
    logger.info(f"Getting batch of products: {payload.product_ids}")
    products = {}
    for product_id in payload.product_ids:
        product = await catalog.get_product(product_id)
        if product is not None:
            products[product_id] = product
    return {
        "products": products,
        "requested": len(payload.product_ids),
        "found": len(products),
    }
