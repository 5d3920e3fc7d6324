"""
In-memory catalog provider seeded from YAML.
Stands in for the hosted search index in demos and tests.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


class InMemoryCatalogProvider:
    def __init__(
        self,
        products: Optional[List[Dict[str, Any]]] = None,
        market_intelligence: Optional[Dict[str, Dict[str, Any]]] = None,
        pricing_history: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self._products: Dict[str, Dict[str, Any]] = {
            p["objectID"]: dict(p) for p in (products or [])
        }
        self._market = {k.lower(): dict(v) for k, v in (market_intelligence or {}).items()}
        self._history = {k.lower(): dict(v) for k, v in (pricing_history or {}).items()}
        self._events: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    @classmethod
    def from_yaml(cls, path: Path) -> "InMemoryCatalogProvider":
        """Load seed data from a YAML file"""
        if not path.exists():
            raise FileNotFoundError(f"Mock data not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        products = data.get("products", [])
        ids = [p.get("objectID") for p in products]
        if any(not pid for pid in ids):
            raise ValueError("Every seeded product needs an objectID")
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate product IDs found in mock data")

        logger.info(f"Loaded {len(products)} mock products from {path}")
        return cls(
            products=products,
            market_intelligence=data.get("market_intelligence", {}),
            pricing_history=data.get("pricing_history", {}),
        )

    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        product = self._products.get(product_id)
        return copy.deepcopy(product) if product else None

    async def search_products(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        terms = (query or "").lower().split()
        hits = []
        for product in self._products.values():
            haystack = " ".join(
                str(product.get(field, "")) for field in ("name", "category", "brand", "description")
            ).lower()
            if not terms or any(term in haystack for term in terms):
                hits.append(copy.deepcopy(product))
            if len(hits) >= limit:
                break
        return hits

    async def get_market(self, category: str) -> Optional[Dict[str, Any]]:
        market = self._market.get((category or "").lower())
        return copy.deepcopy(market) if market else None

    async def get_history(self, market_tier: str) -> Optional[Dict[str, Any]]:
        history = self._history.get((market_tier or "").lower())
        return copy.deepcopy(history) if history else None

    async def store_event(self, index: str, record: Dict[str, Any]) -> None:
        self._events[index].insert(0, copy.deepcopy(record))

    async def search_events(
        self,
        index: str,
        *,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        results = []
        for record in self._events.get(index, []):
            if user_id is not None and record.get("userId") != user_id:
                continue
            if event_type is not None and record.get("eventType") != event_type:
                continue
            results.append(copy.deepcopy(record))
            if len(results) >= limit:
                break
        return results
