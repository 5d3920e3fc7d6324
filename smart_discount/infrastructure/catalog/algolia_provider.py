"""
Algolia Catalog Provider (REST API)
Primary product / market / history source when credentials are configured.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

logger = logging.getLogger(__name__)


def _quote_filter_value(value: str) -> str:
    return "'" + str(value).replace("'", "\\'") + "'"


class AlgoliaCatalogProvider:
    def __init__(
        self,
        app_id: str,
        api_key: str,
        products_index: str = "sdg_products",
        market_index: str = "market_intelligence",
        history_index: str = "pricing_history",
        cache_ttl_seconds: int = 60,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not app_id or not api_key:
            raise ValueError("Algolia app id/api key missing")
        self.app_id = app_id.strip()
        self.api_key = api_key.strip()
        self.read_base_url = f"https://{self.app_id}-dsn.algolia.net/1/indexes"
        self.write_base_url = f"https://{self.app_id}.algolia.net/1/indexes"
        self.products_index = products_index
        self.market_index = market_index
        self.history_index = history_index
        self.cache_ttl_seconds = cache_ttl_seconds
        self.timeout = timeout
        self._transport = transport
        self._cache: Dict[str, tuple[float, object]] = {}

    def _cache_get(self, key: str) -> Optional[object]:
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if time.time() - ts > self.cache_ttl_seconds:
            return None
        return value

    def _cache_set(self, key: str, value: object) -> None:
        self._cache[key] = (time.time(), value)

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Algolia-Application-Id": self.app_id,
            "X-Algolia-API-Key": self.api_key,
        }

    async def _request_json(
        self,
        method: str,
        url: str,
        json_body: Optional[dict] = None,
    ) -> Optional[dict]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=self._headers(), json=json_body)
                if response.status_code == 404:
                    return None
                if response.status_code not in (200, 201):
                    logger.warning(f"Algolia API {response.status_code} for {method} {url}")
                    logger.debug(f"Algolia response body: {response.text}")
                    return None
                return response.json()
        except Exception as exc:
            logger.warning(f"Algolia request failed: {exc}")
            return None

    async def _query(
        self,
        index: str,
        query: str = "",
        filters: Optional[str] = None,
        hits_per_page: int = 20,
    ) -> List[Dict[str, Any]]:
        params = {"query": query, "hitsPerPage": hits_per_page}
        if filters:
            params["filters"] = filters
        url = f"{self.read_base_url}/{quote(index, safe='')}/query"
        payload = await self._request_json("POST", url, {"params": urlencode(params)})
        if not payload:
            return []
        return list(payload.get("hits", []))

    # ------------------------------------------------------------------
    # PRODUCTS
    # ------------------------------------------------------------------

    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        cache_key = f"product:{product_id}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return dict(cached)  # type: ignore[arg-type]

        url = f"{self.read_base_url}/{quote(self.products_index, safe='')}/{quote(product_id, safe='')}"
        product = await self._request_json("GET", url)
        if product:
            self._cache_set(cache_key, product)
        return product

    async def search_products(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        return await self._query(self.products_index, query=query or "", hits_per_page=limit)

    # ------------------------------------------------------------------
    # MARKET & HISTORY
    # ------------------------------------------------------------------

    async def get_market(self, category: str) -> Optional[Dict[str, Any]]:
        cache_key = f"market:{category}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return dict(cached)  # type: ignore[arg-type]

        hits = await self._query(
            self.market_index,
            filters=f"product_category:{_quote_filter_value(category)}",
            hits_per_page=1,
        )
        if not hits:
            return None
        self._cache_set(cache_key, hits[0])
        return hits[0]

    async def get_history(self, market_tier: str) -> Optional[Dict[str, Any]]:
        cache_key = f"history:{market_tier}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return dict(cached)  # type: ignore[arg-type]

        hits = await self._query(
            self.history_index,
            filters=f"market_position:{_quote_filter_value(market_tier)}",
            hits_per_page=1,
        )
        if not hits:
            return None
        self._cache_set(cache_key, hits[0])
        return hits[0]

    # ------------------------------------------------------------------
    # EVENTS
    # ------------------------------------------------------------------

    async def store_event(self, index: str, record: Dict[str, Any]) -> None:
        object_id = record.get("objectID")
        index_path = quote(index, safe="")
        if object_id:
            url = f"{self.write_base_url}/{index_path}/{quote(str(object_id), safe='')}"
            result = await self._request_json("PUT", url, record)
        else:
            url = f"{self.write_base_url}/{index_path}"
            result = await self._request_json("POST", url, record)
        if result is None:
            raise RuntimeError(f"Failed to store record in Algolia index {index}")

    async def search_events(
        self,
        index: str,
        *,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        clauses = []
        if user_id is not None:
            clauses.append(f"userId:{_quote_filter_value(user_id)}")
        if event_type is not None:
            clauses.append(f"eventType:{_quote_filter_value(event_type)}")
        filters = " AND ".join(clauses) or None
        return await self._query(index, filters=filters, hits_per_page=limit)
