"""
Provider chain - try primary, then fallbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from smart_discount.infrastructure.catalog.types import CatalogProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedProvider:
    name: str
    provider: CatalogProvider


class ChainedCatalogProvider:
    def __init__(self, providers: List[NamedProvider]):
        if not providers:
            raise ValueError("At least one catalog provider is required")
        self.providers = providers
        self.last_product_sources: Dict[str, str] = {}
        self.last_market_sources: Dict[str, str] = {}
        self.last_history_sources: Dict[str, str] = {}

    @property
    def names(self) -> List[str]:
        return [named.name for named in self.providers]

    def get_last_sources(self) -> Dict[str, Dict[str, str]]:
        return {
            "products": dict(self.last_product_sources),
            "market": dict(self.last_market_sources),
            "history": dict(self.last_history_sources),
        }

    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        for named in self.providers:
            try:
                data = await named.provider.get_product(product_id)
                if data:
                    self.last_product_sources[product_id] = named.name
                    return data
            except Exception as exc:
                logger.warning(f"{named.name}: get_product({product_id}) failed: {exc}")
                continue
        return None

    async def search_products(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        for named in self.providers:
            try:
                hits = await named.provider.search_products(query, limit)
                if hits:
                    return hits
            except Exception as exc:
                logger.warning(f"{named.name}: search_products failed: {exc}")
                continue
        return []

    async def get_market(self, category: str) -> Optional[Dict[str, Any]]:
        for named in self.providers:
            try:
                data = await named.provider.get_market(category)
                if data:
                    self.last_market_sources[category] = named.name
                    return data
            except Exception as exc:
                logger.warning(f"{named.name}: get_market({category}) failed: {exc}")
                continue
        return None

    async def get_history(self, market_tier: str) -> Optional[Dict[str, Any]]:
        for named in self.providers:
            try:
                data = await named.provider.get_history(market_tier)
                if data:
                    self.last_history_sources[market_tier] = named.name
                    return data
            except Exception as exc:
                logger.warning(f"{named.name}: get_history({market_tier}) failed: {exc}")
                continue
        return None

    async def store_event(self, index: str, record: Dict[str, Any]) -> None:
        """Write to the first provider that accepts the record."""
        last_error: Optional[Exception] = None
        for named in self.providers:
            try:
                await named.provider.store_event(index, record)
                return
            except Exception as exc:
                logger.warning(f"{named.name}: store_event({index}) failed: {exc}")
                last_error = exc
        if last_error is not None:
            raise last_error

    async def search_events(
        self,
        index: str,
        *,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        for named in self.providers:
            try:
                hits = await named.provider.search_events(
                    index, user_id=user_id, event_type=event_type, limit=limit
                )
                if hits:
                    return hits
            except Exception as exc:
                logger.warning(f"{named.name}: search_events({index}) failed: {exc}")
                continue
        return []
