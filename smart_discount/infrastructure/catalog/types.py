"""
Catalog provider protocol for type hints.

Records are plain dicts shaped like search-index hits (snake_case product
fields, ``objectID`` as the key).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class CatalogProvider(Protocol):
    async def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def search_products(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        ...

    async def get_market(self, category: str) -> Optional[Dict[str, Any]]:
        ...

    async def get_history(self, market_tier: str) -> Optional[Dict[str, Any]]:
        ...

    async def store_event(self, index: str, record: Dict[str, Any]) -> None:
        ...

    async def search_events(
        self,
        index: str,
        *,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        ...
