"""
Catalog provider factory (settings-driven).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from smart_discount.config import Settings, settings as default_settings
from smart_discount.infrastructure.catalog.algolia_provider import AlgoliaCatalogProvider
from smart_discount.infrastructure.catalog.in_memory_provider import InMemoryCatalogProvider
from smart_discount.infrastructure.catalog.provider_chain import (
    ChainedCatalogProvider,
    NamedProvider,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]


def _mock_data_path(cfg: Settings) -> Path:
    path = Path(cfg.MOCK_DATA_FILE)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def get_catalog_provider(cfg: Optional[Settings] = None) -> ChainedCatalogProvider:
    cfg = cfg or default_settings
    providers: List[NamedProvider] = []

    try:
        algolia = AlgoliaCatalogProvider(
            app_id=cfg.ALGOLIA_APP_ID or "",
            api_key=cfg.ALGOLIA_API_KEY or "",
            products_index=cfg.ALGOLIA_PRODUCTS_INDEX,
            market_index=cfg.ALGOLIA_MARKET_INDEX,
            history_index=cfg.ALGOLIA_HISTORY_INDEX,
            cache_ttl_seconds=cfg.ALGOLIA_CACHE_TTL,
        )
        providers.append(NamedProvider("algolia", algolia))
    except ValueError:
        logger.info("Algolia credentials not configured; using mock catalog only")

    providers.append(NamedProvider("mock", InMemoryCatalogProvider.from_yaml(_mock_data_path(cfg))))
    return ChainedCatalogProvider(providers)
