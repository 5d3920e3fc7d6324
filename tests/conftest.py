from typing import AsyncGenerator, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from smart_discount.config import settings
from smart_discount.infrastructure.catalog.in_memory_provider import InMemoryCatalogProvider
from smart_discount.infrastructure.catalog.provider_chain import ChainedCatalogProvider, NamedProvider
import smart_discount.main as app_main
from tests.fakes import MOCK_DATA, FakeClock, FakeGenerator


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def mock_catalog() -> InMemoryCatalogProvider:
    return InMemoryCatalogProvider.from_yaml(MOCK_DATA)


@pytest.fixture()
def catalog(mock_catalog) -> ChainedCatalogProvider:
    return ChainedCatalogProvider([NamedProvider("mock", mock_catalog)])


@pytest.fixture()
def generator() -> Optional[FakeGenerator]:
    return None


@pytest.fixture()
def app_settings():
    return settings


@pytest.fixture()
def app(catalog, generator, app_settings, clock) -> FastAPI:
    app = app_main.app
    app_main.init_services(
        app,
        catalog,
        generator,
        app_settings,
        clock=clock,
        hour_provider=lambda: 14,
    )
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
