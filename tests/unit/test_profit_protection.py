import pytest

from smart_discount.domain.services.profit_protection_service import (
    VETO_EVENT_TYPE,
    ProfitProtectionService,
)
from smart_discount.infrastructure.catalog.in_memory_provider import InMemoryCatalogProvider


def _catalog(**product):
    product.setdefault("objectID", "P1")
    return InMemoryCatalogProvider(products=[product])


@pytest.mark.unit
def test_threshold_must_be_a_fraction():
    with pytest.raises(ValueError):
        ProfitProtectionService(_catalog(), threshold=0)
    with pytest.raises(ValueError):
        ProfitProtectionService(_catalog(), threshold=1.5)


@pytest.mark.unit
def test_margin_percentage_accepts_fraction_or_percent():
    assert ProfitProtectionService.margin_percentage(0.5) == 50.0
    assert ProfitProtectionService.margin_percentage(40) == 40


@pytest.mark.asyncio
@pytest.mark.unit
async def test_discount_within_limit_is_approved():
    service = ProfitProtectionService(_catalog(profit_margin=0.5))
    result = await service.validate("P1", 30, "user1")
    assert result.allowed
    assert result.approved_discount == 30
    assert result.profit_margin == 50.0
    assert result.message == "Discount approved"
    assert await service.recent_vetoes() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_discount_over_limit_is_vetoed_and_logged():
    catalog = _catalog(profit_margin=0.5)
    service = ProfitProtectionService(catalog, veto_index="vetoes")
    result = await service.validate("P1", 45, "user1")

    assert not result.allowed
    assert result.approved_discount == 40.0
    assert result.message == (
        "Discount blocked: Requested 45.0% exceeds maximum allowed 40.0% "
        "(80% of 50.0% profit margin)"
    )

    vetoes = await service.recent_vetoes()
    assert len(vetoes) == 1
    assert vetoes[0]["eventType"] == VETO_EVENT_TYPE
    assert vetoes[0]["productId"] == "P1"
    assert vetoes[0]["requestedDiscount"] == 45
    assert vetoes[0]["maxAllowedDiscount"] == 40.0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_margin_allows_discount():
    service = ProfitProtectionService(_catalog(price=10))
    result = await service.validate("P1", 90, "user1")
    assert result.allowed
    assert result.message == "No profit margin data available"

    result = await service.validate("UNKNOWN", 90, "user1")
    assert result.allowed


@pytest.mark.asyncio
@pytest.mark.unit
async def test_catalog_failure_allows_discount():
    class BrokenCatalog:
        async def get_product(self, product_id):
            raise RuntimeError("index unavailable")

    service = ProfitProtectionService(BrokenCatalog())
    result = await service.validate("P1", 20, "user1")
    assert result.allowed
    assert result.message == "Error in profit validation - discount allowed"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_veto_write_failure_is_not_raised():
    class ReadOnlyCatalog(InMemoryCatalogProvider):
        async def store_event(self, index, record):
            raise RuntimeError("write refused")

    service = ProfitProtectionService(
        ReadOnlyCatalog(products=[{"objectID": "P1", "profit_margin": 0.5}])
    )
    result = await service.validate("P1", 45, "user1")
    assert not result.allowed
