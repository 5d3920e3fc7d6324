import json
import re
from datetime import datetime, timezone

import pytest

from smart_discount.domain.models import DiscountType, EventType, UserEvent
from smart_discount.domain.services.discount_service import (
    DiscountService,
    generate_code,
    should_offer_discount,
)
from smart_discount.domain.services.discount_strategies import (
    HeuristicDiscountStrategy,
    LlmDiscountStrategy,
)
from smart_discount.domain.services.profit_protection_service import ProfitProtectionService
from smart_discount.domain.services.recommendation_service import RecommendationService
from tests.fakes import FakeClock, FakeGenerator, seed_catalog

WIDE_MARGIN = {"objectID": "WIDE", "name": "Trail Tent", "price": 100.0, "profit_margin": 0.5, "category": "Sports"}
NO_MARGIN = {"objectID": "THIN", "name": "Gift Card", "price": 50.0, "profit_margin": 0, "category": "Gifts"}


def _events(*types, product_id="PROD018"):
    ts = datetime(2025, 1, 15, 13, 0, tzinfo=timezone.utc)
    return [UserEvent(f"e{i}", "user1", t, ts, product_id=product_id) for i, t in enumerate(types)]


def _llm_reply(**fields):
    body = {"shouldOffer": True, "type": "percentage", "value": 10, "headline": "Deal",
            "message": "Save now", "reasoning": "Loyal shopper"}
    body.update(fields)
    return f"Here you go:\n{json.dumps(body)}"


def _service(clock, strategies=None, replies=None):
    catalog = seed_catalog(WIDE_MARGIN, NO_MARGIN)
    recommendations = RecommendationService(catalog)
    if strategies is None:
        strategies = []
        if replies is not None:
            strategies.append(LlmDiscountStrategy(FakeGenerator(replies)))
        strategies.append(HeuristicDiscountStrategy(recommendations, 15.0))
    return DiscountService(
        catalog,
        strategies,
        ProfitProtectionService(catalog),
        events_index="events",
        clock=clock,
        hour_provider=lambda: 14,
    )


@pytest.mark.unit
def test_eligibility_rules():
    assert not should_offer_discount([])
    assert not should_offer_discount(_events("product_view", "price_hover"))
    assert should_offer_discount(_events("cart_abandon"))
    assert should_offer_discount(_events("price_hover", "price_hover"))
    assert should_offer_discount(_events(*["multiple_product_views"] * 3))
    assert should_offer_discount(_events("no_results_search"))


@pytest.mark.unit
def test_code_format():
    assert re.fullmatch(r"SAVE15-ER1-[0-9A-F]{8}", generate_code("user1", DiscountType.PERCENTAGE, 15))
    assert generate_code("u", DiscountType.FLAT_AMOUNT, 9.6).startswith("OFF10-U-")
    assert generate_code("", DiscountType.FREE_SHIPPING, 0).startswith("SHIP0-ANY-")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_explicit_product_always_gets_heuristic_offer(clock):
    service = _service(clock)
    discount = await service.generate_personalized_discount("user1", "PROD018")

    assert discount is not None
    assert discount.type == DiscountType.PERCENTAGE
    assert discount.value == 15
    assert discount.amount == "15% off"
    assert discount.product_id == "PROD018"
    assert discount.expires_in_seconds == 30 * 60
    assert discount.message.startswith("Based on your interest in this product")
    assert service.get(discount.code) is discount


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_product_gets_no_offer(clock):
    service = _service(clock)
    assert await service.generate_personalized_discount("user1", "NOPE") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_behaviour_drives_offer_without_product(clock):
    service = _service(clock)
    assert await service.generate_personalized_discount("user1") is None

    await service.track_event("user1", EventType.PRODUCT_VIEW.value, product_id="PROD017")
    assert await service.generate_personalized_discount("user1") is None

    clock.advance(minutes=1)
    await service.track_event("user1", EventType.CART_ABANDON.value, product_id="PROD018")
    discount = await service.generate_personalized_discount("user1")
    assert discount is not None
    assert discount.product_id == "PROD018"
    assert "left this item in your cart" in discount.message


@pytest.mark.asyncio
@pytest.mark.unit
async def test_track_event_requires_user_and_type(clock):
    service = _service(clock)
    with pytest.raises(ValueError):
        await service.track_event("", "cart_abandon")
    with pytest.raises(ValueError):
        await service.track_event("user1", "")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_history_newest_first(clock):
    service = _service(clock)
    await service.track_event("user1", "product_view", timestamp=datetime(2025, 1, 1, 9, 0))
    await service.track_event("user1", "price_hover", timestamp=datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc))
    await service.track_event("user2", "cart_abandon")

    history = await service.behaviour_history("user1")
    assert [e.event_type for e in history] == ["price_hover", "product_view"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_llm_offer_over_margin_is_adjusted(clock):
    service = _service(clock, replies=[_llm_reply(value=45)])
    discount = await service.generate_personalized_discount("user1", "WIDE")

    assert discount.profit_protected
    assert discount.value == 40.0
    assert discount.original_requested_discount == 45
    assert discount.message == "Save now (Discount adjusted for sustainable pricing)"
    assert discount.reasoning.endswith("(Adjusted for profit protection)")
    assert discount.code.startswith("SAVE40-")
    assert "Discount blocked" in discount.protection_message


@pytest.mark.asyncio
@pytest.mark.unit
async def test_zero_margin_blocks_offer(clock):
    service = _service(clock, replies=[_llm_reply(value=10)])
    assert await service.generate_personalized_discount("user1", "THIN") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_llm_declining_means_no_offer(clock):
    service = _service(clock, replies=['{"shouldOffer": false}'])
    assert await service.generate_personalized_discount("user1", "WIDE") is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_flat_amount_checked_as_percentage_of_price(clock):
    service = _service(clock, replies=[_llm_reply(type="flat_amount", value=10)])
    discount = await service.generate_personalized_discount("user1", "WIDE")
    assert discount.type == DiscountType.FLAT_AMOUNT
    assert discount.amount == "$10 off"
    assert not discount.profit_protected


@pytest.mark.asyncio
@pytest.mark.unit
async def test_free_shipping_skips_margin_check(clock):
    service = _service(clock, replies=[_llm_reply(type="free_shipping", value=0)])
    discount = await service.generate_personalized_discount("user1", "THIN")
    assert discount.amount == "Free Shipping"
    assert discount.code.startswith("SHIP0-")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failing_strategy_falls_back(clock):
    class Broken:
        name = "broken"

        async def suggest(self, user_id, events, product, hour):
            raise RuntimeError("boom")

    catalog_service = _service(clock)
    heuristic = catalog_service.strategies[-1]
    service = _service(clock, strategies=[Broken(), heuristic])
    discount = await service.generate_personalized_discount("user1", "PROD018")
    assert discount.value == 15

    service = _service(clock, strategies=[Broken()])
    with pytest.raises(RuntimeError):
        await service.generate_personalized_discount("user1", "PROD018")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_apply_and_expiry(clock):
    service = _service(clock)
    first = await service.generate_personalized_discount("user1", "PROD018")
    second = await service.generate_personalized_discount("user1", "PROD017")

    assert not service.validate("MISSING", "user1")
    assert not service.validate(first.code, "someone-else")
    assert service.validate(first.code, "user1")

    assert service.apply(first.code, "user1")
    assert not service.apply(first.code, "user1")
    assert not first.active

    clock.advance(minutes=31)
    assert not service.validate(second.code, "user1")
    assert not second.active

    assert service.clear_expired() == 2
    assert service.active_discounts() == {}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_storing_an_offer_drops_expired_ones(clock):
    service = _service(clock)
    for product_id in ("PROD018", "PROD017", "PROD015"):
        await service.generate_personalized_discount("user1", product_id)
    assert len(service.active_discounts()) == 3

    clock.advance(minutes=31)
    latest = await service.generate_personalized_discount("user2", "PROD018")

    assert list(service.active_discounts()) == [latest.code]
    assert service.clear_expired() == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_code_clash_reissues_instead_of_replacing(clock, monkeypatch):
    suffixes = iter(["0000aaaa", "0000aaaa", "1111bbbb"])
    monkeypatch.setattr(
        "smart_discount.domain.services.discount_service.secrets.token_hex",
        lambda nbytes: next(suffixes),
    )
    service = _service(clock)
    first = await service.generate_personalized_discount("user1", "PROD018")
    second = await service.generate_personalized_discount("user1", "PROD018")

    assert first.code == "SAVE15-ER1-0000AAAA"
    assert second.code == "SAVE15-ER1-1111BBBB"
    assert set(service.active_discounts()) == {first.code, second.code}


@pytest.mark.unit
def test_service_needs_a_strategy(mock_catalog):
    with pytest.raises(ValueError):
        DiscountService(mock_catalog, [], ProfitProtectionService(mock_catalog), clock=FakeClock())
