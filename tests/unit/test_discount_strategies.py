from datetime import datetime, timezone

import pytest

from smart_discount.domain.models import DiscountRequest, DiscountType, UserEvent
from smart_discount.domain.services.discount_strategies import (
    DEFAULT_SUGGESTION,
    DIRECT_REQUEST_REASON,
    HeuristicDiscountStrategy,
    LlmDiscountStrategy,
    behaviour_reason,
    build_discount_prompt,
    parse_discount_suggestion,
    polish_reasoning,
    suggestion_strategies,
)
from smart_discount.domain.services.recommendation_service import (
    ProductNotFoundError,
    RecommendationService,
)
from tests.fakes import FakeGenerator, seed_catalog

BACKPACK = {
    "objectID": "PROD018",
    "name": "Waterproof Hiking Backpack",
    "price": 89.99,
    "category": "Sports",
    "profit_margin": 0.35,
    "average_rating": 4.6,
    "number_of_reviews": 342,
}


def _event(event_type):
    return UserEvent("e1", "user1", event_type, datetime(2025, 1, 15, tzinfo=timezone.utc), "PROD018")


@pytest.mark.unit
def test_parse_full_answer_inside_prose():
    text = (
        "Sure! ```json\n"
        '{"shouldOffer": "true", "type": "flat_amount", "value": "12", '
        '"headline": "Backpack deal", "message": "Take $12 off", "reasoning": "Price-conscious"}\n```'
    )
    suggestion = parse_discount_suggestion(text)
    assert suggestion.type == DiscountType.FLAT_AMOUNT
    assert suggestion.value == 12.0
    assert suggestion.headline == "Backpack deal"


@pytest.mark.unit
def test_parse_fills_missing_fields():
    suggestion = parse_discount_suggestion('{"shouldOffer": true, "type": "mystery"}')
    assert suggestion.type == DiscountType.PERCENTAGE
    assert suggestion.value == 10.0
    assert suggestion.headline == "Special Offer!"


@pytest.mark.unit
def test_parse_declined_and_garbage():
    assert parse_discount_suggestion('{"shouldOffer": false, "value": 30}') is None
    assert parse_discount_suggestion("no json here") == DEFAULT_SUGGESTION
    assert parse_discount_suggestion("{not: valid}") == DEFAULT_SUGGESTION
    assert parse_discount_suggestion(None) == DEFAULT_SUGGESTION


@pytest.mark.unit
def test_behaviour_reason_uses_most_recent_telling_event():
    assert behaviour_reason([]) == DIRECT_REQUEST_REASON
    assert behaviour_reason([_event("search_query"), _event("price_hover")]).startswith(
        "We noticed you're price-conscious"
    )


@pytest.mark.unit
def test_prompt_mentions_product_and_constraints():
    prompt = build_discount_prompt("user1", [], BACKPACK, 25, 0.15)
    assert "Waterproof Hiking Backpack" in prompt
    assert "Profit Margin: 35.0%" in prompt
    assert "Maximum discount: 25%" in prompt
    assert "shouldOffer: true" in prompt

    prompt = build_discount_prompt("user1", [_event("cart_abandon")], BACKPACK, 25, 0.15)
    assert "- cart_abandon at 2025-01-15T00:00:00+00:00" in prompt


@pytest.mark.asyncio
@pytest.mark.unit
async def test_llm_strategy_uses_generator_answer():
    generator = FakeGenerator(['{"shouldOffer": true, "value": 18, "headline": "Go"}'])
    strategy = LlmDiscountStrategy(generator, max_discount=20)
    suggestion = await strategy.suggest("user1", [], BACKPACK, 14)
    assert suggestion.value == 18
    assert "Maximum discount: 20%" in generator.prompts[0]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_llm_strategy_defaults_when_generator_silent():
    strategy = LlmDiscountStrategy(FakeGenerator())
    assert await strategy.suggest("user1", [], BACKPACK, 14) == DEFAULT_SUGGESTION


@pytest.mark.asyncio
@pytest.mark.unit
async def test_heuristic_strategy_phrases_engine_result():
    service = RecommendationService(seed_catalog())
    strategy = HeuristicDiscountStrategy(service, requested_discount=15)
    product = await service.catalog.get_product("PROD018")
    suggestion = await strategy.suggest("user1", [_event("cart_abandon")], product, 14)

    assert suggestion.type == DiscountType.PERCENTAGE
    assert suggestion.value == 15
    assert suggestion.headline == "15% off Waterproof Hiking Backpack"
    assert suggestion.message.startswith("You left this item in your cart")
    assert suggestion.reasoning.startswith("15% discount approved based on 35% profit margin")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_heuristic_strategy_skips_zero_recommendation():
    service = RecommendationService(seed_catalog({"objectID": "Z", "profit_margin": 0.01}))
    strategy = HeuristicDiscountStrategy(service, requested_discount=15)
    product = await service.catalog.get_product("Z")
    assert await strategy.suggest("user1", [], product, 14) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_signals_use_category_and_tier_lookups():
    service = RecommendationService(seed_catalog())
    signals = await service.load_signals("PROD016")
    assert signals.market.competitor_prices[0] == 799.99
    assert signals.history.customer_lifetime_value == 450.75

    with pytest.raises(ProductNotFoundError):
        await service.load_signals("MISSING")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_category_falls_back_to_defaults():
    service = RecommendationService(seed_catalog({"objectID": "X", "category": "Garden"}))
    signals, rec = await service.recommend_for_product(
        "X", DiscountRequest(requested_discount=15, timestamp_hour=14)
    )
    assert signals.market.competitor_prices == (79.99, 95.99, 84.99)
    assert rec.confidence_score == pytest.approx(0.73)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_polish_reasoning_falls_back_to_engine_text():
    service = RecommendationService(seed_catalog())
    _, rec = await service.recommend_for_product(
        "PROD018", DiscountRequest(requested_discount=15, timestamp_hour=14)
    )
    assert await polish_reasoning(None, rec) == rec.reasoning
    assert await polish_reasoning(FakeGenerator(), rec) == rec.reasoning
    assert await polish_reasoning(FakeGenerator(["  Great pick!  "]), rec) == "Great pick!"


@pytest.mark.unit
def test_strategy_order():
    service = RecommendationService(seed_catalog())
    names = [s.name for s in suggestion_strategies(service, FakeGenerator(), True, 15, 25, 0.15)]
    assert names == ["llm", "heuristic"]
    names = [s.name for s in suggestion_strategies(service, None, True, 15, 25, 0.15)]
    assert names == ["heuristic"]
    names = [s.name for s in suggestion_strategies(service, FakeGenerator(), False, 15, 25, 0.15)]
    assert names == ["heuristic"]
