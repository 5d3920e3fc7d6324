import pytest


@pytest.mark.asyncio
@pytest.mark.integration
async def test_recommend_for_catalog_product(client):
    r = await client.post(
        "/api/recommendations",
        json={"productId": "PROD018", "requestedDiscount": 15, "userId": "user1", "timestampHour": 14},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["productId"] == "PROD018"
    assert body["requestedDiscount"] == 15
    assert body["recommendation"]["recommended_discount"] == 15
    assert body["recommendation"]["reasoning"].startswith("15% discount approved")
    assert body["source"] == "mock"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_recommend_errors(client):
    r = await client.post("/api/recommendations", json={"productId": "MISSING", "timestampHour": 14})
    assert r.status_code == 404

    r = await client.post(
        "/api/recommendations",
        json={"productId": "PROD018", "requestedDiscount": 150, "timestampHour": 14},
    )
    assert r.status_code == 400

    r = await client.post("/api/recommendations", json={"requestedDiscount": 10})
    assert r.status_code == 422
