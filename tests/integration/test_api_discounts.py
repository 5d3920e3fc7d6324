import pytest


async def _offer(client, product_id="PROD018", user_id="user1"):
    r = await client.get("/api/get-discount", params={"userId": user_id, "productId": product_id})
    assert r.status_code == 200
    return r.json()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_track_and_read_behaviour(client):
    r = await client.post(
        "/api/user-behavior",
        json={"userId": "user1", "eventType": "product_view", "productId": "PROD017"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "success"
    assert body["eventId"]

    await client.post(
        "/api/user-behavior",
        json={"userId": "user1", "eventType": "search_query", "query": "tent",
              "timestamp": "2025-01-15T14:05:00Z"},
    )

    r = await client.get("/api/user-behavior/user1")
    body = r.json()
    assert body["totalEvents"] == 2
    assert [e["eventType"] for e in body["events"]] == ["search_query", "product_view"]

    r = await client.get("/api/user-behavior/user1", params={"limit": 1})
    assert r.json()["totalEvents"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_behaviour_requires_user_and_type(client):
    r = await client.post("/api/user-behavior", json={"eventType": "product_view"})
    assert r.status_code == 422

    r = await client.post("/api/user-behavior", json={"userId": "user1", "eventType": ""})
    assert r.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_no_offer_without_signals(client):
    body = (await client.get("/api/get-discount", params={"userId": "quiet-user"})).json()
    assert body == {
        "status": "no_offer",
        "message": "No specific offer for this user at this time.",
        "discount": None,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_abandon_earns_offer(client):
    await client.post(
        "/api/user-behavior",
        json={"userId": "user2", "eventType": "cart_abandon", "productId": "PROD018"},
    )
    body = (await client.get("/api/get-discount", params={"userId": "user2"})).json()
    assert body["status"] == "offer_generated"
    assert body["discount"]["product_id"] == "PROD018"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_offer_lifecycle(client):
    body = await _offer(client)
    assert body["status"] == "offer_generated"
    discount = body["discount"]
    assert discount["value"] == 15
    assert discount["code"].startswith("SAVE15-")
    code = discount["code"]

    r = await client.get("/api/active-discounts")
    assert r.json()["count"] == 1
    assert code in r.json()["activeDiscounts"]

    r = await client.post("/api/validate-discount", params={"discountCode": code, "userId": "intruder"})
    assert r.json()["valid"] is False

    r = await client.post("/api/validate-discount", params={"discountCode": code, "userId": "user1"})
    body = r.json()
    assert body["valid"] is True
    assert body["message"] == "Discount is valid"

    r = await client.post("/api/apply-discount", params={"discountCode": code, "userId": "user1"})
    assert r.json() == {"status": "success", "message": "Discount applied successfully"}

    r = await client.post("/api/apply-discount", params={"discountCode": code, "userId": "user1"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired discount code"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_code_is_invalid(client):
    r = await client.post("/api/validate-discount", params={"discountCode": "NOPE", "userId": "user1"})
    assert r.json() == {"valid": False, "discount": {}, "message": "Invalid or expired discount"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_offers_are_cleared(client, clock):
    await _offer(client)
    clock.advance(minutes=31)

    r = await client.get("/api/active-discounts")
    assert r.json() == {"activeDiscounts": {}, "count": 0}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_no_vetoes_yet(client):
    r = await client.get("/api/profit-protection/veto-decisions", params={"limit": 5})
    body = r.json()
    assert body["vetoDecisions"] == []
    assert body["count"] == 0
