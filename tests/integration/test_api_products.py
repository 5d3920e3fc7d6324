import pytest


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_and_search(client):
    r = await client.get("/api/products", params={"limit": 4})
    body = r.json()
    assert body["count"] == 4
    assert body["query"] == ""

    r = await client.get("/api/products", params={"query": "backpack"})
    body = r.json()
    assert [p["objectID"] for p in body["products"]] == ["PROD018"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_product(client):
    r = await client.get("/api/products/PROD015")
    assert r.status_code == 200
    assert r.json()["product"]["brand"] == "AudioMax"
    assert r.json()["found"] is True

    r = await client.get("/api/products/PROD999")
    assert r.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_batch_skips_unknown_ids(client):
    r = await client.post("/api/products/batch", json={"productIds": ["PROD013", "NOPE", "PROD014"]})
    body = r.json()
    assert sorted(body["products"]) == ["PROD013", "PROD014"]
    assert body["requested"] == 3
    assert body["found"] == 2
