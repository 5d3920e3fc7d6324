import pytest


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_reports_providers(client):
    r = await client.get("/health")
    assert r.status_code == 200

    body = r.json()
    assert body["status"] == "healthy"
    assert body["service"] == "Smart Discount Generator"
    assert body["providers"] == {"catalog": ["mock"], "llm": None}
    assert body["timestamp"].endswith("+00:00")
