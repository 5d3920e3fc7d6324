import pytest

from tests.fakes import FakeGenerator


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chat_without_llm_falls_back(client):
    r = await client.post("/api/ai-chat", json={"message": "find running shoes"})
    assert r.status_code == 200

    body = r.json()
    assert body["responseType"] == "fallback"
    assert body["confidence"] == 0.7
    assert body["response"].startswith("I found some products")
    assert [p["objectID"] for p in body["suggestedProducts"]] == ["PROD017"]
    assert body["suggestedActions"] == ["Browse catalog", "Search products", "Get recommendations"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_chat_requires_message(client):
    r = await client.post("/api/ai-chat", json={"message": ""})
    assert r.status_code == 422


class TestWithGenerator:
    @pytest.fixture()
    def generator(self):
        return FakeGenerator(["The RunTech shoes are rated 4.8/5. "])

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_chat_uses_generator_and_tracks_event(self, client, generator):
        r = await client.post(
            "/api/ai-chat",
            json={"message": "find running shoes", "userId": "user1",
                  "history": [{"role": "user", "content": "hello"}]},
        )
        body = r.json()
        assert body["response"] == "The RunTech shoes are rated 4.8/5."
        assert body["responseType"] == "search"
        assert body["confidence"] == 1.0
        assert "user: hello" in generator.prompts[0]

        r = await client.get("/api/user-behavior/user1")
        events = r.json()["events"]
        assert events[0]["eventType"] == "ai_chat"
        assert events[0]["details"] == {"responseType": "search", "productsFound": 1}

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_health_names_generator(self, client):
        body = (await client.get("/health")).json()
        assert body["providers"]["llm"] == "fake"
