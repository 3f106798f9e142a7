import pytest

from translator_core.agents.chat_agent import ChatAgent
from translator_core.api import service
from translator_core.infrastructure.storage.json_store import AppStateStore


class FakeClient:
    name = "fake"

    async def send_chat(self, messages):
        return "How about: お茶をください"


@pytest.fixture
def agent(tmp_path, monkeypatch):
    store = AppStateStore(tmp_path / "AppState.json")
    agent = ChatAgent(store=store, client=FakeClient())
    monkeypatch.setattr(service, "_store", store)
    monkeypatch.setattr(service, "_agent", agent)
    yield agent
    store.flush(timeout=5)
    store.close()


@pytest.mark.asyncio
async def test_send_and_list_messages(agent):
    await service.send_message("Can you check my grammar?")
    messages = service.get_conversation_messages()
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[1]["text"] == "How about: お茶をください"
    assert messages[1]["rating"] is None
    assert messages[1]["skill_hints"] == ["grammarGuide", "toneCoach", "rewriteMentor"]


@pytest.mark.asyncio
async def test_rate_and_profile_overview(agent):
    await service.send_message("Can you check my grammar?")
    assistant_id = service.get_conversation_messages()[1]["id"]
    assert service.rate_message(assistant_id, 1) is True

    overview = service.get_profile_overview()
    assert overview["total_questions"] == 1
    assert overview["liked_answers"] == 1
    assert overview["is_loading"] is False
    assert overview["highlight_summary"] == "User liked: How about: お茶をください"
    categories = overview["skill_categories"]
    assert len(categories) == 5
    assert [c["category"] for c in categories[:3]] == ["nuance", "tone", "coaching"]
    assert all(c["total_score"] == 0 for c in categories[3:])
    tone = next(s for c in categories for s in c["skills"] if s["skill"] == "toneCoach")
    assert tone["score"] == 2
    assert tone["progress"] == 0.25


@pytest.mark.asyncio
async def test_clear_and_reset(agent):
    await service.send_message("hello")
    service.clear_conversation()
    assert service.get_conversation_messages() == []
    assert service.get_profile_overview()["total_questions"] == 1

    service.reset_personalization()
    assert service.get_profile_overview()["total_questions"] == 0


def test_get_default_agent_reuses_singleton(agent):
    assert service.get_default_agent() is agent
