import copy

from translator_core.domain.conversation import Conversation
from translator_core.domain.models import ChatMessage


def test_append_and_replace_message():
    conv = Conversation()
    m1 = ChatMessage(role="user", text="hi")
    m2 = ChatMessage(role="assistant", text="やあ")
    conv.append_message(m1)
    conv.append_message(m2)
    before = conv.updated_at
    conv.replace_message(ChatMessage(id=m2.id, role="assistant", text="やあ", timestamp=m2.timestamp, rating=1))
    assert [m.id for m in conv.messages] == [m1.id, m2.id]
    assert conv.messages[1].rating == 1
    assert conv.updated_at >= before


def test_replace_missing_message_leaves_conversation_unchanged():
    conv = Conversation()
    conv.append_message(ChatMessage(role="user", text="hi"))
    snapshot = copy.deepcopy(conv)
    conv.replace_message(ChatMessage(role="assistant", text="ghost"))
    assert conv.messages == snapshot.messages
    assert conv.updated_at == snapshot.updated_at


def test_highlights_are_bounded_fifo():
    conv = Conversation()
    for i in range(25):
        conv.add_highlight(ChatMessage(role="assistant", text=f"answer {i} " + "x" * 300))
        assert len(conv.liked_highlights) <= 10
    assert len(conv.liked_highlights) == 10
    assert conv.liked_highlights[0].startswith("answer 15 ")
    assert conv.liked_highlights[-1].startswith("answer 24 ")
    assert all(len(h) == 160 for h in conv.liked_highlights)


def test_preference_hints_use_last_three():
    conv = Conversation()
    assert conv.preference_hints == ""
    assert conv.highlight_summary.startswith("No highlights yet.")
    for text in ["one", "two", "three", "four"]:
        conv.add_highlight(ChatMessage(role="assistant", text=text))
    assert conv.preference_hints == "User liked: two • three • four"
    assert conv.highlight_summary == conv.preference_hints


def test_clear_creates_new_identity():
    conv = Conversation()
    old_id = conv.id
    conv.append_message(ChatMessage(role="user", text="hi"))
    conv.add_highlight(ChatMessage(role="assistant", text="liked"))
    conv.clear()
    assert conv.id != old_id
    assert conv.messages == []
    assert conv.liked_highlights == []
