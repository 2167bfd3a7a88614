"""Tests for conversation memory."""

from ragcourse.core.conversation import ConversationMemory
from ragcourse.entities import Message, MessageRole


def test_empty_memory():
    memory = ConversationMemory()
    assert len(memory) == 0
    assert memory.messages() == []
    assert memory.window() == []


def test_add_exchange_preserves_order():
    memory = ConversationMemory("session-1")
    memory.add_exchange("What is Spring?", "A Java framework.")
    memory.add_exchange("Latest version?", "6.2")

    roles = [m.role for m in memory]
    contents = [m.content for m in memory]

    assert memory.conversation_id == "session-1"
    assert roles == [MessageRole.USER, MessageRole.ASSISTANT] * 2
    assert contents == ["What is Spring?", "A Java framework.", "Latest version?", "6.2"]


def test_window_keeps_most_recent():
    memory = ConversationMemory()
    for i in range(30):
        memory.add(Message.user(f"message {i}"))

    window = memory.window(20)

    assert len(window) == 20
    assert window[0].content == "message 10"
    assert window[-1].content == "message 29"
    assert memory.window(0) == []


def test_messages_returns_copy():
    memory = ConversationMemory()
    memory.add(Message.user("hello"))

    memory.messages().clear()

    assert len(memory) == 1


def test_clear():
    memory = ConversationMemory()
    memory.add_exchange("q", "a")
    memory.clear()
    assert len(memory) == 0
