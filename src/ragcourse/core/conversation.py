"""Conversation memory owned by a caller's session."""

from collections.abc import Iterator

from ragcourse.entities import Message

DEFAULT_WINDOW = 20


class ConversationMemory:
    """An append-only, ordered sequence of conversational turns.

    The caller creates one per session and passes it into each query; turns
    are never reordered or edited, only appended or cleared wholesale.
    """

    def __init__(self, conversation_id: str = "default") -> None:
        self.conversation_id = conversation_id
        self._turns: list[Message] = []

    def add(self, message: Message) -> None:
        self._turns.append(message)

    def add_exchange(self, user: str, assistant: str) -> None:
        """Record a question and its answer as two turns."""
        self._turns.append(Message.user(user))
        self._turns.append(Message.assistant(assistant))

    def messages(self) -> list[Message]:
        """All turns, oldest first."""
        return list(self._turns)

    def window(self, max_messages: int = DEFAULT_WINDOW) -> list[Message]:
        """The most recent ``max_messages`` turns, oldest first."""
        if max_messages <= 0:
            return []
        return self._turns[-max_messages:]

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._turns))
