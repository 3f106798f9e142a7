from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from translator_core.domain.models import ChatMessage, new_id, utcnow

MAX_HIGHLIGHTS = 10
HIGHLIGHT_LENGTH = 160
RECENT_HINTS = 3
HINT_SEPARATOR = " • "
EMPTY_HIGHLIGHT_SUMMARY = "No highlights yet. Upvote great explanations to teach the assistant."


@dataclass
class Conversation:
    """单一会话：有序消息日志 + 最多 10 条用户点赞摘录。

    所有变更方法都在当前对象上原地修改，由 AppStateStore 负责
    “复制-修改-替换”，因此这里不需要考虑并发。
    """

    id: str = field(default_factory=lambda: new_id("c"))
    messages: List[ChatMessage] = field(default_factory=list)
    liked_highlights: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def preference_hints(self) -> str:
        if not self.liked_highlights:
            return ""
        recent = HINT_SEPARATOR.join(self.liked_highlights[-RECENT_HINTS:])
        return f"User liked: {recent}"

    @property
    def highlight_summary(self) -> str:
        return self.preference_hints or EMPTY_HIGHLIGHT_SUMMARY

    def find_message(self, message_id: str):
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def append_message(self, message: ChatMessage) -> None:
        self.messages.append(message)
        self._touch()

    def replace_message(self, message: ChatMessage) -> None:
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = message
                self._touch()
                return

    def add_highlight(self, message: ChatMessage) -> None:
        self.liked_highlights.append(message.text[:HIGHLIGHT_LENGTH])
        if len(self.liked_highlights) > MAX_HIGHLIGHTS:
            del self.liked_highlights[: len(self.liked_highlights) - MAX_HIGHLIGHTS]
        self._touch()

    def clear(self) -> None:
        fresh = Conversation()
        self.id = fresh.id
        self.messages = fresh.messages
        self.liked_highlights = fresh.liked_highlights
        self.created_at = fresh.created_at
        self.updated_at = fresh.updated_at

    def _touch(self) -> None:
        self.updated_at = utcnow()
