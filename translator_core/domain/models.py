"""对话消息数据模型。

- ChatMessage: 一条对话消息（system/user/assistant），既用于本地会话记录，
  也是发给 Chat Completion 客户端的统一结构。
- skill_hints: 生成该回答时打算发挥的技能集合，用于之后把用户评分
  归因到具体技能；只在创建时写入。

消息一旦追加到会话中，只有 rating 与 skill_hints 会被（按 id）替换，
其余字段视为不可变。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Literal, Optional
from uuid import uuid4

from translator_core.domain.skills import PersonaSkill


# LLM 消息角色类型（与 OpenAI chat completions 的 role 字段对应）
Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex}"


@dataclass
class ChatMessage:
    """一条对话消息。

    - rating: -1 / +1，None 表示未评分；只有 assistant 消息会被评分。
    - skill_hints: None 表示创建时没有附带技能提示（例如旧数据）。
    """

    role: Role
    text: str
    id: str = field(default_factory=lambda: new_id("m"))
    timestamp: datetime = field(default_factory=utcnow)
    rating: Optional[int] = None
    skill_hints: Optional[FrozenSet[PersonaSkill]] = None

    @property
    def effective_rating(self) -> int:
        return self.rating or 0
