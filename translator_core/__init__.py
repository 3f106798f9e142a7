"""Translator Core 顶层包。

该包提供个人日英翻译助手的核心实现，包括配置加载、领域模型
（技能、画像、会话、意图）、提示词构造、OpenAI 客户端、
状态持久化与发送/评分编排。
"""

from translator_core.agents.chat_agent import ChatAgent
from translator_core.infrastructure.storage.json_store import AppStateStore

__all__ = ["AppStateStore", "ChatAgent"]
