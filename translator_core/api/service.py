"""对外 API 服务模块。

提供简化的函数接口供 UI 层调用：只读观察会话与画像，
外加 send / rate / clear / reset 四个命令。
"""

import asyncio
from typing import Any, Dict, List, Optional

from translator_core.agents.chat_agent import ChatAgent
from translator_core.config.settings import settings
from translator_core.domain import skills as skill_engine
from translator_core.infrastructure.storage.json_store import AppStateStore
from translator_core.providers import create_provider


_store: Optional[AppStateStore] = None
_agent: Optional[ChatAgent] = None


def get_default_agent() -> ChatAgent:
    """获取默认的 ChatAgent 实例（单例）。"""
    global _store, _agent
    if _store is None:
        _store = AppStateStore(settings.state_path)
    if _agent is None:
        _agent = ChatAgent(store=_store, client=create_provider())
    return _agent


def send_message(text: str) -> Optional[asyncio.Task]:
    """提交一条用户输入，需在事件循环中调用。"""
    return get_default_agent().send(text)


def rate_message(message_id: str, rating: int) -> bool:
    return get_default_agent().rate(message_id, rating)


def clear_conversation() -> None:
    get_default_agent().clear()


def reset_personalization() -> None:
    get_default_agent().reset_personalization()


def get_conversation_messages() -> List[Dict[str, Any]]:
    """获取当前会话的所有消息。

    Returns:
        消息列表，每项包含 id, role, text, created_at, rating, skill_hints
    """
    conv = get_default_agent().store.conversation
    return [
        {
            "id": m.id,
            "role": m.role,
            "text": m.text,
            "created_at": m.timestamp.isoformat(),
            "rating": m.rating,
            "skill_hints": [s.value for s in skill_engine.sort_skills(m.skill_hints or ())],
        }
        for m in conv.messages
    ]


def get_profile_overview() -> Dict[str, Any]:
    """汇总画像信息，供设置页展示。"""
    agent = get_default_agent()
    profile = agent.store.user_profile
    conv = agent.store.conversation
    return {
        "total_questions": profile.total_questions,
        "liked_answers": profile.liked_answers,
        "disliked_answers": profile.disliked_answers,
        "learning_summary": profile.learning_summary,
        "highlight_summary": conv.highlight_summary,
        "is_loading": agent.is_loading,
        "error_message": agent.error_message,
        "notice": agent.notice,
        "skill_categories": [
            {
                "category": c.category.value,
                "title": c.category.title,
                "icon": c.category.icon,
                "flavor_text": c.category.flavor_text,
                "total_score": c.total_score,
                "skills": [
                    {
                        "skill": s.skill.value,
                        "title": s.skill.title,
                        "score": s.score,
                        "progress": s.progress,
                    }
                    for s in c.skills
                ],
            }
            for c in skill_engine.skill_category_progress(profile.skill_scores)
        ],
    }
