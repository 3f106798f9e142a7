"""上游消息构造。

最终发往模型的序列固定为::

    [system, instruction] + 最近 6 条历史 + [本次用户消息]

历史中先按 id 去掉本次用户消息，再在末尾单独追加，保证它一定在最后。
"""

from typing import List

from translator_core.domain import skills as skill_engine
from translator_core.domain.conversation import Conversation
from translator_core.domain.intent import InteractionIntent
from translator_core.domain.models import ChatMessage
from translator_core.domain.profile import UserProfile
from translator_core.prompts import load_system_prompt

HISTORY_WINDOW = 6


def build_system_message(profile: UserProfile, conversation: Conversation, intent: InteractionIntent) -> ChatMessage:
    components = list(load_system_prompt())
    components.append(intent.system_directive)
    components.append(profile.rating_summary)
    hints = conversation.preference_hints
    if hints:
        components.append(hints)
    skill_prompt = skill_engine.prompt_additions(profile.skill_scores)
    if skill_prompt:
        components.append(skill_prompt)
    return ChatMessage(role="system", text=" ".join(components))


def build_instruction_message(profile: UserProfile, intent: InteractionIntent) -> ChatMessage:
    guidance = [
        f"Detected intent: {intent.summary}",
        "Tasks:",
        "- detect what the user needs (translation, explanation, rewrite, or feedback).",
        "- preserve the meaning of the source text; never invent content it does not contain.",
        f"- follow the directive: {intent.user_facing_directive}",
        "- keep tone friendly and adaptive; invite the user to rate or ask follow-ups.",
    ]
    if profile.last_feedback_snippet:
        guidance.append(f'Remember the user liked responses similar to: "{profile.last_feedback_snippet}"')
    return ChatMessage(role="system", text=" ".join(guidance))


def recent_history(conversation: Conversation, exclude_id: str, limit: int = HISTORY_WINDOW) -> List[ChatMessage]:
    history = [m for m in conversation.messages if m.id != exclude_id]
    return history[-limit:] if limit > 0 else []


def build_messages(
    profile: UserProfile,
    conversation: Conversation,
    user_message: ChatMessage,
    intent: InteractionIntent,
) -> List[ChatMessage]:
    """构造一次请求的完整消息列表。"""

    return [
        build_system_message(profile, conversation, intent),
        build_instruction_message(profile, intent),
        *recent_history(conversation, user_message.id),
        user_message,
    ]
