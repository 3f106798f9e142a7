"""翻译助手编排层。

ChatAgent 串起 发送 / 评分 / 清空 三个流程：

- 同一时刻最多一个进行中的请求；新的 send 会先取消上一个（后发者胜）。
- 所有状态修改都经过 AppStateStore，自身只保存 is_loading 等界面状态。
- 只有客户端的网络 I/O 与退避等待会挂起；取消在下一个挂起点生效。
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, FrozenSet, Optional
from uuid import uuid4

from translator_core.domain import skills as skill_engine
from translator_core.domain.exceptions import BusinessError, RequestCancelledError, ValidationError
from translator_core.domain.intent import InteractionIntent, classify
from translator_core.domain.models import ChatMessage
from translator_core.domain.skills import PersonaSkill
from translator_core.infrastructure.logging.logger import logger
from translator_core.infrastructure.storage.json_store import AppStateStore
from translator_core.prompts.builder import build_messages
from translator_core.providers.base import ChatCompletionClient

LIKE_DELTA = 2
DISLIKE_DELTA = -1
VALID_RATINGS = (-1, 0, 1)


class ChatAgent:
    def __init__(self, store: AppStateStore, client: ChatCompletionClient):
        self._store = store
        self._client = client
        self._pending: Optional[asyncio.Task] = None
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.notice: Optional[str] = None
        self.input_text = ""

    @property
    def store(self) -> AppStateStore:
        return self._store

    @property
    def pending_request(self) -> Optional[asyncio.Task]:
        return self._pending

    @property
    def personalization_summary(self) -> str:
        return self._store.user_profile.learning_summary

    # ---- 发送 ----

    def send(self, text: Optional[str] = None) -> Optional[asyncio.Task]:
        """提交用户输入并启动异步请求，需在运行中的事件循环内调用。

        Args:
            text: 用户输入；为 None 时使用 input_text。

        Returns:
            本次请求对应的 Task；输入为空时返回 None。
        """
        trimmed = (self.input_text if text is None else text).strip()
        if not trimmed:
            return None

        self.cancel_pending()

        intent = classify(trimmed)
        hints = intent.skill_hints
        user_message = ChatMessage(role="user", text=trimmed, skill_hints=hints)
        self._store.update_conversation(lambda c: c.append_message(user_message))
        self.input_text = ""
        self._store.update_profile(lambda p: p.record_question())
        self._store.save()

        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "conversation_id": self._store.conversation.id,
            "message_id": user_message.id,
            "intent": intent.value,
        }
        self._log(logging.INFO, "Stored user message", log_ctx)

        self.error_message = None
        self.notice = None
        self.is_loading = True
        task = asyncio.get_running_loop().create_task(
            self._request_response(user_message, intent, hints, log_ctx)
        )
        self._pending = task
        task.add_done_callback(self._on_request_done)
        return task

    async def _request_response(
        self,
        user_message: ChatMessage,
        intent: InteractionIntent,
        hints: FrozenSet[PersonaSkill],
        log_ctx: Dict[str, Any],
    ) -> None:
        try:
            context = build_messages(
                self._store.user_profile,
                self._store.conversation,
                user_message,
                intent,
            )
            self._log(logging.INFO, "Calling provider", log_ctx, message_count=len(context))
            response_text = await self._client.send_chat(context)
            assistant = ChatMessage(role="assistant", text=response_text, skill_hints=hints)
            self._store.update_conversation(lambda c: c.append_message(assistant))
            self._store.save()
            self._log(logging.INFO, "Stored assistant message", log_ctx, assistant_message_id=assistant.id)
        except (RequestCancelledError, asyncio.CancelledError):
            self.notice = RequestCancelledError().message
            self._log(logging.INFO, "Request cancelled", log_ctx)
        except BusinessError as e:
            self.error_message = e.message
            self._log(logging.ERROR, "Request failed", log_ctx, code=e.code, error=e.message)

    def _on_request_done(self, task: asyncio.Task) -> None:
        # 尚未开始执行就被取消的 task 不会进入 _request_response 的 except
        if task.cancelled() and self.notice is None and self._pending is task:
            self.notice = RequestCancelledError().message
        # 被新请求取代时不能覆盖新请求的状态
        if self._pending is task:
            self._pending = None
            self.is_loading = False

    def cancel_pending(self) -> bool:
        task = self._pending
        if task is None or task.done():
            return False
        task.cancel()
        return True

    # ---- 评分 ----

    def rate(self, message_id: str, rating: int) -> bool:
        """对助手消息评分，返回是否实际生效。

        相同评分重复提交不会重复计数；rating == 0 只清除消息上的评分。
        """
        if rating not in VALID_RATINGS:
            raise ValidationError(code="INVALID_RATING", message=f"rating must be -1, 0 or 1, got {rating!r}")

        message = self._store.conversation.find_message(message_id)
        if message is None or message.role != "assistant":
            return False
        if message.effective_rating == rating:
            return False

        updated = replace(message, rating=rating or None)

        def apply(conversation) -> None:
            conversation.replace_message(updated)
            if rating > 0:
                conversation.add_highlight(message)

        self._store.update_conversation(apply)

        if rating != 0:
            if message.skill_hints is not None:
                skills = message.skill_hints
            else:
                skills = skill_engine.fallback_skills(message.text)
            delta = LIKE_DELTA if rating > 0 else DISLIKE_DELTA

            def apply_profile(profile) -> None:
                profile.apply_rating(rating, message)
                profile.adjust_skills(skills, delta)

            self._store.update_profile(apply_profile)

        self._store.save()
        self._log(
            logging.INFO,
            "Applied rating",
            {"conversation_id": self._store.conversation.id},
            message_id=message_id,
            rating=rating,
        )
        return True

    # ---- 清空 / 重置 ----

    def clear(self) -> None:
        self.cancel_pending()
        self._store.update_conversation(lambda c: c.clear())
        self._store.save()
        self._log(logging.INFO, "Cleared conversation", {"conversation_id": self._store.conversation.id})

    def reset_personalization(self) -> None:
        self.cancel_pending()
        self._store.reset_all()
        self._log(logging.INFO, "Reset personalization", {})

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
