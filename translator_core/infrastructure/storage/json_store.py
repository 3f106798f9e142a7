import copy
import json
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from translator_core.config.settings import settings
from translator_core.domain.conversation import MAX_HIGHLIGHTS, Conversation
from translator_core.domain.models import ROLES, ChatMessage
from translator_core.domain.profile import UserProfile
from translator_core.domain.skills import PersonaSkill, sort_skills
from translator_core.infrastructure.logging.logger import logger

CONVERSATION_CHANGED = "conversation"
PROFILE_CHANGED = "profile"

Observer = Callable[[str, Any], None]


class AppStateStore:
    """进程内唯一的会话 + 用户画像持有者。

    - 读取：启动时从 JSON 文件加载，文件缺失或损坏时使用空默认值。
    - 修改：update_conversation / update_profile 先深拷贝，再修改副本并整体替换，
      然后通知订阅者。
    - 写盘：save() 同步生成快照，由单线程后台 worker 原子写入（tmp + os.replace），
      失败只记录日志；调用方不能假设 save() 返回时已经落盘。
    """

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or settings.state_path).resolve()
        self._lock = threading.RLock()
        self._observers: List[Observer] = []
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="state-writer")
        self._last_write: Optional[Future] = None
        self._conversation, self._user_profile = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def user_profile(self) -> UserProfile:
        return self._user_profile

    # ---- 订阅 ----

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """注册观察者，返回取消订阅函数。"""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def _notify(self, event: str, value: Any) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event, value)
            except Exception:
                logger.exception("State observer failed", extra={"extra": {"event": event}})

    # ---- 修改 ----

    def update_conversation(self, update: Callable[[Conversation], None]) -> Conversation:
        with self._lock:
            draft = copy.deepcopy(self._conversation)
            update(draft)
            self._conversation = draft
        self._notify(CONVERSATION_CHANGED, draft)
        return draft

    def update_profile(self, update: Callable[[UserProfile], None]) -> UserProfile:
        with self._lock:
            draft = copy.deepcopy(self._user_profile)
            update(draft)
            self._user_profile = draft
        self._notify(PROFILE_CHANGED, draft)
        return draft

    def replace_conversation(self, conversation: Conversation) -> None:
        with self._lock:
            self._conversation = copy.deepcopy(conversation)
        self._notify(CONVERSATION_CHANGED, self._conversation)

    def reset_all(self) -> None:
        with self._lock:
            self._conversation = Conversation()
            self._user_profile = UserProfile()
        self._notify(CONVERSATION_CHANGED, self._conversation)
        self._notify(PROFILE_CHANGED, self._user_profile)
        self.save()

    # ---- 持久化 ----

    def save(self) -> None:
        """生成快照并提交后台写入。"""
        with self._lock:
            try:
                data = json.dumps(
                    encode_state(self._conversation, self._user_profile),
                    ensure_ascii=False,
                    indent=2,
                )
            except (TypeError, ValueError):
                logger.exception("Failed to encode app state")
                return
            self._last_write = self._writer.submit(self._write, data)

    def flush(self, timeout: Optional[float] = None) -> None:
        """等待已提交的写入完成（测试与退出时使用）。"""
        pending = self._last_write
        if pending is not None:
            pending.result(timeout=timeout)

    def close(self) -> None:
        self._writer.shutdown(wait=True)

    def _write(self, data: str) -> None:
        tmp_path = self._path.with_name(f"{self._path.name}.{uuid4().hex}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(data, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.error("Failed to persist app state", extra={"extra": {"path": str(self._path), "error": str(e)}})
            tmp_path.unlink(missing_ok=True)

    def _load(self) -> tuple[Conversation, UserProfile]:
        if not self._path.exists():
            return Conversation(), UserProfile()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return decode_state(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Malformed app state, starting from defaults",
                extra={"extra": {"path": str(self._path), "error": str(e)}},
            )
            return Conversation(), UserProfile()


# ---- JSON 编解码 ----


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_ts(value: Any) -> datetime:
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_message(message: ChatMessage) -> Dict[str, Any]:
    obj: Dict[str, Any] = {
        "id": message.id,
        "role": message.role,
        "text": message.text,
        "timestamp": _ts(message.timestamp),
    }
    if message.rating is not None:
        obj["rating"] = message.rating
    if message.skill_hints is not None:
        obj["skillHints"] = [s.value for s in sort_skills(message.skill_hints)]
    return obj


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _items(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be an array, got {type(value).__name__}")
    return value


def _decode_rating(value: Any) -> Optional[int]:
    # 0 与缺省等价；其余只允许 -1 / +1
    if value is None:
        return None
    rating = int(value)
    if rating == 0:
        return None
    if rating not in (-1, 1):
        raise ValueError(f"rating must be -1 or 1, got {value!r}")
    return rating


def decode_message(data: Any) -> ChatMessage:
    data = _mapping(data, "message")
    role = data["role"]
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}")
    hints = data.get("skillHints")
    skill_hints = None
    if hints is not None:
        known = {s.value for s in PersonaSkill}
        skill_hints = frozenset(PersonaSkill(h) for h in _items(hints, "skillHints") if h in known)
    return ChatMessage(
        id=str(data["id"]),
        role=role,
        text=str(data.get("text") or ""),
        timestamp=_parse_ts(data["timestamp"]),
        rating=_decode_rating(data.get("rating")),
        skill_hints=skill_hints,
    )


def encode_state(conversation: Conversation, profile: UserProfile) -> Dict[str, Any]:
    profile_obj: Dict[str, Any] = {
        "id": profile.id,
        "totalQuestions": profile.total_questions,
        "likedAnswers": profile.liked_answers,
        "dislikedAnswers": profile.disliked_answers,
        "skillScores": dict(profile.skill_scores),
    }
    if profile.last_feedback_snippet is not None:
        profile_obj["lastFeedbackSnippet"] = profile.last_feedback_snippet
    if profile.last_updated is not None:
        profile_obj["lastUpdated"] = _ts(profile.last_updated)
    return {
        "conversation": {
            "id": conversation.id,
            "messages": [encode_message(m) for m in conversation.messages],
            "likedHighlights": list(conversation.liked_highlights),
            "createdAt": _ts(conversation.created_at),
            "updatedAt": _ts(conversation.updated_at),
        },
        "userProfile": profile_obj,
    }


def decode_state(raw: Any) -> tuple[Conversation, UserProfile]:
    raw = _mapping(raw, "state")
    conv_raw = _mapping(raw["conversation"], "conversation")
    prof_raw = _mapping(raw["userProfile"], "userProfile")
    conversation = Conversation(
        id=str(conv_raw["id"]),
        messages=[decode_message(m) for m in _items(conv_raw.get("messages"), "messages")],
        liked_highlights=[str(h) for h in _items(conv_raw.get("likedHighlights"), "likedHighlights")][-MAX_HIGHLIGHTS:],
        created_at=_parse_ts(conv_raw["createdAt"]),
        updated_at=_parse_ts(conv_raw["updatedAt"]),
    )
    last_updated = prof_raw.get("lastUpdated")
    skill_scores = _mapping(prof_raw.get("skillScores") or {}, "skillScores")
    profile = UserProfile(
        id=str(prof_raw["id"]),
        total_questions=int(prof_raw.get("totalQuestions", 0)),
        liked_answers=int(prof_raw.get("likedAnswers", 0)),
        disliked_answers=int(prof_raw.get("dislikedAnswers", 0)),
        last_feedback_snippet=prof_raw.get("lastFeedbackSnippet"),
        last_updated=_parse_ts(last_updated) if last_updated else None,
        skill_scores={str(k): max(0, int(v)) for k, v in skill_scores.items()},
    )
    return conversation, profile
