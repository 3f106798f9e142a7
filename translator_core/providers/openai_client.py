"""OpenAI Chat Completions 适配器。

本模块负责：

1. 每次调用时解析 API Key：配置值优先，为空时读取当前环境变量 OPENAI_API_KEY；
   缺失则立即失败，不发起网络请求。
2. 将 ChatMessage 列表转换为 ``{model, messages, temperature}`` 请求体。
3. 通过 httpx.AsyncClient 发起 POST，并按如下策略重试：
   - HTTP 429 / >=500；
   - 可重试的网络错误（超时、连接中断、未连接、DNS 解析失败）。
   第 n 次失败后等待 ``n * retry_backoff_seconds`` 秒，无抖动、无上限。
4. 解析第一条 choice 的 content；空内容视为 EmptyResponseError。

调用方取消（请求进行中或退避等待中）统一转换为 RequestCancelledError，
并且不会再有后续重试。
"""

import asyncio
import os
from typing import Any, Dict, Optional, Sequence
from uuid import uuid4

import httpx

from translator_core.config.settings import settings
from translator_core.domain.exceptions import (
    BusinessError,
    EmptyResponseError,
    InvalidResponseError,
    MissingCredentialError,
    RateLimitError,
    RequestCancelledError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from translator_core.domain.models import ChatMessage
from translator_core.infrastructure.logging.logger import logger
from translator_core.providers.registry import OPENAI_CONFIG, ModelConfig

# 超时、连接失败（含 DNS 解析失败/未连接）、连接中途断开
RETRYABLE_TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)
DETAIL_LIMIT = 500
API_KEY_ENV = "OPENAI_API_KEY"


class OpenAIClient:
    """OpenAI 提供方客户端实现。"""

    name = "openai"

    def __init__(self, cfg=settings, model: Optional[str] = None, max_retries: Optional[int] = None):
        self._settings = cfg
        self._model = model or getattr(cfg, "default_model", "translator-chat")
        if max_retries is None:
            max_retries = getattr(cfg, "max_retries", 1)
        self._max_retries = max(0, int(max_retries))

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def send_chat(self, messages: Sequence[ChatMessage]) -> str:
        api_key = self._resolve_api_key()
        if api_key is None:
            raise MissingCredentialError()

        payload = self._build_payload(messages, self._model_config())
        base = getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url
        url = f"{base.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}", "model": payload["model"]}

        attempt = 0
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                while True:
                    attempt += 1
                    try:
                        resp = await client.post(url, json=payload, headers=headers)
                    except httpx.RequestError as e:
                        retryable = isinstance(e, RETRYABLE_TRANSPORT_ERRORS)
                        error = TransportError(str(e) or type(e).__name__, retryable=retryable)
                        if retryable and attempt <= self._max_retries:
                            await self._backoff(attempt, error, log_ctx)
                            continue
                        self._log_failure(error, attempt, log_ctx)
                        raise error from e

                    if 200 <= resp.status_code < 300:
                        return self._parse_response(resp)

                    error = self._status_error(resp)
                    if self._is_retryable_status(resp.status_code) and attempt <= self._max_retries:
                        await self._backoff(attempt, error, log_ctx)
                        continue
                    self._log_failure(error, attempt, log_ctx)
                    raise error
        except asyncio.CancelledError:
            logger.info("Chat request cancelled", extra={"extra": {**log_ctx, "attempt": attempt}})
            raise RequestCancelledError() from None

    # ---- 辅助方法 ----

    def _resolve_api_key(self) -> Optional[str]:
        """配置里的 key 优先；为空时读取当前环境变量 OPENAI_API_KEY。"""

        key = getattr(self._settings, "openai_api_key", None) or os.getenv(API_KEY_ENV)
        key = str(key).strip() if key else ""
        return key or None

    def _model_config(self) -> ModelConfig:
        cfg = OPENAI_CONFIG.models.get(self._model)
        if cfg is not None:
            return cfg
        # 未登记的名字按厂商模型 ID 直接使用
        return ModelConfig(logical_name=self._model, provider_model=self._model, default_temperature=0.7)

    def _build_payload(self, messages: Sequence[ChatMessage], model_cfg: ModelConfig) -> dict:
        temperature = getattr(self._settings, "temperature", None)
        return {
            "model": model_cfg.provider_model,
            "messages": [{"role": m.role, "content": m.text} for m in messages],
            "temperature": model_cfg.default_temperature if temperature is None else temperature,
        }

    @staticmethod
    def _is_retryable_status(status: int) -> bool:
        return status == 429 or status >= 500

    @staticmethod
    def _error_detail(resp) -> str:
        """优先取 OpenAI 错误体里的 error.message，否则返回原始文本。"""

        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message")
            if message:
                return str(message)[:DETAIL_LIMIT]
        return (resp.text or "")[:DETAIL_LIMIT]

    def _status_error(self, resp) -> BusinessError:
        detail = self._error_detail(resp)
        if resp.status_code == 401:
            return UnauthorizedError(detail)
        if resp.status_code == 429:
            return RateLimitError(detail)
        return ServerError(resp.status_code, detail)

    def _parse_response(self, resp) -> str:
        """取第一条 choice 的 message.content。"""

        try:
            data = resp.json()
        except ValueError as e:
            raise InvalidResponseError("body is not valid JSON") from e
        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            raise InvalidResponseError("missing choices")
        choices = data["choices"]
        if not choices:
            raise EmptyResponseError()
        first = choices[0]
        if not isinstance(first, dict) or not isinstance(first.get("message"), dict):
            raise InvalidResponseError("choice has no message")
        content = first["message"].get("content")
        if content is None:
            raise EmptyResponseError()
        if not isinstance(content, str):
            raise InvalidResponseError("message content is not text")
        text = content.strip()
        if not text:
            raise EmptyResponseError()
        return text

    async def _backoff(self, attempt: int, error: BusinessError, log_ctx: Dict[str, Any]) -> None:
        delay = attempt * float(getattr(self._settings, "retry_backoff_seconds", 1.0))
        logger.warning(
            "Retrying chat request",
            extra={"extra": {**log_ctx, "attempt": attempt, "code": error.code, "delay": delay}},
        )
        await asyncio.sleep(delay)

    @staticmethod
    def _log_failure(error: BusinessError, attempt: int, log_ctx: Dict[str, Any]) -> None:
        logger.error(
            "Chat request failed",
            extra={"extra": {**log_ctx, "attempt": attempt, "code": error.code, "error": error.message}},
        )
