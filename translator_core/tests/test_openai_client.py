import asyncio

import httpx
import pytest

from translator_core.domain.exceptions import (
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
from translator_core.providers import create_provider
from translator_core.providers.openai_client import OpenAIClient


class SettingsStub:
    openai_api_key = "sk-test"
    openai_base_url = "https://api.openai.com/v1"
    default_model = "translator-chat"
    http_timeout = 1.0
    temperature = 0.7
    max_retries = 1
    retry_backoff_seconds = 0.0


class Resp:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json body")
        return self._body


def ok(content="こんにちは"):
    return Resp(200, {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}]})


def install_client(monkeypatch, responses, calls=None):
    """用假 AsyncClient 替换 httpx.AsyncClient，按顺序返回 responses。"""
    calls = calls if calls is not None else {}
    calls.setdefault("clients", 0)
    calls.setdefault("posts", 0)
    queue = list(responses)

    class Client:
        def __init__(self, *a, **kw):
            calls["clients"] += 1
            calls["client_kwargs"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, headers=None, **_):
            calls["posts"] += 1
            calls["url"] = url
            calls["payload"] = json
            calls["headers"] = headers
            item = queue.pop(0)
            if callable(item):
                item = await item()
            if isinstance(item, Exception):
                raise item
            return item

    monkeypatch.setattr("httpx.AsyncClient", Client)
    return calls


MESSAGES = [ChatMessage(role="system", text="sys"), ChatMessage(role="user", text="hi")]


@pytest.mark.asyncio
async def test_send_chat_success_payload(monkeypatch):
    calls = install_client(monkeypatch, [ok("  Hello!  ")])
    text = await OpenAIClient(SettingsStub()).send_chat(MESSAGES)
    assert text == "Hello!"
    assert calls["url"] == "https://api.openai.com/v1/chat/completions"
    assert calls["headers"]["Authorization"] == "Bearer sk-test"
    assert calls["payload"] == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
        "temperature": 0.7,
    }
    assert calls["client_kwargs"]["timeout"] == 1.0


@pytest.mark.asyncio
@pytest.mark.parametrize("key", [None, "", "   "])
async def test_missing_credential_makes_no_request(monkeypatch, key):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    calls = install_client(monkeypatch, [ok()])
    stub = SettingsStub()
    stub.openai_api_key = key
    with pytest.raises(MissingCredentialError):
        await OpenAIClient(stub).send_chat(MESSAGES)
    assert calls["clients"] == 0
    assert calls["posts"] == 0


@pytest.mark.asyncio
async def test_key_exported_after_startup_is_used(monkeypatch):
    class NoKeySettings(SettingsStub):
        openai_api_key = None

    monkeypatch.setattr("translator_core.providers.settings", NoKeySettings())
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    client = create_provider()
    calls = install_client(monkeypatch, [ok("late key works")])

    monkeypatch.setenv("OPENAI_API_KEY", " sk-set-later ")
    assert await client.send_chat(MESSAGES) == "late key works"
    assert calls["headers"]["Authorization"] == "Bearer sk-set-later"

    monkeypatch.delenv("OPENAI_API_KEY")
    with pytest.raises(MissingCredentialError):
        await client.send_chat(MESSAGES)
    assert calls["posts"] == 1


@pytest.mark.asyncio
async def test_configured_key_wins_over_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    calls = install_client(monkeypatch, [ok()])
    await OpenAIClient(SettingsStub()).send_chat(MESSAGES)
    assert calls["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_server_error_gives_up_after_retry_budget(monkeypatch):
    calls = install_client(monkeypatch, [Resp(500, text="boom"), Resp(500, text="boom again"), ok()])
    with pytest.raises(ServerError) as exc:
        await OpenAIClient(SettingsStub(), max_retries=1).send_chat(MESSAGES)
    assert calls["posts"] == 2
    assert exc.value.status == 500
    assert exc.value.detail == "boom again"


@pytest.mark.asyncio
async def test_rate_limit_then_success(monkeypatch):
    calls = install_client(monkeypatch, [Resp(429, {"error": {"message": "slow down"}}), ok("done")])
    assert await OpenAIClient(SettingsStub()).send_chat(MESSAGES) == "done"
    assert calls["posts"] == 2


@pytest.mark.asyncio
async def test_rate_limit_exhausted(monkeypatch):
    install_client(monkeypatch, [Resp(429, {"error": {"message": "slow down"}})])
    with pytest.raises(RateLimitError) as exc:
        await OpenAIClient(SettingsStub(), max_retries=0).send_chat(MESSAGES)
    assert exc.value.detail == "slow down"


@pytest.mark.asyncio
async def test_unauthorized_is_not_retried(monkeypatch):
    calls = install_client(monkeypatch, [Resp(401, text="bad key"), ok()])
    with pytest.raises(UnauthorizedError):
        await OpenAIClient(SettingsStub(), max_retries=3).send_chat(MESSAGES)
    assert calls["posts"] == 1


@pytest.mark.asyncio
async def test_other_client_error_is_terminal(monkeypatch):
    calls = install_client(monkeypatch, [Resp(400, text="bad request"), ok()])
    with pytest.raises(ServerError) as exc:
        await OpenAIClient(SettingsStub(), max_retries=3).send_chat(MESSAGES)
    assert exc.value.status == 400
    assert calls["posts"] == 1


@pytest.mark.asyncio
async def test_retryable_transport_error(monkeypatch):
    calls = install_client(monkeypatch, [httpx.ConnectTimeout("timed out"), ok("after timeout")])
    assert await OpenAIClient(SettingsStub()).send_chat(MESSAGES) == "after timeout"
    assert calls["posts"] == 2


@pytest.mark.asyncio
async def test_transport_error_after_budget(monkeypatch):
    calls = install_client(monkeypatch, [httpx.ConnectError("dns failure"), httpx.ReadError("connection lost")])
    with pytest.raises(TransportError) as exc:
        await OpenAIClient(SettingsStub()).send_chat(MESSAGES)
    assert calls["posts"] == 2
    assert "connection lost" in exc.value.detail


@pytest.mark.asyncio
async def test_non_retryable_transport_error(monkeypatch):
    calls = install_client(monkeypatch, [httpx.UnsupportedProtocol("bad scheme"), ok()])
    with pytest.raises(TransportError) as exc:
        await OpenAIClient(SettingsStub(), max_retries=3).send_chat(MESSAGES)
    assert calls["posts"] == 1
    assert exc.value.retryable is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "resp, error",
    [
        (Resp(200, None, text="<html>"), InvalidResponseError),
        (Resp(200, {"object": "chat.completion"}), InvalidResponseError),
        (Resp(200, {"choices": [{"index": 0}]}), InvalidResponseError),
        (Resp(200, {"choices": []}), EmptyResponseError),
        (Resp(200, {"choices": [{"message": {"role": "assistant", "content": None}}]}), EmptyResponseError),
        (Resp(200, {"choices": [{"message": {"role": "assistant", "content": "  \n"}}]}), EmptyResponseError),
    ],
)
async def test_response_shape_errors(monkeypatch, resp, error):
    install_client(monkeypatch, [resp])
    with pytest.raises(error):
        await OpenAIClient(SettingsStub()).send_chat(MESSAGES)


@pytest.mark.asyncio
async def test_cancel_during_request(monkeypatch):
    entered = asyncio.Event()

    async def hang():
        entered.set()
        await asyncio.Event().wait()

    calls = install_client(monkeypatch, [hang, ok()])
    task = asyncio.create_task(OpenAIClient(SettingsStub()).send_chat(MESSAGES))
    await entered.wait()
    task.cancel()
    with pytest.raises(RequestCancelledError):
        await task
    assert calls["posts"] == 1


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retries(monkeypatch):
    stub = SettingsStub()
    stub.retry_backoff_seconds = 30.0
    calls = install_client(monkeypatch, [Resp(503, text="unavailable"), ok()])
    task = asyncio.create_task(OpenAIClient(stub, max_retries=2).send_chat(MESSAGES))
    for _ in range(5):
        await asyncio.sleep(0)
    assert calls["posts"] == 1
    task.cancel()
    with pytest.raises(RequestCancelledError):
        await task
    assert calls["posts"] == 1
