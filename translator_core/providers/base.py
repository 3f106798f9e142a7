"""Provider 抽象接口。

编排层（ChatAgent）不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- send_chat(messages): 异步发送一组 ChatMessage，返回助手回复文本。
- 失败时只抛出 domain.exceptions 中定义的错误类型。
"""

from typing import Protocol, Sequence

from translator_core.domain.models import ChatMessage


class ChatCompletionClient(Protocol):
    """Chat Completion 客户端协议。"""

    name: str

    async def send_chat(self, messages: Sequence[ChatMessage]) -> str:
        ...
