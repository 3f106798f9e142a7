"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Chat Completion 客户端协议 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (openai_client)。
"""

from typing import Optional

from translator_core.config.settings import settings
from translator_core.providers.base import ChatCompletionClient
from translator_core.providers.openai_client import OpenAIClient
from translator_core.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None) -> ChatCompletionClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    provider_name = (name or getattr(settings, "default_provider", "openai")).lower()
    get_provider_config(provider_name)
    return OpenAIClient(settings)
