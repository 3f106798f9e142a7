"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 persona 指令，
每个非空行是一条固定指令，由 prompts.builder 拼入 system 消息。
"""

from functools import lru_cache
from pathlib import Path
from typing import Tuple


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(locale: str = "en") -> Tuple[str, ...]:
    """根据语言加载系统提示词，返回去掉空行后的指令列表。"""

    fname = PROMPTS_DIR / locale / "translator_system.md"
    lines = fname.read_text(encoding="utf-8").splitlines()
    return tuple(line.strip() for line in lines if line.strip())
