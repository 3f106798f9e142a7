"""用户输入意图识别。

classify(text) 只看关键字与字符集，不调用模型：

1. 命中解释类或反馈类关键字 -> EXPLANATION_OR_FEEDBACK（优先于字符集判断）。
2. 含 CJK（汉字/平假名/片假名）且不含拉丁字母 -> TRANSLATION_ONLY。
3. 其他 -> GENERAL。
"""

import re
from enum import Enum
from typing import FrozenSet, Tuple

from translator_core.domain.skills import PersonaSkill

EXPLANATION_KEYWORDS: Tuple[str, ...] = (
    "explain", "explanation", "grammar", "nuance", "why", "meaning", "breakdown",
)
FEEDBACK_KEYWORDS: Tuple[str, ...] = (
    "feedback", "revise", "rewrite", "tone", "sound natural", "make it", "improve", "check",
)

_CJK_RE = re.compile(r"[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff]")
_LATIN_RE = re.compile(r"[A-Za-z]")


class InteractionIntent(str, Enum):
    TRANSLATION_ONLY = "translationOnly"
    EXPLANATION_OR_FEEDBACK = "explanationOrFeedback"
    GENERAL = "general"

    @property
    def system_directive(self) -> str:
        return _TEMPLATES[self][0]

    @property
    def user_facing_directive(self) -> str:
        return _TEMPLATES[self][1]

    @property
    def summary(self) -> str:
        return _TEMPLATES[self][2]

    @property
    def skill_hints(self) -> FrozenSet[PersonaSkill]:
        return _SKILL_HINTS[self]


_TEMPLATES = {
    InteractionIntent.TRANSLATION_ONLY: (
        "When the user simply pastes non-native text without asking for extra detail, focus on "
        "delivering the cleanest translation and limit follow-up commentary to one short sentence "
        "only when essential.",
        "Give the translation only; add at most one brief note if a nuance is critical.",
        "Quick translation",
    ),
    InteractionIntent.EXPLANATION_OR_FEEDBACK: (
        "The user is requesting explanations, feedback, or tone adjustments. Provide a clear "
        "translation if needed, followed by thorough but concise guidance.",
        "Offer translation plus the requested explanation/feedback with actionable pointers.",
        "Detailed explanation/feedback",
    ),
    InteractionIntent.GENERAL: (
        "Provide helpful translations first when necessary, then add brief explanations only if "
        "they aid understanding.",
        "Interpret the request and respond with translation plus minimal context.",
        "Mixed intent",
    ),
}

_SKILL_HINTS = {
    InteractionIntent.TRANSLATION_ONLY: frozenset(
        {PersonaSkill.CRYSTAL_TRANSLATION, PersonaSkill.SPEED_SUMMARIZER}
    ),
    InteractionIntent.EXPLANATION_OR_FEEDBACK: frozenset(
        {PersonaSkill.GRAMMAR_GUIDE, PersonaSkill.TONE_COACH, PersonaSkill.REWRITE_MENTOR}
    ),
    InteractionIntent.GENERAL: frozenset(
        {PersonaSkill.CRYSTAL_TRANSLATION, PersonaSkill.GRAMMAR_GUIDE}
    ),
}


def classify(text: str) -> InteractionIntent:
    lower = text.lower()
    if any(k in lower for k in EXPLANATION_KEYWORDS) or any(k in lower for k in FEEDBACK_KEYWORDS):
        return InteractionIntent.EXPLANATION_OR_FEEDBACK

    has_cjk = _CJK_RE.search(text) is not None
    has_latin = _LATIN_RE.search(text) is not None
    if has_cjk and not has_latin:
        return InteractionIntent.TRANSLATION_ONLY
    return InteractionIntent.GENERAL
