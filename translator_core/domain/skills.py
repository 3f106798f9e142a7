"""Persona 技能目录与评分函数。

技能（PersonaSkill）是助手可以侧重的行为特征，每个技能属于一个分类
（SkillCategory，仅用于展示分组）。用户画像中以 ``{skill.value: score}``
的形式记录每个技能的累计分数，分数只可能 >= 0。

本模块中的函数都是纯函数，不持有任何状态；分类映射表在导入时构建一次。
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Tuple

PROGRESS_SCALE = 8.0
DEFAULT_SKILL_LIMIT = 2
PROMPT_SKILL_LIMIT = 3


class SkillCategory(str, Enum):
    CLARITY = "clarity"
    NUANCE = "nuance"
    TONE = "tone"
    CULTURE = "culture"
    COACHING = "coaching"

    @property
    def title(self) -> str:
        return _CATEGORY_INFO[self][0]

    @property
    def icon(self) -> str:
        return _CATEGORY_INFO[self][1]

    @property
    def flavor_text(self) -> str:
        return _CATEGORY_INFO[self][2]


_CATEGORY_INFO: Dict[SkillCategory, Tuple[str, str, str]] = {
    SkillCategory.CLARITY: ("Clarity", "sparkles", "How literal and precise the assistant should be."),
    SkillCategory.NUANCE: ("Nuance", "text.book.closed", "How much grammar or nuance detail you enjoy."),
    SkillCategory.TONE: ("Tone", "music.note", "How often to suggest tone or style tweaks."),
    SkillCategory.CULTURE: ("Culture", "globe.asia.australia", "How deep to go on culture/context notes."),
    SkillCategory.COACHING: ("Coaching", "person.2.fill", "How much critique or rewriting help you want."),
}


@dataclass(frozen=True)
class SkillInfo:
    """单个技能的展示信息与 prompt 片段。"""

    title: str
    description: str
    category: SkillCategory
    prompt_descriptor: str


class PersonaSkill(str, Enum):
    """技能枚举，声明顺序即目录顺序（排序平局时按此顺序）。"""

    CRYSTAL_TRANSLATION = "crystalTranslation"
    GRAMMAR_GUIDE = "grammarGuide"
    TONE_COACH = "toneCoach"
    CULTURE_SENSEI = "cultureSensei"
    REWRITE_MENTOR = "rewriteMentor"
    SPEED_SUMMARIZER = "speedSummarizer"

    @property
    def info(self) -> SkillInfo:
        return SKILL_CATALOG[self]

    @property
    def title(self) -> str:
        return self.info.title

    @property
    def category(self) -> SkillCategory:
        return self.info.category

    @property
    def prompt_descriptor(self) -> str:
        return self.info.prompt_descriptor


SKILL_CATALOG: Mapping[PersonaSkill, SkillInfo] = MappingProxyType({
    PersonaSkill.CRYSTAL_TRANSLATION: SkillInfo(
        title="Crystal Translation",
        description="Prioritizes literal, dependable translations.",
        category=SkillCategory.CLARITY,
        prompt_descriptor="keep translations crisp and literal",
    ),
    PersonaSkill.GRAMMAR_GUIDE: SkillInfo(
        title="Grammar Guide",
        description="Adds concise grammar or nuance notes.",
        category=SkillCategory.NUANCE,
        prompt_descriptor="include one short grammar/nuance note when useful",
    ),
    PersonaSkill.TONE_COACH: SkillInfo(
        title="Tone Coach",
        description="Suggests how to adjust tone or politeness.",
        category=SkillCategory.TONE,
        prompt_descriptor="suggest tone or politeness tweaks",
    ),
    PersonaSkill.CULTURE_SENSEI: SkillInfo(
        title="Culture Sensei",
        description="Explains cultural or situational context.",
        category=SkillCategory.CULTURE,
        prompt_descriptor="add cultural context when it helps comprehension",
    ),
    PersonaSkill.REWRITE_MENTOR: SkillInfo(
        title="Rewrite Mentor",
        description="Provides feedback on drafts and rewrites them.",
        category=SkillCategory.COACHING,
        prompt_descriptor="critique and rewrite drafts thoughtfully",
    ),
    PersonaSkill.SPEED_SUMMARIZER: SkillInfo(
        title="Speed Summarizer",
        description="Keeps answers short and to the point.",
        category=SkillCategory.CLARITY,
        prompt_descriptor="keep explanations brief and efficient",
    ),
})


def _build_category_map() -> Mapping[SkillCategory, Tuple[PersonaSkill, ...]]:
    grouped: Dict[SkillCategory, List[PersonaSkill]] = {c: [] for c in SkillCategory}
    for skill in PersonaSkill:
        grouped[skill.category].append(skill)
    return MappingProxyType({c: tuple(skills) for c, skills in grouped.items()})


CATEGORY_MAP = _build_category_map()

DEFAULT_SKILL = PersonaSkill.CRYSTAL_TRANSLATION

# 关键字 -> 技能，用于没有 skill hints 的历史消息
FALLBACK_KEYWORDS: Tuple[Tuple[Tuple[str, ...], PersonaSkill], ...] = (
    (("tone", "polite", "casual"), PersonaSkill.TONE_COACH),
    (("grammar", "nuance", "structure"), PersonaSkill.GRAMMAR_GUIDE),
    (("culture", "context", "situation"), PersonaSkill.CULTURE_SENSEI),
    (("rewrite", "draft", "feedback"), PersonaSkill.REWRITE_MENTOR),
    (("summary", "short"), PersonaSkill.SPEED_SUMMARIZER),
)


def score(skill: PersonaSkill, scores: Mapping[str, int]) -> int:
    return scores.get(skill.value, 0)


def _ranked_positive(scores: Mapping[str, int]) -> List[Tuple[PersonaSkill, int]]:
    """按分数降序排列的正分技能；sorted 稳定，平局保持目录顺序。"""
    pairs = [(skill, score(skill, scores)) for skill in PersonaSkill]
    return sorted((p for p in pairs if p[1] > 0), key=lambda p: -p[1])


def top_descriptors(scores: Mapping[str, int], limit: int = DEFAULT_SKILL_LIMIT) -> List[str]:
    return [skill.title.lower() for skill, _ in _ranked_positive(scores)[:limit]]


def prompt_additions(scores: Mapping[str, int]) -> str:
    descriptors = [skill.prompt_descriptor for skill, _ in _ranked_positive(scores)[:PROMPT_SKILL_LIMIT]]
    if not descriptors:
        return ""
    return f"Lean into the user's favorites: {', '.join(descriptors)}."


def friendly_summary(scores: Mapping[str, int]) -> str:
    favorites = [skill.title for skill, _ in _ranked_positive(scores)[:DEFAULT_SKILL_LIMIT]]
    if not favorites:
        return "Still learning what makes the perfect answer."
    return f"Currently favoring: {', '.join(favorites)}."


def normalized_progress(value: int) -> float:
    """UI 进度条：score / 8 截断到 [0, 1]。"""
    return min(max(value / PROGRESS_SCALE, 0.0), 1.0)


def signed_progress(value: int) -> float:
    """双向进度：同样按 /8 缩放，截断到 [-1, 1]，保留负号。"""
    return min(max(value / PROGRESS_SCALE, -1.0), 1.0)


def fallback_skills(text: str) -> FrozenSet[PersonaSkill]:
    lower = text.lower()
    matched = {
        skill
        for keywords, skill in FALLBACK_KEYWORDS
        if any(k in lower for k in keywords)
    }
    return frozenset(matched or {DEFAULT_SKILL})


@dataclass(frozen=True)
class SkillProgress:
    skill: PersonaSkill
    score: int
    progress: float


@dataclass(frozen=True)
class CategoryProgress:
    category: SkillCategory
    skills: Tuple[SkillProgress, ...]
    total_score: int


def skill_category_progress(scores: Mapping[str, int]) -> List[CategoryProgress]:
    """按分类汇总技能分数，分类按总分降序排列（平局按声明顺序）。"""

    items: List[CategoryProgress] = []
    for category, skills in CATEGORY_MAP.items():
        progress = tuple(
            SkillProgress(skill=s, score=score(s, scores), progress=normalized_progress(score(s, scores)))
            for s in skills
        )
        items.append(
            CategoryProgress(
                category=category,
                skills=progress,
                total_score=sum(p.score for p in progress),
            )
        )
    return sorted(items, key=lambda c: -c.total_score)


def sort_skills(skills) -> List[PersonaSkill]:
    """按目录顺序输出技能集合，便于序列化与日志。"""
    chosen = set(skills)
    return [s for s in PersonaSkill if s in chosen]
