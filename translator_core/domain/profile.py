"""用户画像：由累计反馈推导出的计数器与技能分数。

注意：评分改变（例如 +1 改为 -1）时 likedAnswers / dislikedAnswers
不会回退，只有技能分数通过 delta 调整。这是刻意保留的行为。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from translator_core.domain import skills as skill_engine
from translator_core.domain.models import ChatMessage, new_id, utcnow
from translator_core.domain.skills import PersonaSkill

SNIPPET_LENGTH = 120


@dataclass
class UserProfile:
    id: str = field(default_factory=lambda: new_id("p"))
    total_questions: int = 0
    liked_answers: int = 0
    disliked_answers: int = 0
    last_feedback_snippet: Optional[str] = None
    last_updated: Optional[datetime] = None
    skill_scores: Dict[str, int] = field(default_factory=dict)

    @property
    def rating_summary(self) -> str:
        liked, disliked = self.liked_answers, self.disliked_answers
        if liked == 0 and disliked == 0:
            return "Still learning what the user prefers."
        if disliked == 0:
            return "User consistently likes thorough, thoughtful responses."
        if liked == 0:
            return "User often downvotes responses; focus on clarity and nuance."
        return f"Likes: {liked} | Dislikes: {disliked}. Reinforce patterns found in liked answers."

    @property
    def learning_summary(self) -> str:
        base = f"Questions asked: {self.total_questions}. {self.rating_summary}"
        skill_text = skill_engine.friendly_summary(self.skill_scores)
        if self.last_feedback_snippet:
            return f'{base} Last positive snippet: "{self.last_feedback_snippet}". {skill_text}'
        return f"{base} {skill_text}"

    def record_question(self) -> None:
        self.total_questions += 1
        self.last_updated = utcnow()

    def apply_rating(self, rating: int, source: Optional[ChatMessage] = None) -> None:
        if rating > 0:
            self.liked_answers += 1
            snippet = source.text[:SNIPPET_LENGTH] if source else ""
            if snippet:
                self.last_feedback_snippet = snippet
        elif rating < 0:
            self.disliked_answers += 1
        else:
            return
        self.last_updated = utcnow()

    def adjust_skills(self, skills: Iterable[PersonaSkill], delta: int) -> None:
        if delta == 0:
            return
        for skill in set(skills):
            current = self.skill_scores.get(skill.value, 0)
            self.skill_scores[skill.value] = max(0, current + delta)
        self.last_updated = utcnow()
