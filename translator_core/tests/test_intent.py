from translator_core.domain.intent import InteractionIntent, classify
from translator_core.domain.skills import PersonaSkill


def test_japanese_only_is_translation():
    intent = classify("お元気ですか")
    assert intent is InteractionIntent.TRANSLATION_ONLY
    assert intent.skill_hints == frozenset({PersonaSkill.CRYSTAL_TRANSLATION, PersonaSkill.SPEED_SUMMARIZER})
    assert classify("コーヒーをください") is InteractionIntent.TRANSLATION_ONLY


def test_feedback_keywords_take_priority():
    intent = classify("can you check the tone of this draft")
    assert intent is InteractionIntent.EXPLANATION_OR_FEEDBACK
    assert intent.skill_hints == frozenset(
        {PersonaSkill.GRAMMAR_GUIDE, PersonaSkill.TONE_COACH, PersonaSkill.REWRITE_MENTOR}
    )
    assert classify("EXPLAIN 猫") is InteractionIntent.EXPLANATION_OR_FEEDBACK
    assert classify("この文の意味は? why") is InteractionIntent.EXPLANATION_OR_FEEDBACK


def test_mixed_or_latin_is_general():
    assert classify("Good morning") is InteractionIntent.GENERAL
    assert classify("東京 Tokyo") is InteractionIntent.GENERAL
    assert classify("12345") is InteractionIntent.GENERAL
    assert classify("Good morning").skill_hints == frozenset(
        {PersonaSkill.CRYSTAL_TRANSLATION, PersonaSkill.GRAMMAR_GUIDE}
    )


def test_templates_present():
    for intent in InteractionIntent:
        assert intent.system_directive
        assert intent.user_facing_directive
        assert intent.summary
    assert InteractionIntent.TRANSLATION_ONLY.summary == "Quick translation"
