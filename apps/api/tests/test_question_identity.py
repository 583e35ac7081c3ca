"""
Tests for question identity resolution

The chain is question_id -> question_text -> alias, first match wins.
"""
from services.question_identity import (
    IDENTITY_CHAIN,
    QuestionIdentityIndex,
    normalize_question_text,
)
from schemas import QuestionAnswer


def answer(question_id=None, text=None):
    return QuestionAnswer(question_id=question_id, question_text=text, value=5, declared_type="scale")


class TestChainOrder:

    def test_chain_is_id_text_alias(self):
        assert [lookup.name for lookup in IDENTITY_CHAIN] == ["question_id", "question_text", "alias"]

    def test_id_match_beats_text_match(self):
        index = QuestionIdentityIndex()
        index.observe(answer("q1", "Sleep quality"))
        index.observe(answer("q2", "Energy"))
        # Text points at q1, id points at q2: id wins
        resolution = index.resolve(answer("q2", "Sleep quality"))
        assert resolution.identity == "q2"
        assert resolution.matched_by == "question_id"

    def test_text_match_when_id_missing(self):
        index = QuestionIdentityIndex()
        index.observe(answer("q7", "How did you sleep?"))
        resolution = index.resolve(answer(None, "How did you sleep?"))
        assert resolution.identity == "q7"
        assert resolution.matched_by == "question_text"

    def test_alias_captured_on_first_observation(self):
        index = QuestionIdentityIndex()
        index.observe(answer("q7", "How did you sleep?"))
        resolution = index.resolve(answer(None, "HOW did you sleep"))
        assert resolution.matched_by == "alias"
        assert resolution.identity == "q7"

    def test_no_match_returns_none(self):
        index = QuestionIdentityIndex()
        index.observe(answer("q1", "Water intake"))
        assert index.resolve(answer("q9", "Steps")) is None


class TestObserve:

    def test_new_identity_prefers_id(self):
        index = QuestionIdentityIndex()
        assert index.observe(answer("abc", "Mood")).identity == "abc"

    def test_new_identity_from_text(self):
        index = QuestionIdentityIndex()
        resolution = index.observe(answer(None, "Mood today?"))
        assert resolution.identity == "text:mood today"
        assert resolution.matched_by is None

    def test_answer_without_id_or_text_is_unresolvable(self):
        assert QuestionIdentityIndex().observe(answer()) is None

    def test_excluded_identity_not_reused(self):
        index = QuestionIdentityIndex()
        first = index.observe(answer(None, "Notes"))
        second = index.observe(answer(None, "Notes"), exclude={first.identity})
        assert second.identity != first.identity
        assert second.identity == "text:notes#2"

    def test_learns_new_id_on_text_match(self):
        index = QuestionIdentityIndex()
        index.observe(answer("old", "Stress level"))
        index.observe(answer("new", "Stress level"))
        resolution = index.resolve(answer("new", "Completely reworded"))
        assert resolution.identity == "old"
        assert resolution.matched_by == "question_id"


def test_normalize_question_text():
    assert normalize_question_text("  How  did you SLEEP?! ") == "how did you sleep"
