import pytest
from sqlmodel import select

from app.core.errors import NotFoundError, ProviderError
from app.core.llm import LLMResult
from app.core.questions import clean_mcq_item, clean_prompt_list, generate_questions, list_questions
from app.models.db_models import Assessment, Question

from conftest import FakeProvider


@pytest.mark.parametrize("correct,letter", [("A", "A"), ("c", "C"), ("B) two", "B"), ("four", "D")])
def test_clean_mcq_item_letter_forms(correct, letter):
    item = {"question": "Q", "options": ["one", "two", "three", "four"], "correctAnswer": correct}
    assert clean_mcq_item(item)["correct_answer"] == letter


@pytest.mark.parametrize("item", [
    None,
    "just a string",
    {"question": "", "options": ["a", "b"], "correctAnswer": "A"},
    {"question": "Q", "options": ["a"], "correctAnswer": "A"},
    {"question": "Q", "options": ["a", ""], "correctAnswer": "A"},
    {"question": "Q", "options": ["a", "b"], "correctAnswer": "E"},
    {"question": "Q", "options": ["a", "b"]},
])
def test_clean_mcq_item_rejects_malformed(item):
    assert clean_mcq_item(item) is None


def test_clean_prompt_list_accepts_strings_and_dicts():
    res = LLMResult(data={"questions": ["  one ", {"question": "two"}, "", 3, None]})
    assert clean_prompt_list(res) == ["one", "two"]


def test_generate_questions_stores_ordered_bank(db, make_assessment):
    a, _ = make_assessment([], has_voice=True)
    provider = FakeProvider()

    created = generate_questions(db, provider, a.id, mcq_count=2, text_count=1, voice_count=1)

    assert [q.type for q in created] == ["mcq", "mcq", "text", "voice"]
    assert [q.order for q in created] == [1, 2, 3, 4]
    assert [q.points for q in created] == [1, 1, 5, 5]
    assert created[0].correct_answer == "B"
    assert created[0].options == ["3", "4", "5", "6"]
    db.refresh(a)
    assert a.total_questions == 4
    assert provider.called("generate_mcq_questions")[0] == ("generate_mcq_questions", "Python", "beginner", 2)


def test_generate_questions_skips_voice_without_flag(db, make_assessment):
    a, _ = make_assessment([], has_voice=False)
    provider = FakeProvider()
    created = generate_questions(db, provider, a.id)
    assert "voice" not in {q.type for q in created}
    assert provider.called("generate_voice_questions") == []


def test_generate_questions_appends_after_existing(db, make_assessment):
    a, existing = make_assessment([("mcq", 1), ("text", 5)])
    provider = FakeProvider()
    created = generate_questions(db, provider, a.id, mcq_count=0, text_count=1, voice_count=0)
    assert [q.order for q in created] == [3]
    assert [q.order for q in list_questions(db, a.id)] == [1, 2, 3]
    db.refresh(a)
    assert a.total_questions == 3


def test_generate_questions_drops_malformed_items(db, make_assessment):
    a, _ = make_assessment([])
    provider = FakeProvider()
    provider.mcq_generation = LLMResult(data={"questions": [
        {"question": "ok?", "options": ["y", "n"], "correctAnswer": "A"},
        {"question": "bad", "options": "y/n", "correctAnswer": "A"},
    ]})
    created = generate_questions(db, provider, a.id, mcq_count=2, text_count=0, voice_count=0)
    assert len(created) == 1


def test_generate_questions_provider_failure_writes_nothing(db, make_assessment):
    a, _ = make_assessment([])
    provider = FakeProvider()
    provider.text_generation = LLMResult(error="rate limited")
    with pytest.raises(ProviderError):
        generate_questions(db, provider, a.id)
    assert db.exec(select(Question).where(Question.assessment_id == a.id)).all() == []
    assert db.get(Assessment, a.id).total_questions == 0


def test_generate_questions_unknown_assessment(db):
    with pytest.raises(NotFoundError):
        generate_questions(db, FakeProvider(), 999)
