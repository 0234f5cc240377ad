import pytest

from app.core.errors import SubmissionError
from app.core.grading import (
    AnswerPayload,
    clamp,
    evaluation_dict,
    grade,
    normalize_text_evaluation,
    normalize_voice_evaluation,
    scale_to_points,
)
from app.core.llm import LLMResult
from app.models.db_models import Question, Response
from app.models.evaluation import DEFAULT_FEEDBACK, McqEvaluation, TextEvaluation, VoiceEvaluation, parse_evaluation
from app.models.schemas import ResponseOut

from conftest import FakeProvider


def _mcq(points=1, correct="B"):
    return Question(id=1, assessment_id=1, type="mcq", question="pick", points=points, order=1,
                    options=["a", "b", "c", "d"], correct_answer=correct)


def _open(qtype="text", points=5, rubric=None):
    return Question(id=2, assessment_id=1, type=qtype, question="explain", points=points, order=2, rubric=rubric)


# ---------------- mcq ----------------

@pytest.mark.parametrize("points", [1, 3])
def test_mcq_correct_gets_full_points(points):
    res = grade(_mcq(points=points), AnswerPayload(answer="B"), FakeProvider())
    assert res.score == points
    assert isinstance(res.evaluation, McqEvaluation)
    assert res.evaluation.correct is True


@pytest.mark.parametrize("answer", ["A", "C", "D"])
def test_mcq_wrong_gets_zero(answer):
    res = grade(_mcq(points=2), AnswerPayload(answer=answer), FakeProvider())
    assert res.score == 0
    assert res.evaluation.correct is False


def test_mcq_makes_no_external_call():
    provider = FakeProvider()
    grade(_mcq(), AnswerPayload(answer="B"), provider)
    assert provider.calls == []


@pytest.mark.parametrize("answer", [None, "", "   ", "E", "b", "B)"])
def test_mcq_rejects_invalid_letters(answer):
    with pytest.raises(SubmissionError):
        grade(_mcq(), AnswerPayload(answer=answer), FakeProvider())


# ---------------- text ----------------

def test_text_scaled_to_points():
    provider = FakeProvider()
    res = grade(_open(points=5, rubric="mention X"), AnswerPayload(answer="my answer"), provider)
    assert res.score == pytest.approx(4.0)
    assert provider.called("evaluate_text") == [("evaluate_text", "explain", "my answer", "mention X")]
    ev = res.evaluation
    assert isinstance(ev, TextEvaluation)
    assert (ev.relevance, ev.clarity, ev.depth) == (8, 7, 6)
    assert ev.strengths == ["clear"]


def test_text_out_of_range_overall_is_clamped_to_full_points():
    provider = FakeProvider()
    provider.text_result = LLMResult(data={"score": 150, "relevance": 14, "clarity": -3, "depth": 10})
    res = grade(_open(points=5), AnswerPayload(answer="x"), provider)
    assert res.score == 5.0
    assert res.evaluation.score == 100
    assert res.evaluation.relevance == 10
    assert res.evaluation.clarity == 0


def test_text_huge_integers_are_clamped_not_raised():
    provider = FakeProvider()
    provider.text_result = LLMResult(data={"score": 10 ** 400, "relevance": -(10 ** 400), "clarity": "1e400", "depth": 7})
    res = grade(_open(points=5), AnswerPayload(answer="x"), provider)
    assert res.score == 5.0
    assert res.evaluation.score == 100
    assert res.evaluation.relevance == 0
    assert res.evaluation.clarity == 10
    assert res.evaluation.depth == 7


def test_text_negative_overall_is_zero():
    provider = FakeProvider()
    provider.text_result = LLMResult(data={"score": -40})
    res = grade(_open(points=5), AnswerPayload(answer="x"), provider)
    assert res.score == 0.0


def test_text_missing_fields_default():
    ev = normalize_text_evaluation(LLMResult(data={}))
    assert ev.score == 0
    assert ev.feedback == DEFAULT_FEEDBACK
    assert ev.strengths == [] and ev.improvements == []
    assert (ev.relevance, ev.clarity, ev.depth) == (0, 0, 0)


def test_text_numeric_strings_and_junk():
    ev = normalize_text_evaluation(LLMResult(data={
        "score": "85/100", "relevance": "7", "clarity": None, "depth": True,
        "feedback": "   ", "strengths": "not a list",
    }))
    assert ev.score == 85
    assert ev.relevance == 7
    assert ev.clarity == 0
    assert ev.depth == 0
    assert ev.feedback == DEFAULT_FEEDBACK
    assert ev.strengths == []


def test_text_provider_error_is_low_score_not_exception():
    provider = FakeProvider()
    provider.text_result = LLMResult(error="timeout", model_name="fake")
    res = grade(_open(points=5), AnswerPayload(answer="x"), provider)
    assert res.score == 0
    assert res.provider_error == "timeout"
    assert res.evaluation.error == "timeout"
    assert res.evaluation.feedback == DEFAULT_FEEDBACK


@pytest.mark.parametrize("answer", [None, "", "  \n "])
def test_text_requires_answer(answer):
    provider = FakeProvider()
    with pytest.raises(SubmissionError):
        grade(_open(), AnswerPayload(answer=answer), provider)
    assert provider.calls == []


# ---------------- voice ----------------

def test_voice_uses_transcription():
    provider = FakeProvider()
    res = grade(_open("voice", points=5), AnswerPayload(transcription="spoken words", audio_url="/a.webm"), provider)
    assert provider.called("evaluate_voice")[0][2] == "spoken words"
    assert res.score == pytest.approx(3.0)
    assert isinstance(res.evaluation, VoiceEvaluation)


def test_voice_clamps_subscores():
    ev = normalize_voice_evaluation(LLMResult(data={
        "score": 101, "communication": 11, "confidence": -1, "clarity": 5.5, "content": float("nan"),
    }))
    assert ev.score == 100
    assert ev.communication == 10
    assert ev.confidence == 0
    assert ev.clarity == 5.5
    assert ev.content == 0


def test_voice_requires_transcription():
    with pytest.raises(SubmissionError):
        grade(_open("voice"), AnswerPayload(answer="typed instead"), FakeProvider())


# ---------------- helpers ----------------

@pytest.mark.parametrize("raw,points,expected", [(0, 5, 0.0), (50, 5, 2.5), (100, 5, 5.0), (250, 3, 3.0), (-5, 3, 0.0)])
def test_scale_to_points_stays_in_range(raw, points, expected):
    assert scale_to_points(raw, points) == pytest.approx(expected)


def test_clamp_non_numeric():
    assert clamp("abc", 0, 10) == 0
    assert clamp(None, 0, 10) == 0
    assert clamp(12.5, 0, 10) == 10


@pytest.mark.parametrize("raw,expected", [
    ("1e2", 100.0),
    ("2.5e1", 25.0),
    (" 7 ", 7.0),
    ("score: 8/10", 8.0),
    ("about 1e1 points", 10.0),
    ("nan", 0.0),
    (float("inf"), 100.0),
])
def test_clamp_string_and_float_forms(raw, expected):
    assert clamp(raw, 0, 100) == expected


def test_evaluation_dict_roundtrip_keeps_kind():
    provider = FakeProvider()
    res = grade(_open(points=5), AnswerPayload(answer="x"), provider)
    stored = evaluation_dict(res.evaluation)
    assert stored["kind"] == "text"
    assert "error" not in stored
    assert parse_evaluation(stored) == res.evaluation


def test_parse_evaluation_tolerates_partial_and_extra_keys():
    ev = parse_evaluation({"kind": "voice", "score": 40, "tone": "calm"})
    assert isinstance(ev, VoiceEvaluation)
    assert ev.communication == 0
    assert ev.model_extra == {"tone": "calm"}


def test_parse_evaluation_unknown_kind():
    with pytest.raises(ValueError):
        parse_evaluation({"kind": "essay"})


def test_response_out_reads_stored_evaluation_through_typed_model():
    row = Response(id=1, session_id=1, question_id=2, answer="x", score=2.0,
                   evaluation={"kind": "text", "score": 40, "tone": "calm"})
    out = ResponseOut.model_validate(row)
    assert out.evaluation["depth"] == 0.0
    assert out.evaluation["feedback"] == DEFAULT_FEEDBACK
    assert out.evaluation["tone"] == "calm"
