# app/core/scoring.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from app.models.db_models import Question, Response, QTYPE_MCQ, QTYPE_TEXT, QTYPE_VOICE

# composite weights (percent) per question type
CATEGORY_WEIGHTS: Dict[str, int] = {
    QTYPE_MCQ: 40,
    QTYPE_TEXT: 35,
    QTYPE_VOICE: 25,
}


@dataclass
class CategoryTotals:
    earned: float = 0.0
    possible: float = 0.0

    @property
    def present(self) -> bool:
        return self.possible > 0

    @property
    def percentage(self) -> float:
        if not self.present:
            return 0.0
        return (self.earned / self.possible) * 100.0


@dataclass
class SessionScores:
    mcq: float
    text: float
    voice: float
    composite: float
    present: Dict[str, bool]


def bucket_totals(pairs: Iterable[Tuple[Response, Question]]) -> Dict[str, CategoryTotals]:
    totals = {qtype: CategoryTotals() for qtype in CATEGORY_WEIGHTS}
    for response, question in pairs:
        bucket = totals.get(question.type)
        if bucket is None:
            continue
        bucket.earned += response.score or 0.0
        bucket.possible += question.points
    return totals


def composite_score(percentages: Dict[str, float], present: Dict[str, bool]) -> float:
    """
    Sum of weight/100 * pct over the categories that were actually tested.

    Not renormalised: an mcq-only session at 50 % gives 20, not 50.
    """
    total = 0.0
    for qtype, weight in CATEGORY_WEIGHTS.items():
        if present.get(qtype):
            total += percentages.get(qtype, 0.0) * weight / 100.0
    return total


def aggregate(pairs: List[Tuple[Response, Question]]) -> SessionScores:
    totals = bucket_totals(pairs)
    pct = {qtype: t.percentage for qtype, t in totals.items()}
    present = {qtype: t.present for qtype, t in totals.items()}
    return SessionScores(
        mcq=pct[QTYPE_MCQ],
        text=pct[QTYPE_TEXT],
        voice=pct[QTYPE_VOICE],
        composite=composite_score(pct, present),
        present=present,
    )


def skill_level(average_score: float) -> str:
    if average_score >= 90:
        return "Expert"
    if average_score >= 80:
        return "Advanced"
    if average_score >= 70:
        return "Intermediate"
    return "Beginner"
