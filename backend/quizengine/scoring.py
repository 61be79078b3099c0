"""Scoring of submitted answers against the authoritative questions.

``score_answers`` is pure: it reads questions through the ``resolve`` callable
and never writes anything. Answers pointing outside the session's question set
are rejected outright; answers whose question has since disappeared are kept
for the audit trail but earn and cost nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from fractions import Fraction
import math

from .errors import InvalidInput, QuestionNotFound

DEFAULT_POINTS = 10


@dataclass
class AnswerOutcome:
    question_id: int
    selected_option: int | None
    is_correct: bool | None  # None: question could not be resolved
    time_spent: int = 0

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class ScoreResult:
    raw_score: int = 0
    max_possible_score: int = 0
    percentage_score: int = 0
    correct_answers: int = 0
    questions_attempted: int = 0
    outcomes: list[AnswerOutcome] = field(default_factory=list)

    def answer_records(self) -> list[dict]:
        return [o.to_record() for o in self.outcomes]


def round_half_away(value) -> int:
    """Nearest integer, halves rounded away from zero (not Python's banker's rounding)."""
    value = Fraction(value)
    if value < 0:
        return -math.floor(-value + Fraction(1, 2))
    return math.floor(value + Fraction(1, 2))


def percentage(raw: int, max_possible: int) -> int:
    """raw/max as a whole percentage; 0 when nothing was scorable."""
    if max_possible <= 0:
        return 0
    return round_half_away(Fraction(raw * 100, max_possible))


def _get(answer, name, default=None):
    if isinstance(answer, dict):
        return answer.get(name, default)
    return getattr(answer, name, default)


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_option(value):
    """Whole integers only; bools, floats and other junk never match an option."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.removeprefix('-').isdecimal():
            return int(text)
    return None


def score_answers(question_ids, answers, resolve) -> ScoreResult:
    allowed = set(question_ids)
    seen = set()
    for answer in answers:
        qid = _get(answer, 'question_id')
        if qid not in allowed:
            raise InvalidInput('Answer references a question outside this quiz session', question_id=qid)
        if qid in seen:
            raise InvalidInput('More than one answer for the same question', question_id=qid)
        seen.add(qid)

    result = ScoreResult(questions_attempted=len(answers))
    for answer in answers:
        qid = _get(answer, 'question_id')
        selected = _as_option(_get(answer, 'selected_option'))
        time_spent = _as_int(_get(answer, 'time_spent')) or 0
        try:
            question = resolve(qid)
        except QuestionNotFound:
            result.outcomes.append(AnswerOutcome(qid, selected, None, time_spent))
            continue

        points = question.points if question.points is not None else DEFAULT_POINTS
        result.max_possible_score += points
        is_correct = selected is not None and selected == int(question.correct_option)
        if is_correct:
            result.raw_score += points
            result.correct_answers += 1
        result.outcomes.append(AnswerOutcome(qid, selected, is_correct, time_spent))

    result.percentage_score = percentage(result.raw_score, result.max_possible_score)
    return result
