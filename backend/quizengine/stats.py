from fractions import Fraction

from sqlalchemy import func

from . import models
from .scoring import round_half_away


def dashboard_stats(db):
    """Read-only aggregates for the admin dashboard."""
    total_participants = db.query(func.count(models.Participant.id)).scalar() or 0
    scored = db.query(models.Participant.quiz_score).filter(
        models.Participant.quiz_taken == True,
        models.Participant.quiz_score != None,
    ).all()
    scores = [s for (s,) in scored]
    quiz_taken = len(scores)
    average = round_half_away(Fraction(sum(scores), len(scores))) if scores else 0
    top = max(scores) if scores else 0

    total_questions = db.query(func.count(models.Question.id)).scalar() or 0
    by_event = db.query(models.Question.event, func.count(models.Question.id)).group_by(models.Question.event).all()
    by_status = db.query(models.QuizSession.status, func.count(models.QuizSession.id)).group_by(models.QuizSession.status).all()

    return {
        'total_participants': int(total_participants),
        'quiz_taken': quiz_taken,
        'average_score': average,
        'top_score': top,
        'total_questions': int(total_questions),
        'questions_by_event': {event: int(n) for event, n in by_event},
        'sessions_by_status': {status: int(n) for status, n in by_status},
        'completion_rate': round_half_away(Fraction(quiz_taken * 100, total_participants)) if total_participants else 0,
    }
