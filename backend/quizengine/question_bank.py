import logging
from sqlalchemy.orm import Session

from . import models
from .config import EVENTS
from .errors import QuestionNotFound, InvalidInput

logger = logging.getLogger(__name__)

DIFFICULTIES = ('easy', 'medium', 'hard')


class QuestionBank:
    """Read access to stored questions plus the single-question insert used by imports."""

    def __init__(self, db: Session):
        self.db = db

    def active_ids(self, event):
        rows = self.db.query(models.Question.id).filter(
            models.Question.event == event,
            models.Question.is_active == True,
        ).order_by(models.Question.id).all()
        return [r[0] for r in rows]

    def get_by_id(self, question_id) -> models.Question:
        q = self.db.query(models.Question).filter_by(id=question_id).first()
        if not q:
            raise QuestionNotFound(question_id=question_id)
        return q

    def get_many(self, ids):
        """Questions for ``ids`` in the same order; missing ids are skipped."""
        if not ids:
            return []
        rows = self.db.query(models.Question).filter(models.Question.id.in_(ids)).all()
        by_id = {q.id: q for q in rows}
        return [by_id[i] for i in ids if i in by_id]

    def add(self, event, question_text, options, correct_option, explanation='',
            difficulty='medium', category='', points=10, time_limit=30, commit=True):
        if event not in EVENTS:
            raise InvalidInput(f'Unknown event {event!r}', events=list(EVENTS))
        if len(options) != 4 or any(not o for o in options):
            raise InvalidInput('A question needs exactly four non-empty options')
        if correct_option not in (0, 1, 2, 3):
            raise InvalidInput('correct_option must be 0..3')
        if difficulty not in DIFFICULTIES:
            difficulty = 'medium'
        q = models.Question(
            event=event,
            question_text=question_text,
            options=list(options),
            correct_option=correct_option,
            explanation=explanation,
            difficulty=difficulty,
            category=category,
            points=points,
            time_limit=time_limit,
        )
        self.db.add(q)
        if commit:
            self.db.commit()
        return q
