"""Participant lookup and the conditional quiz-outcome write."""

import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .config import EVENTS
from .errors import ParticipantNotFound, InvalidInput, Conflict

logger = logging.getLogger(__name__)


def normalize_email(email):
    return (email or '').strip().lower()


class ParticipantDirectory:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email) -> models.Participant:
        key = normalize_email(email)
        if not key:
            raise InvalidInput('Email is required')
        p = self.db.query(models.Participant).filter_by(email=key).first()
        if not p:
            raise ParticipantNotFound()
        return p

    def get(self, participant_id) -> models.Participant:
        p = self.db.query(models.Participant).filter_by(id=participant_id).first()
        if not p:
            raise ParticipantNotFound()
        return p

    def register(self, email, event, team_code, team_name, team_lead_name,
                 college_name='', phone_number='', teammates=None) -> models.Participant:
        key = normalize_email(email)
        if not key:
            raise InvalidInput('Email is required')
        if event not in EVENTS:
            raise InvalidInput(f'Unknown event {event!r}', events=list(EVENTS))
        p = models.Participant(
            email=key,
            event=event,
            team_code=team_code,
            team_name=team_name,
            team_lead_name=team_lead_name,
            college_name=college_name,
            phone_number=phone_number,
            teammates=[t.strip() for t in (teammates or []) if t and t.strip()],
        )
        self.db.add(p)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict('Email or team code already registered')
        logger.info('Registered participant %s for %s', key, event)
        return p

    def update_quiz_outcome(self, participant_id, outcome, expected_quiz_taken=False) -> bool:
        """Write the outcome only if ``quiz_taken`` still has the expected value.

        Returns whether a row was updated. Does not commit.
        """
        updated = self.db.query(models.Participant).filter(
            models.Participant.id == participant_id,
            models.Participant.quiz_taken == expected_quiz_taken,
        ).update(outcome, synchronize_session=False)
        return updated == 1
