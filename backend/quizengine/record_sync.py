import logging

from . import models
from .directory import ParticipantDirectory
from .errors import AlreadyFinalized, InvalidInput

logger = logging.getLogger(__name__)


class ParticipantRecordSync:
    """Copies a completed session's outcome onto the participant record, once."""

    def __init__(self, db, directory=None):
        self.db = db
        self.directory = directory or ParticipantDirectory(db)

    def finalize(self, participant_id, session: models.QuizSession):
        # the caller owns the transaction; nothing is committed here
        if session.status != models.STATUS_COMPLETED:
            raise InvalidInput('Only completed sessions can be finalized', session_id=session.id)
        outcome = {
            models.Participant.quiz_taken: True,
            models.Participant.quiz_score: session.percentage_score,
            models.Participant.quiz_start_time: session.start_time,
            models.Participant.quiz_end_time: session.end_time,
            models.Participant.quiz_answers: list(session.answers or []),
        }
        if self.directory.update_quiz_outcome(participant_id, outcome, expected_quiz_taken=False):
            return
        # nothing updated: either the participant is gone or the quiz is already recorded
        self.directory.get(participant_id)
        logger.warning('Participant %s already has a recorded quiz; session %s not applied',
                       participant_id, session.id)
        raise AlreadyFinalized(quiz_taken=True)
