"""Quiz session lifecycle: start, submit, abandon.

Sessions move ``in_progress -> completed`` (submit) or
``in_progress -> abandoned`` (admin action or stale-session policy). Both
transitions are conditional updates keyed on the current status, so two
racing requests can never both win. A submit commits the session transition
and the participant record in one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .config import CFG, EVENTS, Settings
from .directory import ParticipantDirectory
from .errors import (
    AlreadyAttempted,
    AlreadyFinalized,
    AlreadySubmitted,
    InvalidInput,
    NoQuestionsAvailable,
    ParticipantNotFound,
    SessionCollision,
    SessionNotFound,
)
from .question_bank import QuestionBank
from .record_sync import ParticipantRecordSync
from .sampler import QuestionSampler
from .scoring import ScoreResult, score_answers
from .timeguard import TimeGuard

logger = logging.getLogger(__name__)


@dataclass
class StartedQuiz:
    session: models.QuizSession
    participant: models.Participant
    questions: List[models.Question]
    total_time_seconds: int
    remaining_seconds: int
    resumed: bool = False


@dataclass
class SubmitResult:
    session: models.QuizSession
    score: ScoreResult
    time_expired: bool = False


@dataclass
class SessionStatus:
    session_id: str
    status: str
    total_questions: int
    total_time_seconds: int
    remaining_seconds: int
    expired: bool
    end_time: Optional[datetime] = None


class SessionManager:
    def __init__(self, db: Session, settings: Settings = CFG, sampler=None, clock=None):
        self.db = db
        self.settings = settings
        self.bank = QuestionBank(db)
        self.directory = ParticipantDirectory(db)
        self.sampler = sampler or QuestionSampler(self.bank)
        self.record_sync = ParticipantRecordSync(db, self.directory)
        self.clock = clock or datetime.utcnow

    # -- lookups -----------------------------------------------------------

    def get(self, session_id) -> models.QuizSession:
        s = self.db.query(models.QuizSession).filter_by(id=session_id).first()
        if not s:
            raise SessionNotFound(session_id=session_id)
        return s

    def time_guard(self, session: models.QuizSession) -> TimeGuard:
        return TimeGuard(session.start_time, session.duration_seconds)

    def status(self, session_id) -> SessionStatus:
        s = self.get(session_id)
        guard = self.time_guard(s)
        now = self.clock()
        return SessionStatus(
            session_id=s.id,
            status=s.status,
            total_questions=s.total_questions,
            total_time_seconds=s.duration_seconds,
            remaining_seconds=guard.remaining(now) if s.status == models.STATUS_IN_PROGRESS else 0,
            expired=guard.is_expired(now),
            end_time=s.end_time,
        )

    def _open_session(self, participant_id) -> Optional[models.QuizSession]:
        return self.db.query(models.QuizSession).filter(
            models.QuizSession.participant_id == participant_id,
            models.QuizSession.status != models.STATUS_ABANDONED,
        ).first()

    def _is_stale(self, session, now):
        grace = timedelta(seconds=self.settings.abandon_grace_seconds)
        return now >= self.time_guard(session).deadline + grace

    # -- create ------------------------------------------------------------

    def create(self, email, event) -> StartedQuiz:
        if event not in EVENTS:
            raise InvalidInput(f'Unknown event {event!r}', events=list(EVENTS))
        participant = self.directory.find_by_email(email)
        if participant.event != event:
            raise InvalidInput('Participant is registered for a different event',
                               registered_event=participant.event)
        if participant.quiz_taken:
            raise AlreadyAttempted(quiz_taken=True)

        now = self.clock()
        existing = self._open_session(participant.id)
        if existing is not None:
            resumed = self._handle_existing(existing, now)
            if resumed is not None:
                return StartedQuiz(
                    session=existing,
                    participant=participant,
                    questions=self.bank.get_many(existing.question_ids),
                    total_time_seconds=existing.duration_seconds,
                    remaining_seconds=self.time_guard(existing).remaining(now),
                    resumed=True,
                )

        try:
            questions = self.sampler.sample(event, self.settings.questions_per_quiz)
        except (InvalidInput, NoQuestionsAvailable):
            # drop a pending stale-session abandon along with the failed start
            self.db.rollback()
            raise
        duration = self.settings.duration_for(event)
        session = models.QuizSession(
            id=uuid4().hex,
            participant_id=participant.id,
            event=event,
            question_ids=[q.id for q in questions],
            status=models.STATUS_IN_PROGRESS,
            start_time=now,
            duration_seconds=duration,
            total_questions=len(questions),
            answers=[],
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning('Concurrent quiz start for participant %s rejected', participant.id)
            raise SessionCollision(quiz_taken=False)

        logger.info('Quiz started | participant=%s session=%s questions=%s',
                    participant.email, session.id, len(questions))
        return StartedQuiz(
            session=session,
            participant=participant,
            questions=questions,
            total_time_seconds=duration,
            remaining_seconds=duration,
        )

    def _handle_existing(self, existing, now):
        """Apply the stale-session policy. Returns the session when it should be resumed."""
        if existing.status == models.STATUS_COMPLETED:
            raise AlreadyAttempted(quiz_taken=True)
        policy = self.settings.stale_session_policy
        if policy == 'lock':
            raise AlreadyAttempted('A quiz session is already in progress', session_active=True)
        if not self._is_stale(existing, now):
            if policy == 'resume':
                return existing
            raise AlreadyAttempted('A quiz session is already in progress', session_active=True)
        # stale: retire it in the same transaction as the new insert
        if not self._transition(existing.id, models.STATUS_ABANDONED, {models.QuizSession.end_time: now}):
            # a late submit or another start closed it first
            self.db.rollback()
            current = self.get(existing.id)
            if current.status == models.STATUS_COMPLETED:
                raise AlreadyAttempted(quiz_taken=True)
            raise SessionCollision(quiz_taken=False)
        logger.info('Abandoned stale session %s for participant %s', existing.id, existing.participant_id)
        return None

    # -- transitions -------------------------------------------------------

    def _transition(self, session_id, new_status, values) -> bool:
        values = dict(values)
        values[models.QuizSession.status] = new_status
        updated = self.db.query(models.QuizSession).filter(
            models.QuizSession.id == session_id,
            models.QuizSession.status == models.STATUS_IN_PROGRESS,
        ).update(values, synchronize_session=False)
        return updated == 1

    def _closed(self, session):
        if session.status == models.STATUS_COMPLETED:
            return AlreadySubmitted(session_id=session.id, quiz_taken=True)
        return AlreadySubmitted('Quiz session is no longer active', session_id=session.id, status=session.status)

    def submit(self, session_id, answers) -> SubmitResult:
        session = self.get(session_id)
        if session.status != models.STATUS_IN_PROGRESS:
            raise self._closed(session)

        result = score_answers(session.question_ids, answers, self.bank.get_by_id)
        now = self.clock()
        guard = self.time_guard(session)
        time_taken = guard.elapsed(now)
        expired = guard.is_expired(now)

        won = self._transition(session.id, models.STATUS_COMPLETED, {
            models.QuizSession.end_time: now,
            models.QuizSession.questions_attempted: result.questions_attempted,
            models.QuizSession.correct_answers: result.correct_answers,
            models.QuizSession.score: result.raw_score,
            models.QuizSession.max_possible_score: result.max_possible_score,
            models.QuizSession.percentage_score: result.percentage_score,
            models.QuizSession.time_taken: time_taken,
            models.QuizSession.answers: result.answer_records(),
        })
        if not won:
            self.db.rollback()
            logger.info('Duplicate submit rejected for session %s', session.id)
            raise self._closed(self.get(session.id))

        self.db.expire(session)
        try:
            self.record_sync.finalize(session.participant_id, session)
        except (AlreadyFinalized, ParticipantNotFound):
            self.db.rollback()
            raise
        self.db.commit()

        logger.info('Quiz submitted | session=%s score=%s/%s (%s%%) expired=%s',
                    session.id, result.raw_score, result.max_possible_score,
                    result.percentage_score, expired)
        return SubmitResult(session=session, score=result, time_expired=expired)

    def abandon(self, session_id) -> models.QuizSession:
        session = self.get(session_id)
        if session.status != models.STATUS_IN_PROGRESS:
            raise self._closed(session)
        if not self._transition(session.id, models.STATUS_ABANDONED, {models.QuizSession.end_time: self.clock()}):
            self.db.rollback()
            raise self._closed(self.get(session_id))
        self.db.commit()
        self.db.refresh(session)
        logger.info('Session %s abandoned', session.id)
        return session
