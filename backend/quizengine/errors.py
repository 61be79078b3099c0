"""Typed failures raised by the quiz engine.

Every error belongs to one of four categories (not found, conflict, invalid
input, unavailable). The HTTP layer maps the category to a status code and
renders ``code``/``message`` plus any ``extra`` fields.
"""


class QuizError(Exception):
    status_code = 500
    code = 'quiz_error'

    def __init__(self, message=None, **extra):
        self.message = message or self.__class__.__doc__ or self.code
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self):
        out = {'code': self.code, 'message': self.message}
        out.update(self.extra)
        return out


class NotFound(QuizError):
    status_code = 404
    code = 'not_found'


class Conflict(QuizError):
    status_code = 409
    code = 'conflict'


class InvalidInput(QuizError):
    status_code = 400
    code = 'invalid_input'


class Unavailable(QuizError):
    status_code = 503
    code = 'unavailable'


class ParticipantNotFound(NotFound):
    """Participant not found. Please register first."""
    code = 'participant_not_found'


class SessionNotFound(NotFound):
    """Quiz session not found."""
    code = 'session_not_found'


class QuestionNotFound(NotFound):
    """Question not found."""
    code = 'question_not_found'


class AlreadyAttempted(Conflict):
    """Quiz already taken for this participant."""
    code = 'already_attempted'


class AlreadySubmitted(Conflict):
    """Quiz already submitted."""
    code = 'already_submitted'


class AlreadyFinalized(Conflict):
    """Quiz result already recorded for this participant."""
    code = 'already_finalized'


class SessionCollision(Conflict):
    """Another quiz session was started for this participant at the same time."""
    code = 'session_collision'


class NoQuestionsAvailable(Unavailable):
    """No quiz questions available for this event."""
    code = 'no_questions_available'
