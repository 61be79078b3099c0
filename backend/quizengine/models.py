from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, Index, text
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()

STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_ABANDONED = 'abandoned'


class Participant(Base):
    __tablename__ = 'participants'
    id = Column(Integer, primary_key=True)
    team_code = Column(String(64), unique=True, nullable=False)
    team_name = Column(String(256), nullable=False)
    team_lead_name = Column(String(256), nullable=False)
    college_name = Column(String(256), nullable=False, default='')
    phone_number = Column(String(32), nullable=False, default='')
    # always stored lower-cased and trimmed; lookups normalise the same way
    email = Column(String(256), unique=True, nullable=False)
    event = Column(String(64), nullable=False)
    teammates = Column(JSON, nullable=False, default=list)
    registration_date = Column(DateTime, default=datetime.utcnow)
    quiz_taken = Column(Boolean, default=False, nullable=False)
    quiz_score = Column(Integer, nullable=True)
    quiz_start_time = Column(DateTime, nullable=True)
    quiz_end_time = Column(DateTime, nullable=True)
    # [{question_id, selected_option, is_correct, time_spent}]
    quiz_answers = Column(JSON, nullable=False, default=list)


class Question(Base):
    __tablename__ = 'questions'
    id = Column(Integer, primary_key=True)
    event = Column(String(64), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # exactly four strings
    correct_option = Column(Integer, nullable=False)  # 0..3
    explanation = Column(Text, nullable=True)
    difficulty = Column(String(16), default='medium', nullable=False)
    category = Column(String(128), nullable=True)
    points = Column(Integer, default=10, nullable=False)
    time_limit = Column(Integer, default=30, nullable=False)  # seconds
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class QuizSession(Base):
    __tablename__ = 'quiz_sessions'
    id = Column(String(64), primary_key=True)
    participant_id = Column(Integer, nullable=False, index=True)
    event = Column(String(64), nullable=False)
    # sampled once at creation, never rewritten
    question_ids = Column(JSON, nullable=False)
    status = Column(String(16), default=STATUS_IN_PROGRESS, nullable=False)
    start_time = Column(DateTime, nullable=False, default=datetime.utcnow)
    duration_seconds = Column(Integer, nullable=False, default=600)
    end_time = Column(DateTime, nullable=True)
    total_questions = Column(Integer, nullable=False, default=0)
    questions_attempted = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    score = Column(Integer, nullable=True)  # raw points
    max_possible_score = Column(Integer, nullable=True)
    percentage_score = Column(Integer, nullable=True)
    time_taken = Column(Integer, nullable=True)  # seconds
    answers = Column(JSON, nullable=False, default=list)

    # at most one live or completed session per participant; abandoned ones don't count
    __table_args__ = (
        Index(
            'uq_quiz_sessions_open_participant',
            'participant_id',
            unique=True,
            sqlite_where=text("status != 'abandoned'"),
            postgresql_where=text("status != 'abandoned'"),
        ),
    )


class AdminUser(Base):
    __tablename__ = 'admin_users'
    id = Column(Integer, primary_key=True)
    username = Column(String(64), unique=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
