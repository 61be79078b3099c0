from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class StartQuizIn(BaseModel):
    email: str
    event: str


class QuestionOut(BaseModel):
    # never carries correct_option or explanation
    id: int
    question_text: str
    options: List[str]
    difficulty: Optional[str] = None
    category: Optional[str] = None
    points: int = 10
    time_limit: int = 30


class StartQuizOut(BaseModel):
    session_id: str
    participant_name: str
    questions: List[QuestionOut]
    total_questions: int
    total_time_seconds: int
    remaining_seconds: int
    resumed: bool = False


class AnswerIn(BaseModel):
    question_id: int
    selected_option: int = Field(..., ge=0, le=3)
    time_spent: int = Field(0, ge=0)


class SubmitQuizIn(BaseModel):
    session_id: str
    answers: List[AnswerIn]


class SubmitQuizOut(BaseModel):
    raw_score: int
    max_possible_score: int
    percentage_score: int
    total_questions: int
    questions_attempted: int
    correct_answers: int
    time_taken_seconds: int
    time_expired: bool = False


class SessionStatusOut(BaseModel):
    session_id: str
    status: str
    total_questions: int
    total_time_seconds: int
    remaining_seconds: int
    expired: bool
    end_time: Optional[datetime] = None


class AnswerRecord(BaseModel):
    question_id: int
    selected_option: Optional[int] = None
    is_correct: Optional[bool] = None
    time_spent: int = 0


class SessionDetailOut(BaseModel):
    session_id: str
    participant_id: int
    event: str
    status: str
    question_ids: List[int]
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int
    total_questions: int
    questions_attempted: Optional[int] = None
    correct_answers: Optional[int] = None
    raw_score: Optional[int] = None
    max_possible_score: Optional[int] = None
    percentage_score: Optional[int] = None
    time_taken_seconds: Optional[int] = None
    answers: List[AnswerRecord] = []


class VerifyEmailIn(BaseModel):
    email: str


class ParticipantSummary(BaseModel):
    team_code: str
    team_name: str
    team_lead_name: str
    event: str
    college_name: str
    email: str
    teammates: List[str] = []


class ParticipantCreate(BaseModel):
    email: str
    event: str
    team_code: str
    team_name: str
    team_lead_name: str
    college_name: Optional[str] = ''
    phone_number: Optional[str] = ''
    teammates: List[str] = []


class ParticipantRow(BaseModel):
    id: int
    team_code: str
    team_name: str
    event: str
    team_lead_name: str
    email: str
    quiz_taken: bool
    quiz_score: Optional[int] = None
    registration_date: Optional[datetime] = None


class ImportSummary(BaseModel):
    event: str
    created: int
    skipped: int
    errors: List[Dict] = []
