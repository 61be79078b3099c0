from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime
from . import models, schemas
from .db import SessionLocal, pwd_context
from .directory import ParticipantDirectory
from .errors import AlreadyAttempted, InvalidInput
from .importer import decode_upload, import_questions_csv
from .sessions import SessionManager
from .stats import dashboard_stats

api_router = APIRouter(prefix="/api")
security = HTTPBasic()


def get_db():
    dbs = SessionLocal()
    try:
        yield dbs
    finally:
        dbs.close()


def get_manager(db: Session = Depends(get_db)):
    return SessionManager(db)


def check_admin(db: Session, creds: HTTPBasicCredentials):
    user = db.query(models.AdminUser).filter_by(username=creds.username).first()
    if not user:
        return False
    return pwd_context.verify(creds.password, user.password_hash)


def require_admin(creds: HTTPBasicCredentials = Depends(security), db: Session = Depends(get_db)):
    if not check_admin(db, creds):
        raise HTTPException(status_code=401, headers={'WWW-Authenticate': 'Basic'})
    return creds.username


def question_out(q: models.Question):
    return schemas.QuestionOut(
        id=q.id,
        question_text=q.question_text,
        options=list(q.options or []),
        difficulty=q.difficulty,
        category=q.category,
        points=q.points,
        time_limit=q.time_limit,
    )


@api_router.get('/health')
def health():
    return {'status': 'OK', 'timestamp': datetime.utcnow().isoformat()}


@api_router.post('/auth/verify-email', response_model=schemas.ParticipantSummary)
def verify_email(payload: schemas.VerifyEmailIn, db: Session = Depends(get_db)):
    p = ParticipantDirectory(db).find_by_email(payload.email)
    if p.quiz_taken:
        raise AlreadyAttempted('Quiz already taken for this registration.', quiz_taken=True)
    return schemas.ParticipantSummary(
        team_code=p.team_code,
        team_name=p.team_name,
        team_lead_name=p.team_lead_name,
        event=p.event,
        college_name=p.college_name or '',
        email=p.email,
        teammates=list(p.teammates or []),
    )


@api_router.post('/quiz/start', response_model=schemas.StartQuizOut)
def start_quiz(payload: schemas.StartQuizIn, manager: SessionManager = Depends(get_manager)):
    started = manager.create(payload.email, payload.event)
    return schemas.StartQuizOut(
        session_id=started.session.id,
        participant_name=started.participant.team_lead_name,
        questions=[question_out(q) for q in started.questions],
        total_questions=len(started.questions),
        total_time_seconds=started.total_time_seconds,
        remaining_seconds=started.remaining_seconds,
        resumed=started.resumed,
    )


@api_router.post('/quiz/submit', response_model=schemas.SubmitQuizOut)
def submit_quiz(payload: schemas.SubmitQuizIn, manager: SessionManager = Depends(get_manager)):
    result = manager.submit(payload.session_id, payload.answers)
    s = result.session
    return schemas.SubmitQuizOut(
        raw_score=result.score.raw_score,
        max_possible_score=result.score.max_possible_score,
        percentage_score=result.score.percentage_score,
        total_questions=s.total_questions,
        questions_attempted=result.score.questions_attempted,
        correct_answers=result.score.correct_answers,
        time_taken_seconds=s.time_taken,
        time_expired=result.time_expired,
    )


@api_router.get('/quiz/session/{session_id}/status', response_model=schemas.SessionStatusOut)
def quiz_session_status(session_id: str, manager: SessionManager = Depends(get_manager)):
    st = manager.status(session_id)
    return schemas.SessionStatusOut(
        session_id=st.session_id,
        status=st.status,
        total_questions=st.total_questions,
        total_time_seconds=st.total_time_seconds,
        remaining_seconds=st.remaining_seconds,
        expired=st.expired,
        end_time=st.end_time,
    )


@api_router.get('/admin/dashboard-stats')
def admin_dashboard_stats(admin: str = Depends(require_admin), db: Session = Depends(get_db)):
    return dashboard_stats(db)


@api_router.get('/admin/sessions/{session_id}', response_model=schemas.SessionDetailOut)
def admin_get_session(session_id: str, admin: str = Depends(require_admin), manager: SessionManager = Depends(get_manager)):
    s = manager.get(session_id)
    return schemas.SessionDetailOut(
        session_id=s.id,
        participant_id=s.participant_id,
        event=s.event,
        status=s.status,
        question_ids=list(s.question_ids or []),
        start_time=s.start_time,
        end_time=s.end_time,
        duration_seconds=s.duration_seconds,
        total_questions=s.total_questions,
        questions_attempted=s.questions_attempted,
        correct_answers=s.correct_answers,
        raw_score=s.score,
        max_possible_score=s.max_possible_score,
        percentage_score=s.percentage_score,
        time_taken_seconds=s.time_taken,
        answers=[schemas.AnswerRecord(**a) for a in (s.answers or [])],
    )


@api_router.post('/admin/sessions/{session_id}/abandon')
def admin_abandon_session(session_id: str, admin: str = Depends(require_admin), manager: SessionManager = Depends(get_manager)):
    s = manager.abandon(session_id)
    return {'ok': True, 'session_id': s.id, 'status': s.status}


@api_router.post('/admin/participant')
def admin_create_participant(payload: schemas.ParticipantCreate, admin: str = Depends(require_admin), db: Session = Depends(get_db)):
    p = ParticipantDirectory(db).register(
        email=payload.email,
        event=payload.event,
        team_code=payload.team_code,
        team_name=payload.team_name,
        team_lead_name=payload.team_lead_name,
        college_name=payload.college_name or '',
        phone_number=payload.phone_number or '',
        teammates=payload.teammates,
    )
    return {'id': p.id}


@api_router.get('/admin/participants')
def admin_list_participants(event: Optional[str] = None, has_quiz: Optional[bool] = None,
                            admin: str = Depends(require_admin), db: Session = Depends(get_db)):
    q = db.query(models.Participant)
    if event and event != 'All':
        q = q.filter(models.Participant.event == event)
    if has_quiz is not None:
        q = q.filter(models.Participant.quiz_taken == has_quiz)
    rows = q.order_by(models.Participant.registration_date.desc(), models.Participant.id.desc()).all()
    return [schemas.ParticipantRow(
        id=r.id,
        team_code=r.team_code,
        team_name=r.team_name,
        event=r.event,
        team_lead_name=r.team_lead_name,
        email=r.email,
        quiz_taken=bool(r.quiz_taken),
        quiz_score=r.quiz_score,
        registration_date=r.registration_date,
    ) for r in rows]


@api_router.post('/admin/questions/import', response_model=schemas.ImportSummary)
def admin_import_questions(event: str = Form(...), file: UploadFile = File(...),
                           admin: str = Depends(require_admin), db: Session = Depends(get_db)):
    """Import questions for one event from a CSV upload."""
    if not file.filename:
        raise InvalidInput('CSV file is required')
    try:
        raw = file.file.read()
    finally:
        file.file.close()
    return import_questions_csv(db, event, decode_upload(raw))
