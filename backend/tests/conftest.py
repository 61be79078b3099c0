import random
from datetime import datetime, timedelta

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from quizengine import models, routers
from quizengine.config import Settings
from quizengine.db import make_engine, pwd_context
from quizengine.main import app
from quizengine.question_bank import QuestionBank
from quizengine.sampler import QuestionSampler
from quizengine.sessions import SessionManager

T0 = datetime(2026, 3, 14, 10, 0, 0)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def engine(tmp_path):
    # file-backed so separate sessions really use separate connections
    eng = make_engine(f"sqlite:///{tmp_path / 'quiz.db'}")
    models.Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def settings():
    return Settings(questions_per_quiz=3, default_duration_seconds=600,
                    event_durations={'IdeaArena': 1200}, abandon_grace_seconds=60)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_manager(settings, clock):
    def _make(dbs, **overrides):
        kwargs = {'settings': settings, 'clock': clock,
                  'sampler': QuestionSampler(QuestionBank(dbs), random.Random(7))}
        kwargs.update(overrides)
        return SessionManager(dbs, **kwargs)
    return _make


@pytest.fixture
def manager(db, make_manager):
    return make_manager(db)


@pytest.fixture
def add_participant(db):
    counter = {'n': 0}

    def _add(email='lead@college.edu', event='InnovWEB', **fields):
        counter['n'] += 1
        p = models.Participant(
            email=email.strip().lower(),
            event=event,
            team_code=fields.pop('team_code', f'TEAM{counter["n"]:03d}'),
            team_name=fields.pop('team_name', 'Byte Busters'),
            team_lead_name=fields.pop('team_lead_name', 'Asha Rao'),
            college_name=fields.pop('college_name', 'City College'),
            phone_number=fields.pop('phone_number', '9999999999'),
            teammates=fields.pop('teammates', ['Ravi', 'Meena']),
            **fields,
        )
        db.add(p)
        db.commit()
        return p
    return _add


@pytest.fixture
def add_question(db):
    def _add(event='InnovWEB', correct_option=0, points=10, is_active=True, text=None):
        q = models.Question(
            event=event,
            question_text=text or 'What does HTTP stand for?',
            options=['HyperText Transfer Protocol', 'High Transfer Text Protocol',
                     'Host Text Transfer Protocol', 'None of these'],
            correct_option=correct_option,
            explanation='Basics.',
            points=points,
            is_active=is_active,
        )
        db.add(q)
        db.commit()
        return q
    return _add


@pytest.fixture
def question_pool(add_question):
    return [add_question(correct_option=i % 4, points=10, text=f'Question {i}') for i in range(5)]


@pytest.fixture
def admin(db):
    db.add(models.AdminUser(username='admin', password_hash=pwd_context.hash('secret')))
    db.commit()
    return ('admin', 'secret')


@pytest.fixture
def client(session_factory, make_manager):
    def override_get_db():
        dbs = session_factory()
        try:
            yield dbs
        finally:
            dbs.close()

    def override_get_manager(db=Depends(routers.get_db)):
        return make_manager(db)

    app.dependency_overrides[routers.get_db] = override_get_db
    app.dependency_overrides[routers.get_manager] = override_get_manager
    yield TestClient(app)
    app.dependency_overrides.clear()
