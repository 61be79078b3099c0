from sqlalchemy import func
from quizengine import models
from quizengine.db import SessionLocal, engine

dbs = SessionLocal()
try:
    print('database:', engine.url.render_as_string(hide_password=True))
    print('\nquestions per event:')
    for event, n in dbs.query(models.Question.event, func.count(models.Question.id)).group_by(models.Question.event):
        print(' -', event, n)
    print('\nsessions per status:')
    for status, n in dbs.query(models.QuizSession.status, func.count(models.QuizSession.id)).group_by(models.QuizSession.status):
        print(' -', status, n)
    print('\nlatest results:')
    rows = dbs.query(models.Participant).filter_by(quiz_taken=True).order_by(models.Participant.quiz_end_time.desc()).limit(5)
    for p in rows:
        print(' -', p.email, p.event, p.quiz_score)
finally:
    dbs.close()
