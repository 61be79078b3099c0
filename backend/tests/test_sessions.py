import pytest

from quizengine import models
from quizengine.config import Settings
from quizengine.errors import (
    AlreadyAttempted,
    AlreadyFinalized,
    AlreadySubmitted,
    InvalidInput,
    NoQuestionsAvailable,
    ParticipantNotFound,
    SessionCollision,
    SessionNotFound,
)


def answers_for(session, db, right=True):
    out = []
    for qid in session.question_ids:
        question = db.get(models.Question, qid)
        option = question.correct_option if right else (question.correct_option + 1) % 4
        out.append({'question_id': qid, 'selected_option': option, 'time_spent': 20})
    return out


def test_create_samples_and_persists_session(db, manager, add_participant, question_pool):
    add_participant(email='Lead@College.edu ')
    started = manager.create('  LEAD@college.edu', 'InnovWEB')

    assert started.participant.team_lead_name == 'Asha Rao'
    assert len(started.questions) == 3
    assert started.total_time_seconds == 600
    assert started.remaining_seconds == 600
    stored = db.get(models.QuizSession, started.session.id)
    assert stored.status == models.STATUS_IN_PROGRESS
    assert stored.question_ids == [q.id for q in started.questions]
    assert stored.total_questions == 3
    assert stored.score is None


def test_duration_is_configured_per_event(manager, add_participant, add_question):
    add_participant(event='IdeaArena')
    add_question(event='IdeaArena')
    started = manager.create('lead@college.edu', 'IdeaArena')
    assert started.total_time_seconds == 1200
    assert started.session.duration_seconds == 1200


def test_unknown_participant(manager, question_pool):
    with pytest.raises(ParticipantNotFound):
        manager.create('nobody@college.edu', 'InnovWEB')


def test_unknown_or_mismatched_event(manager, add_participant, question_pool):
    add_participant()
    with pytest.raises(InvalidInput):
        manager.create('lead@college.edu', 'Hackathon')
    with pytest.raises(InvalidInput):
        manager.create('lead@college.edu', 'IdeaArena')


def test_no_questions_leaves_no_session(db, manager, add_participant):
    add_participant()
    with pytest.raises(NoQuestionsAvailable):
        manager.create('lead@college.edu', 'InnovWEB')
    assert db.query(models.QuizSession).count() == 0


def test_participant_who_took_quiz_cannot_start_again(db, manager, add_participant, question_pool):
    add_participant(quiz_taken=True, quiz_score=70)
    with pytest.raises(AlreadyAttempted) as exc:
        manager.create('lead@college.edu', 'InnovWEB')
    assert exc.value.extra == {'quiz_taken': True}
    assert db.query(models.QuizSession).count() == 0


def test_submit_scores_completes_and_finalizes(db, manager, add_participant, question_pool, clock):
    p = add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    session_id = started.session.id
    clock.advance(125.7)

    answers = answers_for(started.session, db)
    answers[0]['selected_option'] = (answers[0]['selected_option'] + 1) % 4
    result = manager.submit(session_id, answers)

    assert result.score.raw_score == 20
    assert result.score.max_possible_score == 30
    assert result.score.percentage_score == 67
    assert result.score.correct_answers == 2
    assert result.time_expired is False

    db.expire_all()
    s = db.get(models.QuizSession, session_id)
    assert s.status == models.STATUS_COMPLETED
    assert s.time_taken == 125
    assert s.end_time == clock.now
    assert s.percentage_score == 67
    assert [a['is_correct'] for a in s.answers] == [False, True, True]

    participant = db.get(models.Participant, p.id)
    assert participant.quiz_taken is True
    assert participant.quiz_score == 67
    assert participant.quiz_start_time == s.start_time
    assert participant.quiz_end_time == s.end_time
    assert participant.quiz_answers == s.answers


def test_second_submit_is_rejected_and_changes_nothing(db, manager, add_participant, question_pool, clock):
    p = add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    manager.submit(started.session.id, answers_for(started.session, db, right=False))
    clock.advance(30)

    with pytest.raises(AlreadySubmitted) as exc:
        manager.submit(started.session.id, answers_for(started.session, db, right=True))
    assert exc.value.extra['quiz_taken'] is True
    assert 'score' not in exc.value.to_dict()

    db.expire_all()
    assert db.get(models.Participant, p.id).quiz_score == 0
    assert db.get(models.QuizSession, started.session.id).score == 0


def test_submit_unknown_session(manager):
    with pytest.raises(SessionNotFound):
        manager.submit('does-not-exist', [])


def test_out_of_set_answer_rejects_whole_submit(db, manager, add_participant, question_pool):
    p = add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    outsider = next(q for q in question_pool if q.id not in started.session.question_ids)

    with pytest.raises(InvalidInput):
        manager.submit(started.session.id, [{'question_id': outsider.id, 'selected_option': 0}])

    db.expire_all()
    assert db.get(models.QuizSession, started.session.id).status == models.STATUS_IN_PROGRESS
    assert db.get(models.Participant, p.id).quiz_taken is False


def test_late_submit_scores_normally(db, manager, add_participant, question_pool, clock):
    add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    clock.advance(650)

    result = manager.submit(started.session.id, answers_for(started.session, db))

    assert result.time_expired is True
    assert result.session.time_taken == 650
    assert result.score.percentage_score == 100


def test_deleted_question_is_recorded_without_points(db, manager, add_participant, question_pool):
    add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    answers = answers_for(started.session, db)
    db.delete(db.get(models.Question, answers[0]['question_id']))
    db.commit()

    result = manager.submit(started.session.id, answers)
    assert result.score.questions_attempted == 3
    assert result.score.max_possible_score == 20
    assert result.score.percentage_score == 100
    assert result.score.outcomes[0].is_correct is None


def test_racing_submits_only_one_wins(session_factory, make_manager, add_participant, question_pool):
    p = add_participant()
    db_a, db_b = session_factory(), session_factory()
    try:
        a, b = make_manager(db_a), make_manager(db_b)
        started = a.create('lead@college.edu', 'InnovWEB')
        sid = started.session.id
        wrong = answers_for(started.session, db_a, right=False)
        right = answers_for(started.session, db_a, right=True)

        # A has read the session as in_progress before B commits
        assert a.get(sid).status == models.STATUS_IN_PROGRESS
        b.submit(sid, right)
        with pytest.raises(AlreadySubmitted):
            a.submit(sid, wrong)
    finally:
        db_a.close()
        db_b.close()

    check = session_factory()
    try:
        assert check.get(models.Participant, p.id).quiz_score == 100
        assert check.get(models.QuizSession, sid).percentage_score == 100
    finally:
        check.close()


def test_racing_creates_only_one_session(session_factory, make_manager, add_participant, question_pool, monkeypatch):
    add_participant()
    db_a, db_b = session_factory(), session_factory()
    try:
        a, b = make_manager(db_a), make_manager(db_b)
        # B checked for an open session before A inserted its own
        monkeypatch.setattr(b, '_open_session', lambda participant_id: None)
        a.create('lead@college.edu', 'InnovWEB')
        with pytest.raises(SessionCollision):
            b.create('lead@college.edu', 'InnovWEB')
        assert db_b.query(models.QuizSession).count() == 1
    finally:
        db_a.close()
        db_b.close()


def test_finalize_conflict_rolls_back_session(db, manager, add_participant, question_pool):
    p = add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    # an administrator recorded a result out of band
    db.query(models.Participant).filter_by(id=p.id).update({'quiz_taken': True, 'quiz_score': 55})
    db.commit()

    with pytest.raises(AlreadyFinalized):
        manager.submit(started.session.id, answers_for(started.session, db))

    db.expire_all()
    assert db.get(models.QuizSession, started.session.id).status == models.STATUS_IN_PROGRESS
    assert db.get(models.Participant, p.id).quiz_score == 55


def test_live_session_blocks_second_start(manager, add_participant, question_pool, clock):
    add_participant()
    manager.create('lead@college.edu', 'InnovWEB')
    clock.advance(100)
    with pytest.raises(AlreadyAttempted) as exc:
        manager.create('lead@college.edu', 'InnovWEB')
    assert exc.value.extra == {'session_active': True}


def test_stale_session_is_abandoned_and_replaced(db, manager, add_participant, question_pool, clock):
    add_participant()
    first = manager.create('lead@college.edu', 'InnovWEB')
    first_id = first.session.id
    clock.advance(600 + 60)

    second = manager.create('lead@college.edu', 'InnovWEB')

    assert second.session.id != first_id
    db.expire_all()
    assert db.get(models.QuizSession, first_id).status == models.STATUS_ABANDONED
    with pytest.raises(AlreadySubmitted):
        manager.submit(first_id, [])


def test_completed_session_blocks_start_even_after_expiry(db, manager, add_participant, question_pool, clock):
    add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    manager.submit(started.session.id, [])
    clock.advance(5000)
    with pytest.raises(AlreadyAttempted):
        manager.create('lead@college.edu', 'InnovWEB')


def test_resume_policy_hands_back_live_session(db, make_manager, add_participant, question_pool, clock):
    add_participant()
    manager = make_manager(db, settings=Settings(questions_per_quiz=3, stale_session_policy='resume'))
    first = manager.create('lead@college.edu', 'InnovWEB')
    first_questions = [q.id for q in first.questions]
    clock.advance(200)

    again = manager.create('lead@college.edu', 'InnovWEB')

    assert again.resumed is True
    assert again.session.id == first.session.id
    assert [q.id for q in again.questions] == first_questions
    assert again.remaining_seconds == 400


def test_lock_policy_never_releases(db, make_manager, add_participant, question_pool, clock):
    add_participant()
    manager = make_manager(db, settings=Settings(questions_per_quiz=3, stale_session_policy='lock'))
    first = manager.create('lead@college.edu', 'InnovWEB')
    clock.advance(10000)
    with pytest.raises(AlreadyAttempted):
        manager.create('lead@college.edu', 'InnovWEB')

    manager.abandon(first.session.id)
    assert manager.create('lead@college.edu', 'InnovWEB').session.id != first.session.id


def test_abandon_only_from_in_progress(manager, add_participant, question_pool):
    add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    abandoned = manager.abandon(started.session.id)
    assert abandoned.status == models.STATUS_ABANDONED
    with pytest.raises(AlreadySubmitted) as exc:
        manager.abandon(started.session.id)
    assert exc.value.extra['status'] == models.STATUS_ABANDONED


def test_status_never_exposes_score(manager, add_participant, question_pool, clock):
    add_participant()
    started = manager.create('lead@college.edu', 'InnovWEB')
    clock.advance(42)
    st = manager.status(started.session.id)
    assert st.status == models.STATUS_IN_PROGRESS
    assert st.remaining_seconds == 558
    assert st.expired is False
    assert not hasattr(st, 'score')


def test_stale_session_submitted_meanwhile_blocks_start(session_factory, make_manager, add_participant,
                                                        question_pool, clock, monkeypatch):
    p = add_participant()
    db_a, db_b = session_factory(), session_factory()
    try:
        a, b = make_manager(db_a), make_manager(db_b)
        started = a.create('lead@college.edu', 'InnovWEB')
        sid = started.session.id
        right = answers_for(started.session, db_a)

        # A read the participant and the open session before B's late submit landed
        participant = a.directory.find_by_email('lead@college.edu')
        open_session = a.get(sid)
        monkeypatch.setattr(a.directory, 'find_by_email', lambda email: participant)
        monkeypatch.setattr(a, '_open_session', lambda participant_id: open_session)

        clock.advance(700)
        b.submit(sid, right)

        with pytest.raises(AlreadyAttempted) as exc:
            a.create('lead@college.edu', 'InnovWEB')
        assert exc.value.extra == {'quiz_taken': True}
    finally:
        db_a.close()
        db_b.close()

    check = session_factory()
    try:
        assert check.query(models.QuizSession).count() == 1
        assert check.get(models.QuizSession, sid).status == models.STATUS_COMPLETED
        assert check.get(models.Participant, p.id).quiz_score == 100
    finally:
        check.close()


def test_failed_restart_keeps_stale_session(db, manager, add_participant, question_pool, clock):
    add_participant()
    first = manager.create('lead@college.edu', 'InnovWEB')
    clock.advance(600 + 60)
    db.query(models.Question).update({'is_active': False})
    db.commit()

    with pytest.raises(NoQuestionsAvailable):
        manager.create('lead@college.edu', 'InnovWEB')

    db.expire_all()
    assert db.get(models.QuizSession, first.session.id).status == models.STATUS_IN_PROGRESS
    assert db.query(models.QuizSession).count() == 1
