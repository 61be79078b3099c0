import os
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)

# Read configuration (config.json) or fall back to environment variables
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
CONFIG_PATH = os.path.join(ROOT, 'config.json')

EVENTS = ('InnovWEB', 'SensorShowDown', 'IdeaArena', 'Error Erase')

MIN_DURATION_SECONDS = 600
MAX_DURATION_SECONDS = 1200

STALE_SESSION_POLICIES = ('expire', 'resume', 'lock')


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    create_tables: bool = False
    questions_per_quiz: int = 10
    default_duration_seconds: int = 600
    event_durations: Dict[str, int] = field(default_factory=dict)
    stale_session_policy: str = 'expire'
    abandon_grace_seconds: int = 60
    admin_username: str = 'admin'
    admin_password: str = 'admin'

    def duration_for(self, event: str) -> int:
        """Total quiz time in seconds for an event."""
        return self.event_durations.get(event, self.default_duration_seconds)


def _clamp_duration(name, value):
    value = int(value)
    if value < MIN_DURATION_SECONDS or value > MAX_DURATION_SECONDS:
        clamped = min(max(value, MIN_DURATION_SECONDS), MAX_DURATION_SECONDS)
        logger.warning('Duration %s=%s outside %s..%s, using %s',
                       name, value, MIN_DURATION_SECONDS, MAX_DURATION_SECONDS, clamped)
        return clamped
    return value


def _database_url(cfg):
    db_url = os.environ.get('DATABASE_URL') or cfg.get('database_url')
    if not db_url and cfg.get('postgres'):
        pg = cfg['postgres']
        user = os.environ.get('POSTGRES_USER') or pg.get('user') or 'postgres'
        pw = os.environ.get('POSTGRES_PASSWORD') or pg.get('password') or 'postgres'
        host = os.environ.get('POSTGRES_HOST') or pg.get('host') or 'localhost'
        port = os.environ.get('POSTGRES_PORT') or pg.get('port') or 5432
        name = os.environ.get('POSTGRES_DB') or pg.get('db') or 'quizdb'
        # URL-encode username and password to avoid invalid bytes in DSN
        user_q = quote_plus(str(user))
        pw_q = quote_plus(str(pw))
        db_url = f"postgresql+psycopg2://{user_q}:{pw_q}@{host}:{port}/{name}"
    return db_url


def _setting(env_name, cfg_value, default):
    # zero is a valid value, so only missing/empty means "use the default"
    value = os.environ.get(env_name)
    if value is None or value == '':
        value = cfg_value
    return default if value is None else value


def load_config(path=CONFIG_PATH) -> Settings:
    cfg = {}
    if os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                cfg = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning('Could not read %s: %s', path, e)
            cfg = {}
    quiz = cfg.get('quiz', {})

    default_duration = _clamp_duration(
        'default',
        _setting('QUIZ_DEFAULT_DURATION_SECONDS', quiz.get('default_duration_seconds'), 600),
    )
    event_durations = {}
    for event, seconds in (quiz.get('event_durations') or {}).items():
        if event not in EVENTS:
            logger.warning('Ignoring duration for unknown event %r', event)
            continue
        event_durations[event] = _clamp_duration(event, seconds)

    policy = os.environ.get('QUIZ_STALE_SESSION_POLICY') or quiz.get('stale_session_policy') or 'expire'
    if policy not in STALE_SESSION_POLICIES:
        logger.warning('Unknown stale session policy %r, using expire', policy)
        policy = 'expire'

    questions_per_quiz = int(_setting('QUIZ_QUESTIONS_PER_QUIZ', quiz.get('questions_per_quiz'), 10))
    if questions_per_quiz < 1:
        logger.warning('questions_per_quiz=%s must be at least 1, using 10', questions_per_quiz)
        questions_per_quiz = 10

    admin = cfg.get('admin', {})
    return Settings(
        database_url=_database_url(cfg),
        create_tables=bool(os.environ.get('CREATE_TABLES') or cfg.get('create_tables')),
        questions_per_quiz=questions_per_quiz,
        default_duration_seconds=default_duration,
        event_durations=event_durations,
        stale_session_policy=policy,
        abandon_grace_seconds=int(_setting('QUIZ_ABANDON_GRACE_SECONDS', quiz.get('abandon_grace_seconds'), 60)),
        admin_username=os.environ.get('ADMIN_USERNAME') or admin.get('username') or 'admin',
        admin_password=os.environ.get('ADMIN_PASSWORD') or admin.get('password') or 'admin',
    )


CFG = load_config()
