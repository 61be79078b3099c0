import os
import time
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from passlib.context import CryptContext
from .config import CFG, ROOT
from .models import Base, AdminUser

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def make_engine(url):
    """Create an engine; sqlite URLs get the connect args FastAPI's threads need."""
    if url.startswith('sqlite'):
        kwargs = {'connect_args': {"check_same_thread": False}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            # one shared connection, otherwise every session sees an empty database
            kwargs['poolclass'] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def _sqlite_url():
    db_path = os.path.abspath(os.path.join(ROOT, 'quiz.db'))
    return f"sqlite:///{db_path}"


if CFG.database_url:
    # try to use Postgres; if driver missing, fall back to sqlite
    try:
        engine = make_engine(CFG.database_url)
    except (SQLAlchemyError, ImportError) as e:
        logger.warning('Could not create engine for configured database: %s', e)
        logger.warning('Falling back to local SQLite database.')
        engine = make_engine(_sqlite_url())
else:
    engine = make_engine(_sqlite_url())

SessionLocal = sessionmaker(bind=engine, autoflush=False)


def ensure_admin(db, username, password):
    """Create the admin user if missing. Returns True when a user was created."""
    admin = db.query(AdminUser).filter_by(username=username).first()
    if admin:
        return False
    db.add(AdminUser(username=username, password_hash=pwd_context.hash(password)))
    db.commit()
    return True


def init_database(bind=None, session_factory=None, settings=CFG):
    """Create tables (when configured) and the default admin, retrying while the database starts."""
    bind = bind or engine
    session_factory = session_factory or SessionLocal
    attempts = 0
    max_attempts = 12
    wait_seconds = 2
    while attempts < max_attempts:
        db = None
        try:
            if settings.create_tables or bind.dialect.name == 'sqlite':
                logger.info('Ensuring database tables exist...')
                Base.metadata.create_all(bind)
            db = session_factory()
            if ensure_admin(db, settings.admin_username, settings.admin_password):
                logger.info('Created admin user %s', settings.admin_username)
            logger.info('DB initialization complete')
            return True
        except OperationalError as e:
            attempts += 1
            logger.warning('Database not ready yet (attempt %s/%s): %s', attempts, max_attempts, e)
            time.sleep(wait_seconds)
        except SQLAlchemyError as e:
            if db is not None:
                db.rollback()
            logger.error('DB init error: %s', e)
            return False
        finally:
            if db is not None:
                db.close()
    logger.error('Giving up on database initialization after %s attempts', max_attempts)
    return False
