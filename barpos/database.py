"""Database configuration, initialization and the unit-of-work scope."""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

from barpos.exceptions import PosError, StorageError

logger = logging.getLogger(__name__)

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine_options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if not database_uri.startswith('sqlite'):
        engine_options.update(pool_size=10, max_overflow=20)

    engine = create_engine(database_uri, **engine_options)

    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models metadata."""
    from barpos import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


@contextmanager
def unit_of_work(session):
    """
    Run a block of writes as one atomic unit.

    Commits when the block finishes. Any error rolls back every write made
    inside the block:
    - PosError (validation/conflict/not found) is re-raised as is.
    - IntegrityError is re-raised so callers can map constraint hits
      (idempotency key, open cash session) to domain answers.
    - Any other SQLAlchemyError becomes an opaque StorageError.
    - Anything else is re-raised after the rollback.
    """
    try:
        yield session
        session.commit()
    except PosError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Unit of work rolled back: {e}")
        raise StorageError() from e
    except Exception:
        session.rollback()
        raise
