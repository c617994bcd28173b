"""
Database connection management for the sentiment engine.

Provides:
- DatabaseManager: Manages SQLite connections and sessions
- Context managers for transaction handling
- Database initialization
"""

from pathlib import Path
from contextlib import contextmanager
from typing import Optional, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base


def _enable_savepoints(engine) -> None:
    """
    Let SQLAlchemy, not pysqlite, emit BEGIN so SAVEPOINT and ROLLBACK TO behave.

    Entity seeding writes each record inside a nested transaction.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """
    Manages SQLite database connections and sessions.

    The store needs atomic read-then-insert for the idempotency checks of
    the aggregator and graph builder; SQLite serializes writers, and the
    unique constraints on the models reject duplicates from racing writers.

    Example:
        >>> db = DatabaseManager(':memory:')
        >>> db.init_db()
        >>> with db.session() as session:
        ...     entities = session.query(FinanceEntity).all()
    """

    DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "data" / "sentiment_engine.db"

    def __init__(self, db_path: Optional[str] = None, echo: bool = False):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:'.
                    If None, uses default path (data/sentiment_engine.db).
            echo: If True, echo SQL statements to stdout (for debugging).
        """
        if db_path is None:
            db_path = str(self.DEFAULT_DB_PATH)

        if db_path == ":memory:":
            self.db_url = "sqlite:///:memory:"
            # One shared connection so every thread sees the same in-memory database
            self.engine = create_engine(
                self.db_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.db_path = Path(db_path)
            self.db_url = f"sqlite:///{self.db_path}"
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                self.db_url,
                echo=echo,
                connect_args={"check_same_thread": False}
            )

        _enable_savepoints(self.engine)
        self._SessionFactory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_db(self) -> None:
        """
        Create all database tables.

        Safe to call multiple times.
        """
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """
        Drop all database tables.

        WARNING: This will delete all data. Use with caution.
        """
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Commits on success, rolls back and re-raises on error. Writes made by
        an aggregation or graph build therefore land all at once or not at all.

        Yields:
            SQLAlchemy Session object.
        """
        session = self._SessionFactory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """
        Get a new session (manual management required).

        Returns:
            New SQLAlchemy Session object.
        """
        return self._SessionFactory()
