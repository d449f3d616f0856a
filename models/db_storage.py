import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker

from models.base_model import Base
# Imported for their table definitions on Base.metadata
from models.user import User, Achievement  # noqa: F401
from models.refresh_token import RefreshToken  # noqa: F401
from models.revoked_token import RevokedToken  # noqa: F401
from models.password_reset import PasswordResetToken  # noqa: F401

logger = logging.getLogger(__name__)


class DBStorage:
    """Owns the engine and the scoped session.

    Constructed once by the application factory and handed to the stores;
    there is no module-level instance.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize engine for the given URL"""
        self.__engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self.__session = None
        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    @property
    def engine(self):
        return self.__engine

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        self.__session.rollback()

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and primary key"""
        return self.__session.get(cls, id)

    def ping(self) -> bool:
        """True when the database answers SELECT 1"""
        try:
            with self.__engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("database health check failed: %s", exc)
            return False
        return True

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def dispose(self):
        """Close the session and release pooled connections"""
        self.close()
        self.__engine.dispose()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
