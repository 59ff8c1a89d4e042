from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, Engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.models import Base


class DatabaseManager:
    """Owns the SQLAlchemy engine and hands out transactional units of work"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.Database.URL
        self._engine: Engine = self._create_engine(self.database_url)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info(f"[DATABASE_MANAGER] Initialized {self._engine.dialect.name} database")

    @staticmethod
    def _create_engine(database_url: str) -> Engine:
        url = make_url(database_url)
        echo = settings.Database.ECHO

        if url.get_backend_name() == "sqlite":
            connect_args: Dict[str, Any] = {
                "check_same_thread": False,
                "timeout": settings.Database.SQLITE_BUSY_TIMEOUT_SECONDS,
            }
            if url.database in (None, "", ":memory:"):
                # Every session must see the same in-memory database
                return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool, echo=echo)
            return create_engine(database_url, connect_args=connect_args, echo=echo)

        logger.info(f"[DATABASE_MANAGER] Connecting to {url.get_backend_name()} at {url.host}:{url.port}/{url.database}")
        return create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=settings.Database.POOL_SIZE,
            max_overflow=settings.Database.MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=settings.Database.POOL_RECYCLE_SECONDS,
            echo=echo,
        )

    def create_all(self):
        """Create tables and indexes directly from the models (local runs and tests)"""
        Base.metadata.create_all(self._engine)
        logger.info("[DATABASE_MANAGER] Tables created")

    def drop_all(self):
        Base.metadata.drop_all(self._engine)
        logger.info("[DATABASE_MANAGER] Tables dropped")

    def get_engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """One unit of work: commits on success, rolls back on any exception"""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def health_check(self) -> Dict[str, Any]:
        health_status = {"provider": self._engine.dialect.name, "status": "unknown"}
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            health_status["status"] = "healthy"
        except Exception as e:
            health_status["status"] = "error"
            health_status["message"] = str(e)
            logger.exception(f"[DATABASE_MANAGER] Health check failed: {e}")
        return health_status

    def close(self):
        """Close database connections"""
        self._engine.dispose()
        logger.info("[DATABASE_MANAGER] Connections closed")


_database_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """Process-wide manager built lazily from settings"""
    global _database_manager
    if _database_manager is None:
        _database_manager = DatabaseManager()
    return _database_manager
