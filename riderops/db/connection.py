import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from riderops.config.riderops_config import RiderOpsConfig

# Configure logging
logger = logging.getLogger(__name__)

Base = declarative_base()

MEMORY_URL = 'sqlite:///:memory:'


class Database:
    """
    Database connection manager for RiderOps

    Handles SQLite (file or in-memory) and PostgreSQL connections with
    connection pooling.
    """

    def __init__(self, config: Optional[RiderOpsConfig] = None, url: Optional[str] = None):
        """
        Initialize database connection

        Args:
            config: RiderOpsConfig instance. If None, uses the singleton.
            url: Explicit SQLAlchemy URL, overriding the database section
        """
        self.config = config or RiderOpsConfig()
        self.url = url or self._build_url()
        self.engine = self._create_engine(self.url)
        self.Session = sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False
        )

    def _build_url(self) -> str:
        """Build a SQLAlchemy URL from the database configuration"""
        db_config = self.config.get('database', {})
        db_type = db_config.get('type', 'sqlite')

        if db_type == 'sqlite':
            db_path = db_config.get('path', 'riderops.db')
            if db_path == ':memory:':
                return MEMORY_URL
            db_path = Path(db_path)
            # Ensure directory exists
            db_path.parent.mkdir(parents=True, exist_ok=True)
            return f'sqlite:///{db_path}'

        if db_type in ('postgresql', 'postgres'):
            postgres_config = db_config.get('postgres', {})
            host = postgres_config.get('host', 'localhost')
            port = postgres_config.get('port', 5432)
            database = postgres_config.get('database', 'riderops')
            # URL-encode user and password to handle special characters
            user = quote_plus(str(postgres_config.get('user', 'postgres')))
            password = quote_plus(str(postgres_config.get('password', '')))
            sslmode = postgres_config.get('sslmode', 'prefer')
            return f'postgresql://{user}:{password}@{host}:{port}/{database}?sslmode={sslmode}'

        raise ValueError(f"Unsupported database type: {db_type}")

    def _create_engine(self, url: str) -> Engine:
        if url == MEMORY_URL:
            # One shared connection, otherwise each session sees an empty database
            engine = create_engine(
                url,
                poolclass=StaticPool,
                connect_args={'check_same_thread': False}
            )
        elif url.startswith('sqlite'):
            engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                connect_args={
                    'timeout': 30,  # Connection timeout in seconds
                    'check_same_thread': False  # Allow multiple threads
                }
            )
        else:
            engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                pool_pre_ping=True
            )

        if url.startswith('sqlite'):
            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        logger.debug(f"Created database engine for {engine.url.render_as_string(hide_password=True)}")
        return engine

    def session(self) -> Session:
        """
        Get a database session

        Returns:
            SQLAlchemy session
        """
        return self.Session()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """
        Get a database session with transaction management

        Yields:
            SQLAlchemy session
        """
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database transaction error: {str(e)}")
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all tables"""
        # Register models on the metadata
        from riderops.db import models  # noqa: F401
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")

    def drop_tables(self) -> None:
        """Drop all tables"""
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Release pooled connections"""
        self.engine.dispose()
