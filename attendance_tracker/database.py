import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from attendance_tracker.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    def __init__(self):
        self.engine = None
        self.async_session = None
        self.is_connected = False
        self.url = None

    async def connect(self, url: Optional[str] = None):
        """Connect to the embedded SQLite database"""
        try:
            self.url = url or settings.DATABASE_URL

            self.engine = create_async_engine(
                self.url,
                echo=settings.SQL_ECHO,
            )

            if self.engine.dialect.name == "sqlite":
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            self.async_session = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            self.is_connected = True
            logger.info(f"Connected to database: {self.url}")
            return True

        except Exception as e:
            logger.error(f"Error connecting to database {self.url}: {e}")
            self.is_connected = False
            return False

    async def disconnect(self):
        """Disconnect from database"""
        if self.engine:
            await self.engine.dispose()
            self.is_connected = False
            logger.info("Database connection closed")

    def get_session(self) -> AsyncSession:
        """Get async database session"""
        if not self.is_connected:
            raise RuntimeError("Database is not connected. Call connect() first.")
        return self.async_session()

    async def create_tables(self):
        """Create all tables defined in Base metadata"""
        # Model modules register themselves on Base.metadata when imported
        from attendance_tracker.models import attendance, student, user  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created successfully")
        except Exception as e:
            logger.error(f"Error creating tables: {e}")
            raise

    async def drop_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def check_connection(self) -> bool:
        if not self.is_connected:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False


@asynccontextmanager
async def transaction(session: AsyncSession):
    """
    Scoped unit of work on an existing session.

    Everything executed inside the block is committed together when the
    block exits normally; any exception rolls the whole block back and is
    re-raised.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise


# Create global database instance
database = Database()
