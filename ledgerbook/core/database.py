"""
Database Configuration
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from ledgerbook.core.config import settings
from ledgerbook.core.exceptions import LedgerError, TransactionAborted

logger = logging.getLogger(__name__)

db_url = settings.database_url

engine = create_async_engine(db_url, echo=settings.DEBUG)

# Objects stay readable after commit; nothing lazy-loads under asyncio
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.
    Ensures the session is closed after use.
    """
    async with SessionLocal() as db:
        yield db


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Transactional scope around a multi-step write.

    Commits when the block exits normally. On any exception the whole
    transaction is rolled back first; domain errors are re-raised as they are
    and anything else surfaces as ``TransactionAborted``.
    """
    try:
        yield db
        await db.commit()
    except LedgerError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Transaction rolled back: {e}", exc_info=True)
        raise TransactionAborted(f"Transaction rolled back: {e}") from e


async def init_db(bind=None):
    """Initialize database tables"""
    # Import all models to register them with Base
    from ledgerbook.models import Organization, Client, Expense, Invoice, InvoiceItem, AuditLog  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
