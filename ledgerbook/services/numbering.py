"""
Invoice Numbering - INV-YYYYMM-NNNN

The sequence restarts every calendar month and is shared by all
organizations. The next number is derived from how many invoices already
carry this month's prefix, soft-deleted ones included, so a number is never
handed out twice. Count-then-insert is not atomic: two concurrent creations
can compute the same number. The unique index on ``invoices.invoice_number``
rejects the second insert and the invoice service retries with a fresh count.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.models import Invoice

logger = logging.getLogger(__name__)

PREFIX = "INV"


def month_prefix(now: datetime) -> str:
    return f"{PREFIX}-{now.year}{now.month:02d}-"


def format_number(prefix: str, sequence: int) -> str:
    return f"{prefix}{sequence:04d}"


class InvoiceNumberService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_with_prefix(self, prefix: str) -> int:
        """
        Count invoices system-wide whose number starts with prefix.

        This is the one query that deliberately bypasses tenant scoping and
        soft-delete filtering: numbers are unique across the whole system.
        """
        stmt = select(func.count(Invoice.id)).where(Invoice.invoice_number.startswith(prefix, autoescape=True))
        return (await self.db.execute(stmt)).scalar() or 0

    async def next_number(self, now: Optional[datetime] = None) -> str:
        """Return the next invoice number for the month of now (sampled once)"""
        now = now or datetime.now()
        prefix = month_prefix(now)
        count = await self.count_with_prefix(prefix)
        number = format_number(prefix, count + 1)
        logger.debug(f"Next invoice number {number} (existing with prefix: {count})")
        return number
