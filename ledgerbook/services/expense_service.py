"""
Expense Service - Manage organization expenses
"""
from typing import Optional
from datetime import date
from decimal import Decimal
import logging

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.config import settings
from ledgerbook.core.database import atomic
from ledgerbook.core.exceptions import NotFound, ValidationError
from ledgerbook.core.money import to_decimal
from ledgerbook.models import Expense, ExpenseCategory
from ledgerbook.schemas import ExpenseCreate, ExpenseUpdate
from ledgerbook.services.tenant import PageResult, ScopedRepository, paginate

logger = logging.getLogger(__name__)

EXPENSE_CATEGORIES = [c.value for c in ExpenseCategory]


def validate_category(category) -> str:
    value = getattr(category, "value", category)
    if value not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(EXPENSE_CATEGORIES)}")
    return value


def validate_amount(amount) -> Decimal:
    amount = to_decimal(amount)
    if amount < 0:
        raise ValidationError("Amount cannot be negative")
    return amount


def expense_filters(category: Optional[str] = None, start_date: Optional[date] = None,
                    end_date: Optional[date] = None) -> list:
    """Criteria shared by the expense listing and the expense report"""
    criteria = []
    if category:
        criteria.append(Expense.category == validate_category(category))
    if start_date:
        criteria.append(Expense.expense_date >= start_date)
    if end_date:
        criteria.append(Expense.expense_date <= end_date)
    return criteria


class ExpenseService:
    def __init__(self, db: AsyncSession, organization_id: int):
        self.db = db
        self.organization_id = organization_id
        self.expenses = ScopedRepository(db, Expense, organization_id)

    async def get_by_id(self, expense_id: int, include_deleted: bool = False) -> Expense:
        repo = self.expenses.with_deleted() if include_deleted else self.expenses
        expense = await repo.get(expense_id)
        if expense is None:
            raise NotFound("Expense not found")
        return expense

    async def list(
        self,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        include_deleted: bool = False
    ) -> PageResult[Expense]:
        """Get expenses with optional filters, newest expense date first"""
        repo = self.expenses.with_deleted() if include_deleted else self.expenses
        criteria = expense_filters(category, start_date, end_date)
        page, limit, offset = paginate(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        total = await repo.count(*criteria)
        expenses = await repo.list(
            *criteria,
            order_by=[Expense.expense_date.desc(), Expense.id.desc()],
            offset=offset,
            limit=limit
        )
        return PageResult(items=expenses, total=total, page=page, limit=limit)

    async def monthly_total(self, today: Optional[date] = None) -> Decimal:
        """Sum of all live expenses dated in the current calendar month"""
        today = today or date.today()
        month_start = today.replace(day=1)
        stmt = self.expenses.select(func.coalesce(func.sum(Expense.amount), 0)).where(
            Expense.expense_date >= month_start
        )
        return to_decimal((await self.db.execute(stmt)).scalar())

    async def create(self, expense_data: ExpenseCreate) -> Expense:
        async with atomic(self.db):
            expense = Expense(
                category=validate_category(expense_data.category),
                amount=validate_amount(expense_data.amount),
                expense_date=expense_data.expense_date or date.today(),
                description=expense_data.description,
                receipt_url=expense_data.receipt_url
            )
            self.expenses.add(expense)
            await self.db.flush()

        logger.info(f"Expense {expense.id} {expense.category} {expense.amount} recorded for organization={self.organization_id}")
        return expense

    async def update(self, expense_id: int, expense_data: ExpenseUpdate) -> Expense:
        """Update only the provided fields"""
        update_data = expense_data.model_dump(exclude_unset=True, exclude_none=True)
        if "category" in update_data:
            update_data["category"] = validate_category(update_data["category"])
        if "amount" in update_data:
            update_data["amount"] = validate_amount(update_data["amount"])

        async with atomic(self.db):
            expense = await self.get_by_id(expense_id)
            for key, value in update_data.items():
                setattr(expense, key, value)
            await self.db.flush()

        return expense

    async def soft_delete(self, expense_id: int) -> Expense:
        async with atomic(self.db):
            expense = await self.expenses.soft_delete(expense_id)
            if expense is None:
                raise NotFound("Expense not found")

        logger.info(f"Expense {expense_id} soft-deleted")
        return expense
