"""
Report Service - revenue/expense rollups for the dashboard

All figures come from the caller's live (not soft-deleted) invoices and
expenses. Revenue only counts Paid invoices; outstanding covers Sent,
Partial and Overdue. Either the whole summary is produced or an
AggregationError is raised.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union
import logging

from sqlalchemy import desc, extract, func
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.exceptions import AggregationError, LedgerError
from ledgerbook.core.money import to_decimal
from ledgerbook.models import Client, Expense, Invoice, InvoiceStatus, OUTSTANDING_STATUSES
from ledgerbook.schemas import (
    CategoryBreakdownEntry, Charts, ExpenseReport, ExpenseResponse, MonthlyAmount,
    OutstandingInvoices, QuickStats, StatusBreakdownEntry, Summary, TopClient
)
from ledgerbook.services.expense_service import expense_filters
from ledgerbook.services.tenant import ScopedRepository

logger = logging.getLogger(__name__)

PAID = InvoiceStatus.PAID.value
TOP_CLIENTS_LIMIT = 5


def month_bounds(day: date):
    """First day of day's month and first day of the following month"""
    start = day.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def year_bounds(day: date):
    return day.replace(month=1, day=1), day.replace(year=day.year + 1, month=1, day=1)


class ReportService:
    def __init__(self, db: AsyncSession, organization_id: int):
        self.db = db
        self.organization_id = organization_id
        self.invoices = ScopedRepository(db, Invoice, organization_id)
        self.expenses = ScopedRepository(db, Expense, organization_id)

    async def summarize(self, as_of: Union[datetime, date, None] = None) -> Summary:
        as_of = as_of or datetime.now()
        today = as_of.date() if isinstance(as_of, datetime) else as_of

        try:
            return await self._summarize(today)
        except LedgerError:
            raise
        except Exception as e:
            logger.error(f"Summary failed for organization={self.organization_id}: {e}", exc_info=True)
            raise AggregationError("Failed to build report summary") from e

    async def _summarize(self, today: date) -> Summary:
        month_start, next_month = month_bounds(today)
        year_start, next_year = year_bounds(today)
        paid = Invoice.status == PAID

        total_revenue = await self._sum_invoices(paid)
        monthly_revenue = await self._sum_invoices(
            paid, Invoice.issue_date >= month_start, Invoice.issue_date < next_month
        )
        total_expenses = await self._sum_expenses()
        monthly_expenses = await self._sum_expenses(
            Expense.expense_date >= month_start, Expense.expense_date < next_month
        )

        outstanding_stmt = self.invoices.select(
            func.coalesce(func.sum(Invoice.total_amount), 0),
            func.count(Invoice.id)
        ).where(Invoice.status.in_(OUTSTANDING_STATUSES))
        outstanding_amount, outstanding_count = (await self.db.execute(outstanding_stmt)).one()

        return Summary(
            quick_stats=QuickStats(
                total_revenue=total_revenue,
                total_expenses=total_expenses,
                net_profit=total_revenue - total_expenses,
                monthly_revenue=monthly_revenue,
                monthly_expenses=monthly_expenses,
                monthly_profit=monthly_revenue - monthly_expenses,
                outstanding_invoices=OutstandingInvoices(
                    amount=to_decimal(outstanding_amount),
                    count=outstanding_count or 0
                )
            ),
            top_clients=await self._top_clients(),
            status_breakdown=await self._status_breakdown(),
            charts=Charts(
                revenue_by_month=await self._invoice_months(year_start, next_year),
                expenses_by_month=await self._expense_months(year_start, next_year)
            )
        )

    async def _sum_invoices(self, *criteria) -> Decimal:
        stmt = self.invoices.select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(*criteria)
        return to_decimal((await self.db.execute(stmt)).scalar())

    async def _sum_expenses(self, *criteria) -> Decimal:
        stmt = self.expenses.select(func.coalesce(func.sum(Expense.amount), 0)).where(*criteria)
        return to_decimal((await self.db.execute(stmt)).scalar())

    async def _top_clients(self) -> List[TopClient]:
        """Paid revenue per client, highest first; ties go to the lower client id"""
        revenue = func.sum(Invoice.total_amount).label("total_revenue")
        stmt = (
            self.invoices.select(Invoice.client_id, Client.company_name, Client.email, revenue)
            .select_from(Invoice)
            .join(Client, Client.id == Invoice.client_id)
            .where(Invoice.status == PAID)
            .group_by(Invoice.client_id, Client.company_name, Client.email)
            .order_by(desc(revenue), Invoice.client_id)
            .limit(TOP_CLIENTS_LIMIT)
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            TopClient(
                client_id=row.client_id,
                company_name=row.company_name,
                email=row.email,
                total_revenue=to_decimal(row.total_revenue)
            )
            for row in rows
        ]

    async def _status_breakdown(self) -> List[StatusBreakdownEntry]:
        stmt = (
            self.invoices.select(
                Invoice.status,
                func.count(Invoice.id).label("invoice_count"),
                func.coalesce(func.sum(Invoice.total_amount), 0).label("total")
            )
            .group_by(Invoice.status)
            .order_by(Invoice.status)
        )
        rows = (await self.db.execute(stmt)).all()
        return [
            StatusBreakdownEntry(status=row.status, count=row.invoice_count, total=to_decimal(row.total))
            for row in rows
        ]

    async def _invoice_months(self, start: date, end: date) -> List[MonthlyAmount]:
        """Paid revenue per month in [start, end); months without revenue are left out"""
        year = extract("year", Invoice.issue_date).label("year")
        month = extract("month", Invoice.issue_date).label("month")
        stmt = (
            self.invoices.select(year, month, func.sum(Invoice.total_amount).label("amount"))
            .where(Invoice.status == PAID, Invoice.issue_date >= start, Invoice.issue_date < end)
            .group_by(year, month)
            .order_by(year, month)
        )
        return self._months(await self.db.execute(stmt))

    async def _expense_months(self, start: date, end: date) -> List[MonthlyAmount]:
        year = extract("year", Expense.expense_date).label("year")
        month = extract("month", Expense.expense_date).label("month")
        stmt = (
            self.expenses.select(year, month, func.sum(Expense.amount).label("amount"))
            .where(Expense.expense_date >= start, Expense.expense_date < end)
            .group_by(year, month)
            .order_by(year, month)
        )
        return self._months(await self.db.execute(stmt))

    @staticmethod
    def _months(result) -> List[MonthlyAmount]:
        return [
            MonthlyAmount(year=int(row.year), month=int(row.month), amount=to_decimal(row.amount))
            for row in result.all()
        ]

    async def expense_report(
        self,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> ExpenseReport:
        """Filtered expense listing with a per-category breakdown and grand total"""
        criteria = expense_filters(category, start_date, end_date)

        try:
            expenses = await self.expenses.list(
                *criteria, order_by=[Expense.expense_date.desc(), Expense.id.desc()]
            )
            total = func.sum(Expense.amount).label("total")
            stmt = (
                self.expenses.select(Expense.category, total, func.count(Expense.id).label("expense_count"))
                .where(*criteria)
                .group_by(Expense.category)
                .order_by(desc(total), Expense.category)
            )
            rows = (await self.db.execute(stmt)).all()
        except Exception as e:
            logger.error(f"Expense report failed for organization={self.organization_id}: {e}", exc_info=True)
            raise AggregationError("Failed to build expense report") from e

        return ExpenseReport(
            expenses=[ExpenseResponse.model_validate(expense) for expense in expenses],
            category_breakdown=[
                CategoryBreakdownEntry(category=row.category, total=to_decimal(row.total), count=row.expense_count)
                for row in rows
            ],
            grand_total=sum((to_decimal(expense.amount) for expense in expenses), Decimal("0"))
        )
