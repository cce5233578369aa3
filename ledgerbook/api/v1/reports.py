"""
Report API Routes
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date

from ledgerbook.core.database import get_db
from ledgerbook.core.security import AuthContext, get_current_user
from ledgerbook.schemas import Envelope, Summary, ExpenseReport
from ledgerbook.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/summary", response_model=Envelope[Summary])
async def get_summary(
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    """Dashboard figures: quick stats, top clients, status breakdown, monthly charts"""
    summary = await ReportService(db, current_user.organization_id).summarize()
    return Envelope[Summary](data=summary)


@router.get("/expenses", response_model=Envelope[ExpenseReport])
async def get_expense_report(
    category: str = None,
    start_date: date = None,
    end_date: date = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    report = await ReportService(db, current_user.organization_id).expense_report(
        category=category,
        start_date=start_date,
        end_date=end_date
    )
    return Envelope[ExpenseReport](data=report)
