"""
Expense API Routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date

from ledgerbook.core.database import get_db
from ledgerbook.core.security import AuthContext, get_current_user, can_write
from ledgerbook.schemas import (
    Envelope, MessageResponse, ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpensePage
)
from ledgerbook.services.expense_service import ExpenseService

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=ExpensePage)
async def list_expenses(
    category: str = None,
    start_date: date = None,
    end_date: date = None,
    page: int = 1,
    limit: int = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    """List expenses with the current month's total"""
    service = ExpenseService(db, current_user.organization_id)
    result = await service.list(category, start_date, end_date, page, limit)
    return ExpensePage(
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=[ExpenseResponse.model_validate(expense) for expense in result.items],
        monthly_total=await service.monthly_total()
    )


@router.post("", response_model=Envelope[ExpenseResponse], status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    expense = await ExpenseService(db, current_user.organization_id).create(expense_data)
    return Envelope[ExpenseResponse](data=ExpenseResponse.model_validate(expense))


@router.get("/{expense_id}", response_model=Envelope[ExpenseResponse])
async def get_expense(
    expense_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    expense = await ExpenseService(db, current_user.organization_id).get_by_id(expense_id)
    return Envelope[ExpenseResponse](data=ExpenseResponse.model_validate(expense))


@router.put("/{expense_id}", response_model=Envelope[ExpenseResponse])
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    expense = await ExpenseService(db, current_user.organization_id).update(expense_id, expense_data)
    return Envelope[ExpenseResponse](data=ExpenseResponse.model_validate(expense))


@router.delete("/{expense_id}", response_model=MessageResponse)
async def delete_expense(
    expense_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    await ExpenseService(db, current_user.organization_id).soft_delete(expense_id)
    return MessageResponse(message="Expense deleted successfully")
