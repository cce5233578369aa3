"""
Invoice API Routes
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date

from ledgerbook.core.database import get_db
from ledgerbook.core.security import AuthContext, get_current_user, can_write
from ledgerbook.schemas import (
    Envelope, Page, MessageResponse, InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate,
    InvoiceListItem, InvoiceWithItems
)
from ledgerbook.services.invoice_service import InvoiceService
from ledgerbook.services.pdf_renderer import render_invoice_pdf

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def get_pdf_renderer():
    """Renderer dependency; replaced in tests"""
    return render_invoice_pdf


def invoice_service(db: AsyncSession, user: AuthContext) -> InvoiceService:
    return InvoiceService(db, user.organization_id, user_id=user.user_id)


@router.get("", response_model=Page[InvoiceListItem])
async def list_invoices(
    status: str = None,
    client_id: int = None,
    start_date: date = None,
    end_date: date = None,
    page: int = 1,
    limit: int = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    """List invoices, newest first"""
    result = await invoice_service(db, current_user).list(
        status=status,
        client_id=client_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit
    )
    return Page[InvoiceListItem](
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=[InvoiceListItem.model_validate(invoice) for invoice in result.items]
    )


@router.post("", response_model=Envelope[InvoiceWithItems], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    """Create an invoice; totals and number are assigned by the server"""
    invoice = await invoice_service(db, current_user).create(invoice_data)
    return Envelope[InvoiceWithItems](data=InvoiceWithItems.model_validate(invoice))


@router.get("/{invoice_id}", response_model=Envelope[InvoiceWithItems])
async def get_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    invoice = await invoice_service(db, current_user).get_by_id(invoice_id)
    return Envelope[InvoiceWithItems](data=InvoiceWithItems.model_validate(invoice))


@router.put("/{invoice_id}", response_model=Envelope[InvoiceWithItems])
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    """Update items, due date, status, notes or tax rate"""
    invoice = await invoice_service(db, current_user).update(invoice_id, invoice_data)
    return Envelope[InvoiceWithItems](data=InvoiceWithItems.model_validate(invoice))


@router.patch("/{invoice_id}/status", response_model=Envelope[InvoiceWithItems])
async def update_invoice_status(
    invoice_id: int,
    status_data: InvoiceStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    invoice = await invoice_service(db, current_user).update_status(invoice_id, status_data.status)
    return Envelope[InvoiceWithItems](data=InvoiceWithItems.model_validate(invoice))


@router.get("/{invoice_id}/download")
async def download_invoice_pdf(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user),
    renderer=Depends(get_pdf_renderer)
):
    """Render the invoice to PDF and send the file"""
    invoice, path = await invoice_service(db, current_user).render_pdf(invoice_id, renderer)
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=f"invoice-{invoice.invoice_number}.pdf"
    )


@router.delete("/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    await invoice_service(db, current_user).soft_delete(invoice_id)
    return MessageResponse(message="Invoice deleted (soft)")
