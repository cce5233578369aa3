"""
Client API Routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.database import get_db
from ledgerbook.core.security import AuthContext, get_current_user, can_write
from ledgerbook.schemas import (
    Envelope, Page, MessageResponse, ClientCreate, ClientUpdate, ClientResponse,
    ClientWithInvoices, ClientInvoiceSummary
)
from ledgerbook.services.client_service import ClientService

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("", response_model=Page[ClientResponse])
async def list_clients(
    search: str = None,
    status: str = None,
    page: int = 1,
    limit: int = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    """List clients, searchable by company name, contact person or email"""
    result = await ClientService(db, current_user.organization_id).list(search, status, page, limit)
    return Page[ClientResponse](
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=[ClientResponse.model_validate(client) for client in result.items]
    )


@router.get("/{client_id}", response_model=Envelope[ClientWithInvoices])
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    """Get client with invoice history"""
    client, invoices = await ClientService(db, current_user.organization_id).get_with_invoices(client_id)
    data = ClientWithInvoices(
        **ClientResponse.model_validate(client).model_dump(),
        invoices=[ClientInvoiceSummary.model_validate(invoice) for invoice in invoices]
    )
    return Envelope[ClientWithInvoices](data=data)


@router.post("", response_model=Envelope[ClientResponse], status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    client = await ClientService(db, current_user.organization_id).create(client_data)
    return Envelope[ClientResponse](data=ClientResponse.model_validate(client))


@router.put("/{client_id}", response_model=Envelope[ClientResponse])
async def update_client(
    client_id: int,
    client_data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    client = await ClientService(db, current_user.organization_id).update(client_id, client_data)
    return Envelope[ClientResponse](data=ClientResponse.model_validate(client))


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(can_write)
):
    await ClientService(db, current_user.organization_id).soft_delete(client_id)
    return MessageResponse(message="Client deactivated successfully")
