"""
Client Service - organization's customers
"""
from typing import Optional
import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.config import settings
from ledgerbook.core.database import atomic
from ledgerbook.core.exceptions import DuplicateConstraint, NotFound, ValidationError
from ledgerbook.models import Client, ClientStatus, Invoice
from ledgerbook.schemas import ClientCreate, ClientUpdate
from ledgerbook.services.tenant import PageResult, ScopedRepository, paginate

logger = logging.getLogger(__name__)

CLIENT_STATUSES = [s.value for s in ClientStatus]


class ClientService:
    def __init__(self, db: AsyncSession, organization_id: int):
        self.db = db
        self.organization_id = organization_id
        self.clients = ScopedRepository(db, Client, organization_id)
        self.invoices = ScopedRepository(db, Invoice, organization_id)

    async def get_by_id(self, client_id: int, include_deleted: bool = False) -> Client:
        repo = self.clients.with_deleted() if include_deleted else self.clients
        client = await repo.get(client_id)
        if client is None:
            raise NotFound("Client not found")
        return client

    async def get_with_invoices(self, client_id: int):
        """Client plus its invoice history, newest first"""
        client = await self.get_by_id(client_id)
        invoices = await self.invoices.list(
            Invoice.client_id == client.id,
            order_by=[Invoice.created_at.desc(), Invoice.id.desc()]
        )
        return client, invoices

    async def list(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        include_deleted: bool = False
    ) -> PageResult[Client]:
        repo = self.clients.with_deleted() if include_deleted else self.clients
        criteria = []
        if status:
            if status not in CLIENT_STATUSES:
                raise ValidationError(f"Status must be one of: {', '.join(CLIENT_STATUSES)}")
            criteria.append(Client.status == status)
        if search:
            pattern = f"%{search}%"
            criteria.append(or_(
                Client.company_name.ilike(pattern),
                Client.contact_person.ilike(pattern),
                Client.email.ilike(pattern)
            ))

        page, limit, offset = paginate(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        total = await repo.count(*criteria)
        clients = await repo.list(
            *criteria,
            order_by=[Client.created_at.desc(), Client.id.desc()],
            offset=offset,
            limit=limit
        )
        return PageResult(items=clients, total=total, page=page, limit=limit)

    async def _ensure_unique_name(self, company_name: str, exclude_id: Optional[int] = None):
        criteria = [func.lower(Client.company_name) == company_name.strip().lower()]
        if exclude_id is not None:
            criteria.append(Client.id != exclude_id)
        if await self.clients.first(*criteria):
            raise DuplicateConstraint("Company name already exists in your organization")

    async def _flush(self):
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateConstraint("Company name already exists in your organization") from e

    async def create(self, client_data: ClientCreate) -> Client:
        async with atomic(self.db):
            await self._ensure_unique_name(client_data.company_name)
            client = Client(
                company_name=client_data.company_name,
                contact_person=client_data.contact_person,
                email=client_data.email.lower(),
                phone=client_data.phone,
                address=client_data.address,
                notes=client_data.notes,
                status=ClientStatus.ACTIVE.value
            )
            self.clients.add(client)
            await self._flush()

        logger.info(f"Client {client.id} '{client.company_name}' created for organization={self.organization_id}")
        return client

    async def update(self, client_id: int, client_data: ClientUpdate) -> Client:
        update_data = client_data.model_dump(exclude_unset=True, exclude_none=True)

        async with atomic(self.db):
            client = await self.get_by_id(client_id)
            if "company_name" in update_data:
                update_data["company_name"] = update_data["company_name"].strip()
                await self._ensure_unique_name(update_data["company_name"], exclude_id=client.id)
            if "email" in update_data:
                update_data["email"] = update_data["email"].lower()

            for key, value in update_data.items():
                setattr(client, key, value)
            await self._flush()

        return client

    async def soft_delete(self, client_id: int) -> Client:
        """Deactivate: status inactive plus deletion marker"""
        async with atomic(self.db):
            client = await self.clients.soft_delete(client_id, status=ClientStatus.INACTIVE.value)
            if client is None:
                raise NotFound("Client not found")

        logger.info(f"Client {client_id} deactivated")
        return client
