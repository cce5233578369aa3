"""
Organization Service - tenant profile
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.config import settings
from ledgerbook.core.database import atomic
from ledgerbook.core.exceptions import NotFound
from ledgerbook.models import Organization
from ledgerbook.schemas import OrganizationCreate, OrganizationUpdate

logger = logging.getLogger(__name__)


class OrganizationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, organization_id: int) -> Organization:
        organization = await self.db.get(Organization, organization_id)
        if organization is None:
            raise NotFound("Organization not found")
        return organization

    async def create(self, organization_data: OrganizationCreate) -> Organization:
        async with atomic(self.db):
            organization = Organization(
                name=organization_data.name.strip(),
                tax_id=organization_data.tax_id,
                currency=(organization_data.currency.value if organization_data.currency
                          else settings.DEFAULT_CURRENCY),
                address=organization_data.address,
                email=organization_data.email.lower() if organization_data.email else None,
                phone=organization_data.phone,
                website=organization_data.website
            )
            self.db.add(organization)
            await self.db.flush()

        logger.info(f"Organization {organization.id} '{organization.name}' registered")
        return organization

    async def update(self, organization_id: int, organization_data: OrganizationUpdate) -> Organization:
        update_data = organization_data.model_dump(exclude_unset=True, exclude_none=True)
        if "currency" in update_data:
            update_data["currency"] = update_data["currency"].value
        if "email" in update_data:
            update_data["email"] = update_data["email"].lower()

        async with atomic(self.db):
            organization = await self.get_by_id(organization_id)
            for key, value in update_data.items():
                setattr(organization, key, value)
            await self.db.flush()

        return organization
