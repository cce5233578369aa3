"""
Organization API Routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.core.database import get_db
from ledgerbook.core.security import AuthContext, RoleChecker, get_current_user
from ledgerbook.schemas import Envelope, OrganizationCreate, OrganizationUpdate, OrganizationResponse
from ledgerbook.services.organization_service import OrganizationService

router = APIRouter(prefix="/organization", tags=["Organization"])

require_admin = RoleChecker(["admin"])


@router.post("/register", response_model=Envelope[OrganizationResponse], status_code=status.HTTP_201_CREATED)
async def register_organization(
    organization_data: OrganizationCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new organization (tenant)"""
    organization = await OrganizationService(db).create(organization_data)
    return Envelope[OrganizationResponse](data=OrganizationResponse.model_validate(organization))


@router.get("", response_model=Envelope[OrganizationResponse])
async def get_organization(
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(get_current_user)
):
    organization = await OrganizationService(db).get_by_id(current_user.organization_id)
    return Envelope[OrganizationResponse](data=OrganizationResponse.model_validate(organization))


@router.put("", response_model=Envelope[OrganizationResponse])
async def update_organization(
    organization_data: OrganizationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthContext = Depends(require_admin)
):
    organization = await OrganizationService(db).update(current_user.organization_id, organization_data)
    return Envelope[OrganizationResponse](data=OrganizationResponse.model_validate(organization))
