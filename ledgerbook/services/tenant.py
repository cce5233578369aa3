"""
Tenant Isolation - organization-scoped data access

Every read and write against an organization-owned table goes through a
``ScopedRepository``. The repository adds ``organization_id = <caller>`` and
``deleted_at IS NULL`` to every statement it builds, so a service cannot
forget either filter. Soft-deleted rows are only visible when the repository
is constructed with ``include_deleted=True``.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerbook.models import TenantScopedMixin

ModelT = TypeVar("ModelT", bound=TenantScopedMixin)


class ScopedRepository(Generic[ModelT]):
    """Data access for one model, confined to one organization"""

    def __init__(
        self,
        db: AsyncSession,
        model: Type[ModelT],
        organization_id: int,
        include_deleted: bool = False
    ):
        if organization_id is None:
            raise ValueError("organization_id is required for scoped access")
        self.db = db
        self.model = model
        self.organization_id = organization_id
        self.include_deleted = include_deleted

    def with_deleted(self) -> "ScopedRepository[ModelT]":
        """Same scope, soft-deleted rows included"""
        return ScopedRepository(self.db, self.model, self.organization_id, include_deleted=True)

    def scope(self) -> list:
        """Criteria every statement on this repository carries"""
        criteria = [self.model.organization_id == self.organization_id]
        if not self.include_deleted:
            criteria.append(self.model.deleted_at.is_(None))
        return criteria

    def select(self, *columns) -> Select:
        stmt = select(*columns) if columns else select(self.model)
        return stmt.where(*self.scope())

    async def get(self, record_id: int, *options) -> Optional[ModelT]:
        stmt = self.select().where(self.model.id == record_id)
        if options:
            stmt = stmt.options(*options)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def first(self, *criteria) -> Optional[ModelT]:
        result = await self.db.execute(self.select().where(*criteria))
        return result.scalars().first()

    async def list(self, *criteria, order_by=None, offset: int = None, limit: int = None, options=()) -> List[ModelT]:
        stmt = self.select().where(*criteria)
        if options:
            stmt = stmt.options(*options)
        if order_by is not None:
            stmt = stmt.order_by(*order_by) if isinstance(order_by, (list, tuple)) else stmt.order_by(order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *criteria) -> int:
        stmt = self.select(func.count(self.model.id)).where(*criteria)
        return (await self.db.execute(stmt)).scalar() or 0

    def add(self, record: ModelT) -> ModelT:
        """Attach a new record to this organization"""
        record.organization_id = self.organization_id
        self.db.add(record)
        return record

    async def soft_delete(self, record_id: int, **changes) -> Optional[ModelT]:
        record = await self.get(record_id)
        if record is None:
            return None
        record.deleted_at = datetime.utcnow()
        for key, value in changes.items():
            setattr(record, key, value)
        await self.db.flush()
        return record


def paginate(page: Optional[int], limit: Optional[int], default_limit: int, max_limit: int):
    """Normalize page/limit query values; returns (page, limit, offset)"""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    limit = min(limit, max_limit)
    return page, limit, (page - 1) * limit


def page_count(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0


@dataclass
class PageResult(Generic[ModelT]):
    items: List[ModelT]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return page_count(self.total, self.limit)
