"""
Audit Logging Service
Records invoice lifecycle changes in the same transaction as the change
"""
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List, Dict
import json
import logging

from ledgerbook.models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """Constants for audit actions"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    DELETE = "DELETE"


class AuditService:
    """Service for recording and retrieving audit logs"""

    def __init__(self, db: AsyncSession, organization_id: int):
        self.db = db
        self.organization_id = organization_id

    async def log(
        self,
        action: str,
        resource_type: str,
        resource_id: Optional[int] = None,
        description: Optional[str] = None,
        old_values: Optional[Dict] = None,
        new_values: Optional[Dict] = None,
        user_id: Optional[str] = None
    ) -> AuditLog:
        """
        Add an audit log entry to the current transaction.

        Unlike most writes this does not commit; the entry lands or rolls back
        together with the change it describes.
        """
        audit_log = AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            description=description,
            old_values=json.dumps(old_values, default=str) if old_values else None,
            new_values=json.dumps(new_values, default=str) if new_values else None,
            user_id=user_id,
            organization_id=self.organization_id
        )
        self.db.add(audit_log)
        await self.db.flush()

        logger.info(
            f"Audit: {action} {resource_type}(id={resource_id}) by user={user_id} "
            f"organization={self.organization_id}"
        )
        return audit_log

    async def get_by_resource(self, resource_type: str, resource_id: int, limit: int = 50) -> List[AuditLog]:
        """Get the history of one resource, newest first"""
        result = await self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.organization_id == self.organization_id,
                AuditLog.resource_type == resource_type,
                AuditLog.resource_id == resource_id
            )
            .order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
            .limit(limit)
        )
        return list(result.scalars().all())
