"""Audit business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.core.database import get_db_session
from drivedesk.modules.audit.models import AuditLog
from drivedesk.modules.audit.repository import AuditRepository


class AuditService:
    """Read access to the account's audit trail."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    async def list_logs(self, account_id: UUID, limit: int, offset: int) -> tuple[list[AuditLog], int]:
        """List audit logs written on behalf of the account, newest first."""
        return await self.repository.list_audit_logs(actor_id=account_id, limit=limit, offset=offset)


async def get_audit_service(session: AsyncSession = Depends(get_db_session)) -> AuditService:
    """Dependency provider for audit service."""
    return AuditService(AuditRepository(session))
