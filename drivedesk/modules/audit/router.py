"""Audit API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from drivedesk.modules.audit.schemas import AuditLogRead
from drivedesk.modules.audit.service import AuditService, get_audit_service
from drivedesk.shared.accounts import get_account_id
from drivedesk.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs", response_model=Page[AuditLogRead])
async def list_logs(
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    account_id: UUID = Depends(get_account_id),
) -> Page[AuditLogRead]:
    """List audit logs."""
    items, total = await service.list_logs(account_id, pagination.limit, pagination.offset)
    serialized = [AuditLogRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)
