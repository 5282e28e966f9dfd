"""Ledger API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from drivedesk.modules.ledger.schemas import (
    BalanceDiscrepancyRead,
    LedgerTransactionRead,
    PackageCreate,
    PackageDetailRead,
    PackageRead,
    StudentBalanceRead,
    TransactionReverseRequest,
)
from drivedesk.modules.ledger.service import LedgerService, get_ledger_service
from drivedesk.shared.accounts import get_account_id
from drivedesk.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/packages", response_model=PackageRead, status_code=status.HTTP_201_CREATED)
async def create_package(
    payload: PackageCreate,
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> PackageRead:
    """Record a prepaid-hours purchase."""
    package = await service.create_package(account_id, payload)
    return PackageRead.model_validate(package)


@router.get("/packages/students/{student_id}", response_model=Page[PackageRead])
async def list_student_packages(
    student_id: UUID,
    pagination=Depends(get_pagination_params),
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> Page[PackageRead]:
    """List packages for a specific student, newest purchase first."""
    items, total = await service.list_student_packages(
        account_id=account_id,
        student_id=student_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    serialized = [PackageRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/packages/{package_id}", response_model=PackageDetailRead)
async def get_package_detail(
    package_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> PackageDetailRead:
    """Package with the transactions that used its hours."""
    package, transactions = await service.get_package_detail(account_id, package_id)
    return PackageDetailRead(
        package=PackageRead.model_validate(package),
        transactions=[LedgerTransactionRead.model_validate(item) for item in transactions],
    )


@router.get("/students/{student_id}/balance", response_model=StudentBalanceRead)
async def get_student_balance(
    student_id: UUID,
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> StudentBalanceRead:
    balance = await service.get_student_balance(account_id, student_id)
    return StudentBalanceRead.model_validate(balance)


@router.post(
    "/transactions/{transaction_id}/reverse",
    response_model=LedgerTransactionRead,
    status_code=status.HTTP_201_CREATED,
)
async def reverse_transaction(
    transaction_id: UUID,
    payload: TransactionReverseRequest,
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> LedgerTransactionRead:
    """Offset a deduction with a correcting entry."""
    correction = await service.reverse_transaction(account_id, transaction_id, payload.note)
    return LedgerTransactionRead.model_validate(correction)


@router.get("/integrity", response_model=list[BalanceDiscrepancyRead])
async def verify_integrity(
    service: LedgerService = Depends(get_ledger_service),
    account_id: UUID = Depends(get_account_id),
) -> list[BalanceDiscrepancyRead]:
    """List packages whose balance disagrees with their transaction log."""
    discrepancies = await service.verify_integrity(account_id)
    return [BalanceDiscrepancyRead.model_validate(item) for item in discrepancies]
