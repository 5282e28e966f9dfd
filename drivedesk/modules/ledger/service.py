"""Prepaid-hours ledger business logic layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.core.config import get_settings
from drivedesk.core.database import get_db_session
from drivedesk.core.metrics import LEDGER_CONCURRENCY_RETRIES_TOTAL, LEDGER_DEDUCTIONS_TOTAL
from drivedesk.modules.audit.repository import AuditRepository
from drivedesk.modules.ledger.models import HourPackage, LedgerTransaction
from drivedesk.modules.ledger.policies import (
    ZERO_HOURS,
    Allocation,
    SelectionPolicy,
    get_selection_policy,
    plan_deduction,
    total_remaining,
)
from drivedesk.modules.ledger.repository import LedgerRepository
from drivedesk.modules.ledger.schemas import PackageCreate
from drivedesk.modules.students.repository import StudentsRepository
from drivedesk.shared.exceptions import (
    ConflictException,
    InsufficientHoursException,
    NotFoundException,
    ValidationException,
)
from drivedesk.shared.utils import NowProvider, ensure_utc, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)

HOURS_QUANTUM = Decimal("0.01")
MIN_PACKAGE_HOURS = Decimal("0.5")


def to_hours(value: Decimal | int | float | str) -> Decimal:
    """Normalize an hours amount to a two-place decimal."""
    return Decimal(str(value)).quantize(HOURS_QUANTUM)


class _BalanceChanged(Exception):
    """A package balance moved between planning and writing."""


@dataclass(frozen=True, slots=True)
class DeductionOutcome:
    """Result of charging a booking against a student's packages."""

    student_id: UUID
    booking_id: UUID
    hours_deducted: Decimal
    transactions: tuple[LedgerTransaction, ...]


@dataclass(frozen=True, slots=True)
class StudentBalance:
    student_id: UUID
    package_count: int
    total_package_hours: Decimal
    total_remaining_hours: Decimal
    is_low: bool
    is_exhausted: bool


@dataclass(frozen=True, slots=True)
class BalanceDiscrepancy:
    package_id: UUID
    student_id: UUID
    package_hours: Decimal
    remaining_hours: Decimal
    deducted_total: Decimal

    @property
    def expected_remaining_hours(self) -> Decimal:
        return self.package_hours - self.deducted_total


class LedgerService:
    """Prepaid-hours packages and their append-only transaction log.

    Every balance change is a compare-and-swap on the package row made inside a
    savepoint together with the transaction rows it explains. When another
    writer got there first, the savepoint is rolled back and the plan is
    recomputed from fresh balances, up to ``max_retries`` times.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        students_repository: StudentsRepository,
        audit_repository: AuditRepository,
        *,
        selection_policy: SelectionPolicy | None = None,
        max_retries: int | None = None,
        low_balance_threshold: Decimal | None = None,
        now_provider: NowProvider = utc_now,
    ) -> None:
        self.repository = repository
        self.students_repository = students_repository
        self.audit_repository = audit_repository
        self.selection_policy = selection_policy or get_selection_policy(
            settings.ledger_selection_policy,
        )
        self.max_retries = max_retries or settings.ledger_max_retries
        self.low_balance_threshold = (
            settings.low_balance_threshold_hours
            if low_balance_threshold is None
            else low_balance_threshold
        )
        self.now_provider = now_provider

    async def _ensure_student(self, account_id: UUID, student_id: UUID) -> None:
        student = await self.students_repository.get_student(account_id, student_id)
        if student is None:
            raise NotFoundException("Student not found")

    async def create_package(self, account_id: UUID, payload: PackageCreate) -> HourPackage:
        """Record a purchase; the only way a student's balance grows."""
        package_hours = to_hours(payload.package_hours)
        if package_hours < MIN_PACKAGE_HOURS:
            raise ValidationException("Package must contain at least 0.5 hours")
        amount_paid = None if payload.amount_paid is None else Decimal(payload.amount_paid)
        if amount_paid is not None and amount_paid < 0:
            raise ValidationException("Amount paid cannot be negative")

        await self._ensure_student(account_id, payload.student_id)
        purchase_date = (
            ensure_utc(payload.purchase_date)
            if payload.purchase_date is not None
            else self.now_provider()
        )

        package = await self.repository.create_package(
            account_id=account_id,
            student_id=payload.student_id,
            package_hours=package_hours,
            amount_paid=amount_paid,
            purchase_date=purchase_date,
            notes=payload.notes,
        )
        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="ledger.package.create",
            entity_type="hour_package",
            entity_id=str(package.id),
            payload={
                "student_id": str(package.student_id),
                "package_hours": str(package.package_hours),
                "amount_paid": str(amount_paid) if amount_paid is not None else None,
                "purchase_date": package.purchase_date.isoformat(),
            },
        )
        return package

    async def net_hours_charged(self, booking_id: UUID) -> Decimal:
        """Hours currently charged for a booking after corrections."""
        transactions = await self.repository.list_transactions_for_booking(booking_id)
        return sum((item.hours_deducted for item in transactions), ZERO_HOURS)

    async def has_transactions(self, booking_id: UUID) -> bool:
        return bool(await self.repository.list_transactions_for_booking(booking_id))

    async def deduct(
        self,
        account_id: UUID,
        student_id: UUID,
        booking_id: UUID,
        hours_needed: Decimal,
    ) -> DeductionOutcome:
        """Charge ``hours_needed`` to the student's packages, all or nothing."""
        hours_needed = to_hours(hours_needed)
        if hours_needed <= 0:
            raise ValidationException("Hours to deduct must be positive")

        for attempt in range(1, self.max_retries + 1):
            # A lost swap may have been a charge for this same booking.
            if await self.net_hours_charged(booking_id) > 0:
                LEDGER_DEDUCTIONS_TOTAL.labels(outcome="duplicate").inc()
                raise ConflictException("Hours were already deducted for this booking")

            packages = await self.repository.list_open_packages(account_id, student_id)
            try:
                allocations = plan_deduction(packages, hours_needed, self.selection_policy)
            except InsufficientHoursException as exc:
                LEDGER_DEDUCTIONS_TOTAL.labels(outcome="insufficient").inc()
                logger.warning(
                    "Insufficient hours for booking %s: %s available, %s needed",
                    booking_id,
                    exc.available,
                    exc.requested,
                )
                raise

            try:
                async with self.repository.atomic():
                    transactions = await self._apply_allocations(allocations, booking_id)
            except _BalanceChanged as exc:
                LEDGER_CONCURRENCY_RETRIES_TOTAL.inc()
                logger.info(
                    "Package %s changed during deduction for booking %s (attempt %s/%s)",
                    exc,
                    booking_id,
                    attempt,
                    self.max_retries,
                )
                continue

            outcome = DeductionOutcome(
                student_id=student_id,
                booking_id=booking_id,
                hours_deducted=hours_needed,
                transactions=tuple(transactions),
            )
            await self.audit_repository.create_audit_log(
                actor_id=account_id,
                action="ledger.hours.deduct",
                entity_type="booking",
                entity_id=str(booking_id),
                payload={
                    "student_id": str(student_id),
                    "hours": str(hours_needed),
                    "allocations": [
                        {"package_id": str(item.package_id), "hours": str(item.hours_deducted)}
                        for item in transactions
                    ],
                },
            )
            LEDGER_DEDUCTIONS_TOTAL.labels(outcome="success").inc()
            logger.info(
                "Deducted %s hours for booking %s across %s package(s)",
                hours_needed,
                booking_id,
                len(transactions),
            )
            return outcome

        LEDGER_DEDUCTIONS_TOTAL.labels(outcome="conflict").inc()
        raise ConflictException("Prepaid hours changed concurrently; retry the operation")

    async def _apply_allocations(
        self,
        allocations: list[Allocation],
        booking_id: UUID,
    ) -> list[LedgerTransaction]:
        transaction_date = self.now_provider()
        transactions: list[LedgerTransaction] = []
        for allocation in allocations:
            swapped = await self.repository.compare_and_set_remaining(
                allocation.package,
                expected=allocation.remaining_before,
                new_value=allocation.remaining_after,
            )
            if not swapped:
                raise _BalanceChanged(str(allocation.package.id))
            transactions.append(
                await self.repository.add_transaction(
                    package_id=allocation.package.id,
                    booking_id=booking_id,
                    hours_deducted=allocation.hours,
                    transaction_date=transaction_date,
                ),
            )
        return transactions

    async def reverse_transaction(
        self,
        account_id: UUID,
        transaction_id: UUID,
        note: str | None = None,
    ) -> LedgerTransaction:
        """Append an offsetting entry that returns a deduction to its package."""
        original = await self.repository.get_transaction(account_id, transaction_id)
        if original is None:
            raise NotFoundException("Ledger transaction not found")
        if original.reverses_transaction_id is not None or original.hours_deducted <= 0:
            raise ValidationException("Only deductions can be reversed")
        if await self.repository.get_reversal_for(original.id) is not None:
            raise ConflictException("Transaction was already reversed")

        for attempt in range(1, self.max_retries + 1):
            package = await self.repository.get_package(account_id, original.package_id)
            if package is None:
                raise NotFoundException("Package not found")
            restored = package.remaining_hours + original.hours_deducted
            if restored > package.package_hours:
                raise ConflictException("Reversal would exceed the purchased hours")

            try:
                async with self.repository.atomic():
                    if not await self.repository.compare_and_set_remaining(
                        package,
                        expected=package.remaining_hours,
                        new_value=restored,
                    ):
                        raise _BalanceChanged(str(package.id))
                    correction = await self.repository.add_transaction(
                        package_id=package.id,
                        booking_id=original.booking_id,
                        hours_deducted=-original.hours_deducted,
                        transaction_date=self.now_provider(),
                        reverses_transaction_id=original.id,
                        note=note,
                    )
            except _BalanceChanged:
                LEDGER_CONCURRENCY_RETRIES_TOTAL.inc()
                logger.info(
                    "Package %s changed during reversal of %s (attempt %s/%s)",
                    package.id,
                    transaction_id,
                    attempt,
                    self.max_retries,
                )
                continue

            await self.audit_repository.create_audit_log(
                actor_id=account_id,
                action="ledger.transaction.reverse",
                entity_type="ledger_transaction",
                entity_id=str(original.id),
                payload={
                    "correction_id": str(correction.id),
                    "package_id": str(package.id),
                    "hours": str(original.hours_deducted),
                    "note": note,
                },
            )
            return correction

        raise ConflictException("Prepaid hours changed concurrently; retry the operation")

    async def list_student_packages(
        self,
        account_id: UUID,
        student_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[HourPackage], int]:
        await self._ensure_student(account_id, student_id)
        return await self.repository.list_packages_by_student(account_id, student_id, limit, offset)

    async def get_package_detail(
        self,
        account_id: UUID,
        package_id: UUID,
    ) -> tuple[HourPackage, list[LedgerTransaction]]:
        """Return package and its transactions in date order."""
        package = await self.repository.get_package(account_id, package_id)
        if package is None:
            raise NotFoundException("Package not found")
        transactions = await self.repository.list_transactions_for_package(package.id)
        return package, transactions

    async def get_student_balance(self, account_id: UUID, student_id: UUID) -> StudentBalance:
        await self._ensure_student(account_id, student_id)
        packages = await self.repository.list_student_packages(account_id, student_id)
        remaining = total_remaining(packages)
        return StudentBalance(
            student_id=student_id,
            package_count=len(packages),
            total_package_hours=sum((item.package_hours for item in packages), ZERO_HOURS),
            total_remaining_hours=remaining,
            is_low=remaining <= self.low_balance_threshold,
            is_exhausted=remaining <= 0,
        )

    async def verify_integrity(self, account_id: UUID) -> list[BalanceDiscrepancy]:
        """Return packages whose balance disagrees with the sum of their transactions."""
        packages = await self.repository.list_account_packages(account_id)
        deducted = await self.repository.sum_deducted_by_package(account_id)
        discrepancies: list[BalanceDiscrepancy] = []
        for package in packages:
            deducted_total = deducted.get(package.id, ZERO_HOURS)
            if package.package_hours - package.remaining_hours != deducted_total:
                discrepancies.append(
                    BalanceDiscrepancy(
                        package_id=package.id,
                        student_id=package.student_id,
                        package_hours=package.package_hours,
                        remaining_hours=package.remaining_hours,
                        deducted_total=deducted_total,
                    ),
                )
        if discrepancies:
            logger.error(
                "Ledger integrity check found %s inconsistent package(s) for account %s",
                len(discrepancies),
                account_id,
            )
        return discrepancies


def build_ledger_service(session: AsyncSession) -> LedgerService:
    return LedgerService(
        repository=LedgerRepository(session),
        students_repository=StudentsRepository(session),
        audit_repository=AuditRepository(session),
    )


async def get_ledger_service(session: AsyncSession = Depends(get_db_session)) -> LedgerService:
    """Dependency provider for ledger service."""
    return build_ledger_service(session)
