"""Ledger repository layer."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from drivedesk.modules.ledger.models import HourPackage, LedgerTransaction
from drivedesk.shared.exceptions import PersistenceException
from drivedesk.shared.utils import utc_now


class LedgerRepository:
    """DB access methods for hour packages and their transactions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Run a block inside a savepoint; any exception rolls the block back."""
        try:
            async with self.session.begin_nested():
                yield
        except SQLAlchemyError as exc:
            raise PersistenceException("Ledger store rejected the operation") from exc

    async def create_package(
        self,
        account_id: UUID,
        student_id: UUID,
        package_hours: Decimal,
        amount_paid: Decimal | None,
        purchase_date: datetime,
        notes: str | None,
    ) -> HourPackage:
        package = HourPackage(
            account_id=account_id,
            student_id=student_id,
            package_hours=package_hours,
            remaining_hours=package_hours,
            amount_paid=amount_paid,
            purchase_date=purchase_date,
            notes=notes,
        )
        self.session.add(package)
        await self.session.flush()
        return package

    async def get_package(self, account_id: UUID, package_id: UUID) -> HourPackage | None:
        stmt = (
            select(HourPackage)
            .where(HourPackage.id == package_id, HourPackage.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_packages_by_student(
        self,
        account_id: UUID,
        student_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[HourPackage], int]:
        base_stmt: Select[tuple[HourPackage]] = select(HourPackage).where(
            HourPackage.account_id == account_id,
            HourPackage.student_id == student_id,
        )
        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(HourPackage.purchase_date.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_student_packages(self, account_id: UUID, student_id: UUID) -> list[HourPackage]:
        stmt = (
            select(HourPackage)
            .where(HourPackage.account_id == account_id, HourPackage.student_id == student_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.scalars(stmt)).all()

    async def list_open_packages(self, account_id: UUID, student_id: UUID) -> list[HourPackage]:
        stmt = (
            select(HourPackage)
            .where(
                HourPackage.account_id == account_id,
                HourPackage.student_id == student_id,
                HourPackage.remaining_hours > 0,
            )
            .execution_options(populate_existing=True)
        )
        return (await self.session.scalars(stmt)).all()

    async def list_account_packages(self, account_id: UUID) -> list[HourPackage]:
        stmt = select(HourPackage).where(HourPackage.account_id == account_id)
        return (await self.session.scalars(stmt)).all()

    async def compare_and_set_remaining(
        self,
        package: HourPackage,
        expected: Decimal,
        new_value: Decimal,
    ) -> bool:
        """Write ``new_value`` only if the stored balance still equals ``expected``."""
        stmt = (
            update(HourPackage)
            .where(HourPackage.id == package.id, HourPackage.remaining_hours == expected)
            .values(remaining_hours=new_value, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        set_committed_value(package, "remaining_hours", new_value)
        return True

    async def add_transaction(
        self,
        package_id: UUID,
        booking_id: UUID,
        hours_deducted: Decimal,
        transaction_date: datetime,
        reverses_transaction_id: UUID | None = None,
        note: str | None = None,
    ) -> LedgerTransaction:
        transaction = LedgerTransaction(
            package_id=package_id,
            booking_id=booking_id,
            hours_deducted=hours_deducted,
            transaction_date=transaction_date,
            reverses_transaction_id=reverses_transaction_id,
            note=note,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def get_transaction(self, account_id: UUID, transaction_id: UUID) -> LedgerTransaction | None:
        stmt = (
            select(LedgerTransaction)
            .join(HourPackage, HourPackage.id == LedgerTransaction.package_id)
            .where(LedgerTransaction.id == transaction_id, HourPackage.account_id == account_id)
        )
        return await self.session.scalar(stmt)

    async def get_reversal_for(self, transaction_id: UUID) -> LedgerTransaction | None:
        stmt = select(LedgerTransaction).where(
            LedgerTransaction.reverses_transaction_id == transaction_id,
        )
        return await self.session.scalar(stmt)

    async def list_transactions_for_package(self, package_id: UUID) -> list[LedgerTransaction]:
        stmt = (
            select(LedgerTransaction)
            .where(LedgerTransaction.package_id == package_id)
            .order_by(LedgerTransaction.transaction_date.asc(), LedgerTransaction.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def list_transactions_for_booking(self, booking_id: UUID) -> list[LedgerTransaction]:
        stmt = (
            select(LedgerTransaction)
            .where(LedgerTransaction.booking_id == booking_id)
            .order_by(LedgerTransaction.transaction_date.asc(), LedgerTransaction.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def sum_deducted_by_package(self, account_id: UUID) -> dict[UUID, Decimal]:
        stmt = (
            select(LedgerTransaction.package_id, func.sum(LedgerTransaction.hours_deducted))
            .join(HourPackage, HourPackage.id == LedgerTransaction.package_id)
            .where(HourPackage.account_id == account_id)
            .group_by(LedgerTransaction.package_id)
        )
        rows = (await self.session.execute(stmt)).all()
        return {package_id: Decimal(total) for package_id, total in rows}
