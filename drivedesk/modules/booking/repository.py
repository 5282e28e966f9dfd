"""Booking repository layer."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from drivedesk.core.enums import BookingStatusEnum
from drivedesk.modules.booking.generator import BookingDraft
from drivedesk.modules.booking.models import Booking
from drivedesk.shared.exceptions import PersistenceException


class BookingRepository:
    """DB operations for booking domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Run a block inside a savepoint; any exception rolls the block back."""
        try:
            async with self.session.begin_nested():
                yield
        except SQLAlchemyError as exc:
            raise PersistenceException("Booking store rejected the operation") from exc

    async def create_booking(
        self,
        account_id: UUID,
        draft: BookingDraft,
        title: str,
        series_id: UUID | None,
    ) -> Booking:
        booking = Booking(
            account_id=account_id,
            student_id=draft.student_id,
            title=title,
            lesson_type=draft.lesson_type,
            status=BookingStatusEnum.SCHEDULED,
            start_at=draft.start_at,
            end_at=draft.end_at,
            description=draft.description,
            targets_for_next_session=draft.targets_for_next_session,
            series_id=series_id,
            series_index=draft.series_index,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_booking(self, account_id: UUID, booking_id: UUID) -> Booking | None:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id, Booking.account_id == account_id)
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_bookings(
        self,
        account_id: UUID,
        limit: int,
        offset: int,
        student_id: UUID | None = None,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking).where(Booking.account_id == account_id)
        if student_id is not None:
            base_stmt = base_stmt.where(Booking.student_id == student_id)
        if starts_from is not None:
            base_stmt = base_stmt.where(Booking.start_at >= starts_from)
        if starts_before is not None:
            base_stmt = base_stmt.where(Booking.start_at < starts_before)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Booking.start_at.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def transition_status(
        self,
        booking: Booking,
        from_status: BookingStatusEnum,
        to_status: BookingStatusEnum,
        changed_at: datetime,
    ) -> bool:
        """Move status only if the stored row is still in ``from_status``."""
        timestamps = {}
        if to_status == BookingStatusEnum.COMPLETED:
            timestamps["completed_at"] = changed_at
        elif to_status == BookingStatusEnum.CANCELLED:
            timestamps["cancelled_at"] = changed_at

        stmt = (
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == from_status)
            .values(status=to_status, updated_at=changed_at, **timestamps)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        set_committed_value(booking, "status", to_status)
        for key, value in timestamps.items():
            set_committed_value(booking, key, value)
        return True

    async def save(self, booking: Booking) -> Booking:
        await self.session.flush()
        return booking

    async def delete_booking(self, booking: Booking) -> None:
        await self.session.delete(booking)
        await self.session.flush()
