"""Booking business logic layer."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID, uuid4

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.core.config import get_settings
from drivedesk.core.database import get_db_session
from drivedesk.core.enums import BookingStatusEnum, LessonTypeEnum
from drivedesk.modules.audit.repository import AuditRepository
from drivedesk.modules.booking.generator import BookingDraft, generate
from drivedesk.modules.booking.models import Booking
from drivedesk.modules.booking.repository import BookingRepository
from drivedesk.modules.booking.schemas import BookingSeriesCreate, BookingUpdate
from drivedesk.modules.ledger.service import LedgerService, build_ledger_service
from drivedesk.modules.students.models import Student
from drivedesk.modules.students.repository import StudentsRepository
from drivedesk.shared.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from drivedesk.shared.timemath import duration_hours, duration_minutes, end_time_for
from drivedesk.shared.utils import NowProvider, ensure_utc, utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


def booking_title(student: Student, lesson_type: LessonTypeEnum) -> str:
    return f"{student.name} - {lesson_type.label}"


class BookingService:
    """Booking domain service with generate/complete/cancel rules.

    Completion is the only place where hours leave the ledger: the deduction
    and the status change share one savepoint, so either both land or neither.
    """

    def __init__(
        self,
        booking_repository: BookingRepository,
        students_repository: StudentsRepository,
        ledger_service: LedgerService,
        audit_repository: AuditRepository,
        *,
        now_provider: NowProvider = utc_now,
    ) -> None:
        self.booking_repository = booking_repository
        self.students_repository = students_repository
        self.ledger_service = ledger_service
        self.audit_repository = audit_repository
        self.now_provider = now_provider

    async def _get_student(self, account_id: UUID, student_id: UUID) -> Student:
        student = await self.students_repository.get_student(account_id, student_id)
        if student is None:
            raise NotFoundException("Student not found")
        return student

    async def preview_series(
        self,
        account_id: UUID,
        payload: BookingSeriesCreate,
    ) -> list[BookingDraft]:
        """Expand a request into drafts without saving anything."""
        await self._get_student(account_id, payload.student_id)
        return list(generate(payload.to_template(), payload.to_plan()))

    async def create_series(self, account_id: UUID, payload: BookingSeriesCreate) -> list[Booking]:
        """Persist every occurrence of a request, all or nothing."""
        series = generate(payload.to_template(), payload.to_plan())
        student = await self._get_student(account_id, payload.student_id)
        title = booking_title(student, series.template.lesson_type)
        series_id = uuid4()

        bookings: list[Booking] = []
        async with self.booking_repository.atomic():
            for draft in series:
                bookings.append(
                    await self.booking_repository.create_booking(
                        account_id=account_id,
                        draft=draft,
                        title=title,
                        series_id=series_id,
                    ),
                )

        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="booking.series.create",
            entity_type="booking",
            entity_id=str(series_id),
            payload={
                "student_id": str(student.id),
                "cadence": series.cadence.value,
                "occurrences": len(bookings),
                "first_start_at": bookings[0].start_at.isoformat(),
            },
        )
        logger.info(
            "Created %s booking(s) for student %s (%s)",
            len(bookings),
            student.id,
            series.cadence.value,
        )
        return bookings

    async def get_booking(self, account_id: UUID, booking_id: UUID) -> Booking:
        booking = await self.booking_repository.get_booking(account_id, booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    async def list_bookings(
        self,
        account_id: UUID,
        limit: int,
        offset: int,
        student_id: UUID | None = None,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
    ) -> tuple[list[Booking], int]:
        return await self.booking_repository.list_bookings(
            account_id=account_id,
            limit=limit,
            offset=offset,
            student_id=student_id,
            starts_from=ensure_utc(starts_from) if starts_from is not None else None,
            starts_before=ensure_utc(starts_before) if starts_before is not None else None,
        )

    @staticmethod
    def _ensure_scheduled(booking: Booking, action: str) -> None:
        if booking.status != BookingStatusEnum.SCHEDULED:
            raise InvalidTransitionException(
                f"Cannot {action} a booking that is {booking.status.value}",
            )

    async def complete_booking(self, account_id: UUID, booking_id: UUID) -> Booking:
        """Mark a scheduled booking completed and charge its length to the ledger."""
        booking = await self.get_booking(account_id, booking_id)
        self._ensure_scheduled(booking, "complete")
        hours = duration_hours(booking.start_at, booking.end_at)

        async with self.booking_repository.atomic():
            outcome = await self.ledger_service.deduct(
                account_id=account_id,
                student_id=booking.student_id,
                booking_id=booking.id,
                hours_needed=hours,
            )
            transitioned = await self.booking_repository.transition_status(
                booking,
                from_status=BookingStatusEnum.SCHEDULED,
                to_status=BookingStatusEnum.COMPLETED,
                changed_at=self.now_provider(),
            )
            if not transitioned:
                raise InvalidTransitionException("Booking status changed concurrently")

        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="booking.complete",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={
                "hours_deducted": str(outcome.hours_deducted),
                "transaction_ids": [str(item.id) for item in outcome.transactions],
            },
        )
        logger.info("Completed booking %s, %s hours deducted", booking.id, outcome.hours_deducted)
        return booking

    async def cancel_booking(self, account_id: UUID, booking_id: UUID) -> Booking:
        """Cancel a scheduled booking. No hours are touched."""
        booking = await self.get_booking(account_id, booking_id)
        self._ensure_scheduled(booking, "cancel")
        transitioned = await self.booking_repository.transition_status(
            booking,
            from_status=BookingStatusEnum.SCHEDULED,
            to_status=BookingStatusEnum.CANCELLED,
            changed_at=self.now_provider(),
        )
        if not transitioned:
            raise InvalidTransitionException("Booking status changed concurrently")

        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="booking.cancel",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={"start_at": booking.start_at.isoformat()},
        )
        logger.info("Cancelled booking %s", booking.id)
        return booking

    async def update_booking(
        self,
        account_id: UUID,
        booking_id: UUID,
        payload: BookingUpdate,
    ) -> Booking:
        """Edit time, length, type or notes of a scheduled booking."""
        booking = await self.get_booking(account_id, booking_id)
        self._ensure_scheduled(booking, "edit")
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return booking

        if "start_at" in changes or "lesson_length_minutes" in changes:
            start_at = ensure_utc(changes.get("start_at") or booking.start_at)
            length = changes.get("lesson_length_minutes")
            if length is None:
                length = duration_minutes(booking.start_at, booking.end_at)
            if length not in settings.allowed_lesson_lengths_minutes:
                permitted = ", ".join(str(item) for item in settings.allowed_lesson_lengths_minutes)
                raise ValidationException(
                    f"Lesson length must be one of {permitted} minutes, got {length}",
                )
            booking.start_at = start_at
            booking.end_at = end_time_for(start_at, length)

        if changes.get("lesson_type") is not None:
            booking.lesson_type = LessonTypeEnum(changes["lesson_type"])
            student = await self._get_student(account_id, booking.student_id)
            booking.title = booking_title(student, booking.lesson_type)

        for field in ("description", "targets_for_next_session"):
            if field in changes:
                setattr(booking, field, changes[field])

        booking = await self.booking_repository.save(booking)
        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="booking.update",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={"fields": sorted(changes)},
        )
        return booking

    async def delete_booking(self, account_id: UUID, booking_id: UUID) -> None:
        """Remove a booking that never consumed hours."""
        booking = await self.get_booking(account_id, booking_id)
        if booking.status == BookingStatusEnum.COMPLETED:
            raise ConflictException("Completed bookings cannot be deleted")
        if await self.ledger_service.has_transactions(booking.id):
            raise ConflictException("Booking is referenced by ledger transactions")

        await self.booking_repository.delete_booking(booking)
        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="booking.delete",
            entity_type="booking",
            entity_id=str(booking_id),
            payload={"status": booking.status.value},
        )


async def get_booking_service(session: AsyncSession = Depends(get_db_session)) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(
        booking_repository=BookingRepository(session),
        students_repository=StudentsRepository(session),
        ledger_service=build_ledger_service(session),
        audit_repository=AuditRepository(session),
    )
