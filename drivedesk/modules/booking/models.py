"""Booking ORM models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from drivedesk.core.database import Base, BaseModelMixin
from drivedesk.core.enums import BookingStatusEnum, LessonTypeEnum


class Booking(BaseModelMixin, Base):
    """Calendar slot booked with a student."""

    __tablename__ = "bookings"
    __table_args__ = (CheckConstraint("end_at > start_at", name="end_after_start"),)

    account_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    lesson_type: Mapped[LessonTypeEnum] = mapped_column(
        SAEnum(LessonTypeEnum, name="lesson_type_enum", native_enum=False),
        default=LessonTypeEnum.LESSON,
        nullable=False,
    )
    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.SCHEDULED,
        nullable=False,
        index=True,
    )
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    targets_for_next_session: Mapped[str | None] = mapped_column(Text, nullable=True)

    series_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    series_index: Mapped[int] = mapped_column(default=0, nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
