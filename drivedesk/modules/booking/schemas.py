"""Booking schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from drivedesk.core.enums import BookingStatusEnum, CadenceEnum, LessonTypeEnum
from drivedesk.modules.booking.generator import LessonTemplate, RecurrencePlan


class BookingSeriesCreate(BaseModel):
    """One lesson request, optionally repeated weekly or fortnightly."""

    student_id: UUID
    lesson_type: LessonTypeEnum = LessonTypeEnum.LESSON
    lesson_length_minutes: int = 60
    start_at: datetime
    repeat_booking: CadenceEnum = CadenceEnum.NONE
    repeat_count: int | None = 1
    timezone: str = Field(default="UTC", max_length=64)
    description: str | None = None
    targets_for_next_session: str | None = None

    def to_template(self) -> LessonTemplate:
        return LessonTemplate(
            student_id=self.student_id,
            duration_minutes=self.lesson_length_minutes,
            lesson_type=self.lesson_type,
            description=self.description,
            targets_for_next_session=self.targets_for_next_session,
        )

    def to_plan(self) -> RecurrencePlan:
        return RecurrencePlan(
            anchor_start=self.start_at,
            cadence=self.repeat_booking,
            occurrence_count=self.repeat_count,
            timezone=self.timezone,
        )


class BookingUpdate(BaseModel):
    """Edit a scheduled booking. Status is changed only via complete/cancel."""

    lesson_type: LessonTypeEnum | None = None
    start_at: datetime | None = None
    lesson_length_minutes: int | None = None
    description: str | None = None
    targets_for_next_session: str | None = None


class BookingDraftRead(BaseModel):
    """Generated occurrence that has not been saved."""

    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    lesson_type: LessonTypeEnum
    start_at: datetime
    end_at: datetime
    description: str | None
    targets_for_next_session: str | None
    series_index: int


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    title: str
    lesson_type: LessonTypeEnum
    status: BookingStatusEnum
    start_at: datetime
    end_at: datetime
    description: str | None
    targets_for_next_session: str | None
    series_id: UUID | None
    series_index: int
    completed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime
