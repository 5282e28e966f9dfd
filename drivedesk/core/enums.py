"""Core enums used across modules."""

from enum import StrEnum


class LessonTypeEnum(StrEnum):
    """Kind of calendar slot booked with a student."""

    LESSON = "lesson"
    TEST = "test"
    PERSONAL = "personal"

    @property
    def label(self) -> str:
        return _LESSON_TYPE_LABELS[self]


_LESSON_TYPE_LABELS = {
    LessonTypeEnum.LESSON: "Driving lesson",
    LessonTypeEnum.TEST: "Driving Test",
    LessonTypeEnum.PERSONAL: "Personal",
}


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CadenceEnum(StrEnum):
    """Repeat interval for generated bookings."""

    NONE = "none"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"

    @property
    def interval_days(self) -> int:
        return _CADENCE_INTERVAL_DAYS[self]


_CADENCE_INTERVAL_DAYS = {
    CadenceEnum.NONE: 0,
    CadenceEnum.WEEKLY: 7,
    CadenceEnum.FORTNIGHTLY: 14,
}
