"""Recurring booking generator.

Expands one lesson template and a recurrence plan into concrete booking
drafts. Nothing here touches the database or the system clock.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID
from zoneinfo import ZoneInfo

from drivedesk.core.config import get_settings
from drivedesk.core.enums import CadenceEnum, LessonTypeEnum
from drivedesk.shared.exceptions import ValidationException
from drivedesk.shared.timemath import add_days, end_time_for, resolve_timezone
from drivedesk.shared.utils import ensure_utc

settings = get_settings()

REPEAT_COUNT_LIMIT = 12


@dataclass(frozen=True, slots=True)
class LessonTemplate:
    """What is booked: shared by every occurrence of a series."""

    student_id: UUID
    duration_minutes: int
    lesson_type: LessonTypeEnum = LessonTypeEnum.LESSON
    description: str | None = None
    targets_for_next_session: str | None = None


@dataclass(frozen=True, slots=True)
class RecurrencePlan:
    """When it is booked. ``occurrence_count`` is ignored for ``CadenceEnum.NONE``."""

    anchor_start: datetime
    cadence: CadenceEnum = CadenceEnum.NONE
    occurrence_count: int | None = 1
    timezone: str = "UTC"


@dataclass(frozen=True, slots=True)
class BookingDraft:
    """Not yet persisted booking row."""

    student_id: UUID
    lesson_type: LessonTypeEnum
    start_at: datetime
    end_at: datetime
    description: str | None
    targets_for_next_session: str | None
    series_index: int


class RecurringSeries:
    """Lazy, restartable and finite sequence of drafts.

    Each occurrence is derived from the anchor independently, so a caller that
    persisted the first ``n`` rows can resume with ``series[n]`` without
    replaying the earlier ones.
    """

    __slots__ = ("template", "cadence", "_anchor", "_count", "_tz")

    def __init__(
        self,
        template: LessonTemplate,
        cadence: CadenceEnum,
        anchor: datetime,
        count: int,
        tz: ZoneInfo,
    ) -> None:
        self.template = template
        self.cadence = cadence
        self._anchor = anchor
        self._count = count
        self._tz = tz

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[BookingDraft]:
        for index in range(self._count):
            yield self[index]

    def __getitem__(self, index: int) -> BookingDraft:
        if not 0 <= index < self._count:
            raise IndexError(f"Occurrence {index} is outside a series of {self._count}")
        start_at = add_days(self._anchor, index * self.cadence.interval_days, self._tz)
        return BookingDraft(
            student_id=self.template.student_id,
            lesson_type=self.template.lesson_type,
            start_at=start_at,
            end_at=end_time_for(start_at, self.template.duration_minutes),
            description=self.template.description,
            targets_for_next_session=self.template.targets_for_next_session,
            series_index=index,
        )


def generate(
    template: LessonTemplate,
    plan: RecurrencePlan,
    *,
    allowed_lengths: Sequence[int] | None = None,
    max_count: int | None = None,
) -> RecurringSeries:
    """Validate the request once and return the series of drafts it describes."""
    allowed_lengths = allowed_lengths or settings.allowed_lesson_lengths_minutes
    max_count = settings.max_repeat_count if max_count is None else max_count
    if not 1 <= max_count <= REPEAT_COUNT_LIMIT:
        raise ValidationException(
            f"Repeat count limit must be between 1 and {REPEAT_COUNT_LIMIT}, got {max_count}",
        )

    if template.duration_minutes not in allowed_lengths:
        permitted = ", ".join(str(length) for length in allowed_lengths)
        raise ValidationException(
            f"Lesson length must be one of {permitted} minutes, got {template.duration_minutes}",
        )

    try:
        cadence = CadenceEnum(plan.cadence)
        lesson_type = LessonTypeEnum(template.lesson_type)
    except ValueError as exc:
        raise ValidationException(str(exc)) from exc

    if cadence == CadenceEnum.NONE:
        count = 1
    else:
        count = plan.occurrence_count
        if count is None or isinstance(count, bool) or not 1 <= count <= max_count:
            raise ValidationException(f"Repeat count must be between 1 and {max_count}, got {count}")

    tz = resolve_timezone(plan.timezone)
    anchor = plan.anchor_start
    if anchor.tzinfo is None:
        # Naive start times are wall-clock times in the plan's timezone.
        anchor = anchor.replace(tzinfo=tz)
    if lesson_type is not template.lesson_type:
        template = replace(template, lesson_type=lesson_type)
    return RecurringSeries(
        template=template,
        cadence=cadence,
        anchor=ensure_utc(anchor),
        count=count,
        tz=tz,
    )
