"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.core.config import get_settings
from drivedesk.core.database import SessionLocal, close_engine
from drivedesk.core.enums import CadenceEnum, LessonTypeEnum
from drivedesk.modules.audit.repository import AuditRepository
from drivedesk.modules.booking.models import Booking
from drivedesk.modules.booking.repository import BookingRepository
from drivedesk.modules.booking.schemas import BookingSeriesCreate
from drivedesk.modules.booking.service import BookingService
from drivedesk.modules.ledger.models import HourPackage
from drivedesk.modules.ledger.schemas import PackageCreate
from drivedesk.modules.ledger.service import LedgerService, build_ledger_service
from drivedesk.modules.students.models import Student
from drivedesk.modules.students.repository import StudentsRepository
from drivedesk.modules.students.schemas import StudentCreate
from drivedesk.modules.students.service import StudentsService

DEMO_ACCOUNT_ID = UUID("00000000-0000-4000-8000-00000000d3d0")
DEMO_STUDENT_NAME = "Demo Learner"

DEMO_PACKAGE_HOURS = Decimal("10")
DEMO_SERIES_START_DAY_OFFSET = 1
DEMO_SERIES_START_HOUR = 9
DEMO_SERIES_OCCURRENCES = 4


@dataclass(slots=True)
class SeedStats:
    student_created: bool = False
    package_created: bool = False
    bookings_created: int = 0
    student_id: str | None = None
    package_id: str | None = None


async def _ensure_student(session: AsyncSession) -> tuple[Student, bool]:
    existing = await session.scalar(
        select(Student).where(
            Student.account_id == DEMO_ACCOUNT_ID,
            Student.name == DEMO_STUDENT_NAME,
        ),
    )
    if existing is not None:
        return existing, False

    service = StudentsService(
        repository=StudentsRepository(session),
        audit_repository=AuditRepository(session),
    )
    student = await service.create_student(
        DEMO_ACCOUNT_ID,
        StudentCreate(
            name=DEMO_STUDENT_NAME,
            phone_number="+44 7700 900123",
            full_address="1 Demo Street, Testford",
            notes="Created by the demo seed script.",
        ),
    )
    return student, True


async def _ensure_package(
    session: AsyncSession,
    ledger_service: LedgerService,
    student: Student,
) -> tuple[HourPackage, bool]:
    existing = await session.scalar(
        select(HourPackage)
        .where(
            HourPackage.account_id == DEMO_ACCOUNT_ID,
            HourPackage.student_id == student.id,
            HourPackage.remaining_hours > 0,
        )
        .order_by(HourPackage.purchase_date.desc()),
    )
    if existing is not None:
        return existing, False

    package = await ledger_service.create_package(
        DEMO_ACCOUNT_ID,
        PackageCreate(
            student_id=student.id,
            package_hours=DEMO_PACKAGE_HOURS,
            amount_paid=Decimal("350.00"),
            notes="Demo block booking",
        ),
    )
    return package, True


async def _ensure_weekly_series(
    session: AsyncSession,
    ledger_service: LedgerService,
    student: Student,
) -> int:
    existing = await session.scalar(
        select(Booking.id).where(
            Booking.account_id == DEMO_ACCOUNT_ID,
            Booking.student_id == student.id,
        ),
    )
    if existing is not None:
        return 0

    target_date = (datetime.now(UTC) + timedelta(days=DEMO_SERIES_START_DAY_OFFSET)).date()
    start_at = datetime.combine(target_date, time(hour=DEMO_SERIES_START_HOUR, tzinfo=UTC))
    booking_service = BookingService(
        booking_repository=BookingRepository(session),
        students_repository=StudentsRepository(session),
        ledger_service=ledger_service,
        audit_repository=AuditRepository(session),
    )
    bookings = await booking_service.create_series(
        DEMO_ACCOUNT_ID,
        BookingSeriesCreate(
            student_id=student.id,
            lesson_type=LessonTypeEnum.LESSON,
            lesson_length_minutes=120,
            start_at=start_at,
            repeat_booking=CadenceEnum.WEEKLY,
            repeat_count=DEMO_SERIES_OCCURRENCES,
            timezone="Europe/London",
            targets_for_next_session="Roundabouts and lane discipline",
        ),
    )
    return len(bookings)


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            ledger_service = build_ledger_service(session)
            student, stats.student_created = await _ensure_student(session)
            package, stats.package_created = await _ensure_package(session, ledger_service, student)
            stats.bookings_created = await _ensure_weekly_series(session, ledger_service, student)
            stats.student_id = str(student.id)
            stats.package_id = str(package.id)

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed idempotent demo data for DriveDesk (student, prepaid-hours "
            "package, weekly lesson series)."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Student created: {stats.student_created}")
    print(f"- Student id: {stats.student_id}")
    print(f"- Package created: {stats.package_created}")
    print(f"- Package id: {stats.package_id}")
    print(f"- Bookings created: {stats.bookings_created}")
    print("")
    print(f"Use header X-Account-ID: {DEMO_ACCOUNT_ID} (non-production only)")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
