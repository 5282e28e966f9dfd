from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from drivedesk.core.enums import BookingStatusEnum, LessonTypeEnum
from drivedesk.modules.booking.generator import BookingDraft


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class FakeStudent:
    id: UUID
    account_id: UUID
    name: str
    phone_number: str | None = None
    driving_license_number: str | None = None
    full_address: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class FakePackage:
    id: UUID
    account_id: UUID
    student_id: UUID
    package_hours: Decimal
    remaining_hours: Decimal
    purchase_date: datetime
    amount_paid: Decimal | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class FakeTransaction:
    id: UUID
    package_id: UUID
    booking_id: UUID
    hours_deducted: Decimal
    transaction_date: datetime
    reverses_transaction_id: UUID | None = None
    note: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class FakeBooking:
    id: UUID
    account_id: UUID
    student_id: UUID
    title: str
    lesson_type: LessonTypeEnum
    status: BookingStatusEnum
    start_at: datetime
    end_at: datetime
    description: str | None = None
    targets_for_next_session: str | None = None
    series_id: UUID | None = None
    series_index: int = 0
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class FakeAuditLog:
    id: UUID
    actor_id: UUID | None
    action: str
    entity_type: str
    entity_id: str | None
    payload: dict
    created_at: datetime


class InMemoryStore:
    """Shared state for fake repositories with savepoint-like rollback."""

    def __init__(self) -> None:
        self.students: dict[UUID, FakeStudent] = {}
        self.packages: dict[UUID, FakePackage] = {}
        self.transactions: list[FakeTransaction] = []
        self.bookings: dict[UUID, FakeBooking] = {}
        self.audit_logs: list[dict] = []

    def _snapshot(self) -> dict:
        return {
            "remaining": {key: item.remaining_hours for key, item in self.packages.items()},
            "packages": set(self.packages),
            "transactions": len(self.transactions),
            "bookings": {
                key: (item.status, item.completed_at, item.cancelled_at)
                for key, item in self.bookings.items()
            },
            "audit_logs": len(self.audit_logs),
        }

    def _restore(self, snapshot: dict) -> None:
        for key in set(self.packages) - snapshot["packages"]:
            del self.packages[key]
        for key, remaining in snapshot["remaining"].items():
            self.packages[key].remaining_hours = remaining
        del self.transactions[snapshot["transactions"] :]
        for key in set(self.bookings) - set(snapshot["bookings"]):
            del self.bookings[key]
        for key, (status, completed_at, cancelled_at) in snapshot["bookings"].items():
            booking = self.bookings[key]
            booking.status = status
            booking.completed_at = completed_at
            booking.cancelled_at = cancelled_at
        del self.audit_logs[snapshot["audit_logs"] :]

    @asynccontextmanager
    async def atomic(self):
        snapshot = self._snapshot()
        try:
            yield
        except BaseException:
            self._restore(snapshot)
            raise

    def add_student(self, account_id: UUID, name: str = "Alex Driver") -> FakeStudent:
        student = FakeStudent(id=uuid4(), account_id=account_id, name=name)
        self.students[student.id] = student
        return student

    def add_package(
        self,
        account_id: UUID,
        student_id: UUID,
        hours: str,
        purchase_date: datetime,
        remaining: str | None = None,
    ) -> FakePackage:
        package = FakePackage(
            id=uuid4(),
            account_id=account_id,
            student_id=student_id,
            package_hours=Decimal(hours),
            remaining_hours=Decimal(remaining if remaining is not None else hours),
            purchase_date=purchase_date,
        )
        self.packages[package.id] = package
        return package

    def add_booking(
        self,
        account_id: UUID,
        student: FakeStudent,
        start_at: datetime,
        end_at: datetime,
        status: BookingStatusEnum = BookingStatusEnum.SCHEDULED,
    ) -> FakeBooking:
        booking = FakeBooking(
            id=uuid4(),
            account_id=account_id,
            student_id=student.id,
            title=f"{student.name} - Driving lesson",
            lesson_type=LessonTypeEnum.LESSON,
            status=status,
            start_at=start_at,
            end_at=end_at,
        )
        self.bookings[booking.id] = booking
        return booking

    def deducted_total(self, package_id: UUID) -> Decimal:
        return sum(
            (item.hours_deducted for item in self.transactions if item.package_id == package_id),
            Decimal("0"),
        )


class FakeStudentsRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create_student(self, account_id: UUID, **fields) -> FakeStudent:
        student = FakeStudent(id=uuid4(), account_id=account_id, **fields)
        self.store.students[student.id] = student
        return student

    async def get_student(self, account_id: UUID, student_id: UUID) -> FakeStudent | None:
        student = self.store.students.get(student_id)
        if student is None or student.account_id != account_id:
            return None
        return student

    async def list_students(self, account_id: UUID, limit: int, offset: int):
        items = sorted(
            (item for item in self.store.students.values() if item.account_id == account_id),
            key=lambda item: item.name,
        )
        return items[offset : offset + limit], len(items)

    async def update_student(self, student: FakeStudent, **changes) -> FakeStudent:
        for key, value in changes.items():
            setattr(student, key, value)
        return student


class FakeLedgerRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.concurrent_writes: list[Callable[[InMemoryStore], None]] = []
        self.swap_attempts = 0

    def atomic(self):
        # Simulated writers commit between planning and this unit of work.
        if self.concurrent_writes:
            self.concurrent_writes.pop(0)(self.store)
        return self.store.atomic()

    async def create_package(
        self,
        account_id: UUID,
        student_id: UUID,
        package_hours: Decimal,
        amount_paid: Decimal | None,
        purchase_date: datetime,
        notes: str | None,
    ) -> FakePackage:
        package = FakePackage(
            id=uuid4(),
            account_id=account_id,
            student_id=student_id,
            package_hours=package_hours,
            remaining_hours=package_hours,
            amount_paid=amount_paid,
            purchase_date=purchase_date,
            notes=notes,
        )
        self.store.packages[package.id] = package
        return package

    async def get_package(self, account_id: UUID, package_id: UUID) -> FakePackage | None:
        package = self.store.packages.get(package_id)
        if package is None or package.account_id != account_id:
            return None
        return package

    def _student_packages(self, account_id: UUID, student_id: UUID) -> list[FakePackage]:
        return [
            item
            for item in self.store.packages.values()
            if item.account_id == account_id and item.student_id == student_id
        ]

    async def list_packages_by_student(
        self,
        account_id: UUID,
        student_id: UUID,
        limit: int,
        offset: int,
    ):
        items = sorted(
            self._student_packages(account_id, student_id),
            key=lambda item: item.purchase_date,
            reverse=True,
        )
        return items[offset : offset + limit], len(items)

    async def list_student_packages(self, account_id: UUID, student_id: UUID) -> list[FakePackage]:
        return self._student_packages(account_id, student_id)

    async def list_open_packages(self, account_id: UUID, student_id: UUID) -> list[FakePackage]:
        return [item for item in self._student_packages(account_id, student_id) if item.remaining_hours > 0]

    async def list_account_packages(self, account_id: UUID) -> list[FakePackage]:
        return [item for item in self.store.packages.values() if item.account_id == account_id]

    async def compare_and_set_remaining(
        self,
        package: FakePackage,
        expected: Decimal,
        new_value: Decimal,
    ) -> bool:
        self.swap_attempts += 1
        if package.remaining_hours != expected:
            return False
        package.remaining_hours = new_value
        return True

    async def add_transaction(
        self,
        package_id: UUID,
        booking_id: UUID,
        hours_deducted: Decimal,
        transaction_date: datetime,
        reverses_transaction_id: UUID | None = None,
        note: str | None = None,
    ) -> FakeTransaction:
        transaction = FakeTransaction(
            id=uuid4(),
            package_id=package_id,
            booking_id=booking_id,
            hours_deducted=hours_deducted,
            transaction_date=transaction_date,
            reverses_transaction_id=reverses_transaction_id,
            note=note,
        )
        self.store.transactions.append(transaction)
        return transaction

    async def get_transaction(self, account_id: UUID, transaction_id: UUID) -> FakeTransaction | None:
        for item in self.store.transactions:
            if item.id == transaction_id and self.store.packages[item.package_id].account_id == account_id:
                return item
        return None

    async def get_reversal_for(self, transaction_id: UUID) -> FakeTransaction | None:
        for item in self.store.transactions:
            if item.reverses_transaction_id == transaction_id:
                return item
        return None

    async def list_transactions_for_package(self, package_id: UUID) -> list[FakeTransaction]:
        return [item for item in self.store.transactions if item.package_id == package_id]

    async def list_transactions_for_booking(self, booking_id: UUID) -> list[FakeTransaction]:
        return [item for item in self.store.transactions if item.booking_id == booking_id]

    async def sum_deducted_by_package(self, account_id: UUID) -> dict[UUID, Decimal]:
        totals: dict[UUID, Decimal] = {}
        for item in self.store.transactions:
            if self.store.packages[item.package_id].account_id != account_id:
                continue
            totals[item.package_id] = totals.get(item.package_id, Decimal("0")) + item.hours_deducted
        return totals


class FakeBookingRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.lose_next_transition = False

    def atomic(self):
        return self.store.atomic()

    async def create_booking(
        self,
        account_id: UUID,
        draft: BookingDraft,
        title: str,
        series_id: UUID | None,
    ) -> FakeBooking:
        booking = FakeBooking(
            id=uuid4(),
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
        self.store.bookings[booking.id] = booking
        return booking

    async def get_booking(self, account_id: UUID, booking_id: UUID) -> FakeBooking | None:
        booking = self.store.bookings.get(booking_id)
        if booking is None or booking.account_id != account_id:
            return None
        return booking

    async def list_bookings(
        self,
        account_id: UUID,
        limit: int,
        offset: int,
        student_id: UUID | None = None,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
    ):
        items = [item for item in self.store.bookings.values() if item.account_id == account_id]
        if student_id is not None:
            items = [item for item in items if item.student_id == student_id]
        if starts_from is not None:
            items = [item for item in items if item.start_at >= starts_from]
        if starts_before is not None:
            items = [item for item in items if item.start_at < starts_before]
        items.sort(key=lambda item: item.start_at)
        return items[offset : offset + limit], len(items)

    async def transition_status(
        self,
        booking: FakeBooking,
        from_status: BookingStatusEnum,
        to_status: BookingStatusEnum,
        changed_at: datetime,
    ) -> bool:
        if self.lose_next_transition:
            self.lose_next_transition = False
            return False
        if booking.status != from_status:
            return False
        booking.status = to_status
        if to_status == BookingStatusEnum.COMPLETED:
            booking.completed_at = changed_at
        elif to_status == BookingStatusEnum.CANCELLED:
            booking.cancelled_at = changed_at
        return True

    async def save(self, booking: FakeBooking) -> FakeBooking:
        self.store.bookings[booking.id] = booking
        return booking

    async def delete_booking(self, booking: FakeBooking) -> None:
        del self.store.bookings[booking.id]


class FakeAuditRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    @property
    def actions(self) -> list[str]:
        return [item["action"] for item in self.store.audit_logs]

    async def create_audit_log(
        self,
        actor_id: UUID | None,
        action: str,
        entity_type: str,
        entity_id: str | None,
        payload: dict,
    ) -> dict:
        log = {
            "id": uuid4(),
            "actor_id": actor_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "payload": payload,
            "created_at": _now(),
        }
        self.store.audit_logs.append(log)
        return log

    async def list_audit_logs(self, actor_id: UUID, limit: int, offset: int):
        items = [
            FakeAuditLog(**item)
            for item in reversed(self.store.audit_logs)
            if item["actor_id"] == actor_id
        ]
        return items[offset : offset + limit], len(items)
