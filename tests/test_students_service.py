from __future__ import annotations

from uuid import uuid4

import pytest

from drivedesk.modules.students.schemas import StudentCreate, StudentUpdate
from drivedesk.modules.students.service import StudentsService
from drivedesk.shared.exceptions import NotFoundException
from tests.fakes import FakeAuditRepository, FakeStudentsRepository, InMemoryStore

ACCOUNT_ID = uuid4()


def _build(store: InMemoryStore) -> tuple[StudentsService, FakeAuditRepository]:
    audit_repository = FakeAuditRepository(store)
    return StudentsService(FakeStudentsRepository(store), audit_repository), audit_repository


@pytest.mark.asyncio
async def test_create_student_is_scoped_to_account_and_audited() -> None:
    store = InMemoryStore()
    service, audit_repository = _build(store)

    student = await service.create_student(
        ACCOUNT_ID,
        StudentCreate(name="Priya Patel", phone_number="07700 900456"),
    )

    assert student.account_id == ACCOUNT_ID
    assert student.phone_number == "07700 900456"
    assert audit_repository.actions == ["students.create"]
    with pytest.raises(NotFoundException):
        await service.get_student(uuid4(), student.id)


@pytest.mark.asyncio
async def test_update_student_changes_only_sent_fields() -> None:
    store = InMemoryStore()
    service, audit_repository = _build(store)
    student = await service.create_student(
        ACCOUNT_ID,
        StudentCreate(name="Tom Hughes", full_address="2 High Street"),
    )

    updated = await service.update_student(
        ACCOUNT_ID,
        student.id,
        StudentUpdate(driving_license_number="HUGHE901010TH9AB"),
    )

    assert updated.driving_license_number == "HUGHE901010TH9AB"
    assert updated.full_address == "2 High Street"
    assert store.audit_logs[-1]["payload"] == {"fields": ["driving_license_number"]}
    assert audit_repository.actions == ["students.create", "students.update"]


@pytest.mark.asyncio
async def test_empty_update_is_a_no_op() -> None:
    store = InMemoryStore()
    service, audit_repository = _build(store)
    student = await service.create_student(ACCOUNT_ID, StudentCreate(name="Lee Chan"))

    await service.update_student(ACCOUNT_ID, student.id, StudentUpdate())

    assert audit_repository.actions == ["students.create"]


@pytest.mark.asyncio
async def test_list_students_orders_by_name() -> None:
    store = InMemoryStore()
    service, _ = _build(store)
    for name in ("Zed Young", "Amy Brown", "Max Ford"):
        await service.create_student(ACCOUNT_ID, StudentCreate(name=name))
    await service.create_student(uuid4(), StudentCreate(name="Other Account"))

    items, total = await service.list_students(ACCOUNT_ID, limit=2, offset=0)

    assert total == 3
    assert [item.name for item in items] == ["Amy Brown", "Max Ford"]
