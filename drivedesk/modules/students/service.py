"""Students business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.core.database import get_db_session
from drivedesk.modules.audit.repository import AuditRepository
from drivedesk.modules.students.models import Student
from drivedesk.modules.students.repository import StudentsRepository
from drivedesk.modules.students.schemas import StudentCreate, StudentUpdate
from drivedesk.shared.exceptions import NotFoundException


class StudentsService:
    """Student records of an instructor account."""

    def __init__(self, repository: StudentsRepository, audit_repository: AuditRepository) -> None:
        self.repository = repository
        self.audit_repository = audit_repository

    async def create_student(self, account_id: UUID, payload: StudentCreate) -> Student:
        student = await self.repository.create_student(account_id, **payload.model_dump())
        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="students.create",
            entity_type="student",
            entity_id=str(student.id),
            payload={"name": student.name},
        )
        return student

    async def get_student(self, account_id: UUID, student_id: UUID) -> Student:
        """Return student of the account or raise not found."""
        student = await self.repository.get_student(account_id, student_id)
        if student is None:
            raise NotFoundException("Student not found")
        return student

    async def list_students(
        self,
        account_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[Student], int]:
        return await self.repository.list_students(account_id, limit, offset)

    async def update_student(
        self,
        account_id: UUID,
        student_id: UUID,
        payload: StudentUpdate,
    ) -> Student:
        """Update profile fields; identity and ownership never change."""
        student = await self.get_student(account_id, student_id)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return student
        student = await self.repository.update_student(student, **changes)
        await self.audit_repository.create_audit_log(
            actor_id=account_id,
            action="students.update",
            entity_type="student",
            entity_id=str(student.id),
            payload={"fields": sorted(changes)},
        )
        return student


async def get_students_service(session: AsyncSession = Depends(get_db_session)) -> StudentsService:
    """Dependency provider for students service."""
    return StudentsService(
        repository=StudentsRepository(session),
        audit_repository=AuditRepository(session),
    )
