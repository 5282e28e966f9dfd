"""Students repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from drivedesk.modules.students.models import Student


class StudentsRepository:
    """DB operations for students."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_student(self, account_id: UUID, **fields) -> Student:
        student = Student(account_id=account_id, **fields)
        self.session.add(student)
        await self.session.flush()
        return student

    async def get_student(self, account_id: UUID, student_id: UUID) -> Student | None:
        stmt = select(Student).where(
            Student.id == student_id,
            Student.account_id == account_id,
        )
        return await self.session.scalar(stmt)

    async def list_students(
        self,
        account_id: UUID,
        limit: int,
        offset: int,
    ) -> tuple[list[Student], int]:
        base_stmt: Select[tuple[Student]] = select(Student).where(Student.account_id == account_id)
        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Student.name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def update_student(self, student: Student, **changes) -> Student:
        for key, value in changes.items():
            setattr(student, key, value)
        await self.session.flush()
        return student
