"""Students API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from drivedesk.modules.students.schemas import StudentCreate, StudentRead, StudentUpdate
from drivedesk.modules.students.service import StudentsService, get_students_service
from drivedesk.shared.accounts import get_account_id
from drivedesk.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/students", tags=["students"])


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    service: StudentsService = Depends(get_students_service),
    account_id: UUID = Depends(get_account_id),
) -> StudentRead:
    """Create a student record."""
    student = await service.create_student(account_id, payload)
    return StudentRead.model_validate(student)


@router.get("", response_model=Page[StudentRead])
async def list_students(
    pagination=Depends(get_pagination_params),
    service: StudentsService = Depends(get_students_service),
    account_id: UUID = Depends(get_account_id),
) -> Page[StudentRead]:
    """List students of the account ordered by name."""
    items, total = await service.list_students(account_id, pagination.limit, pagination.offset)
    serialized = [StudentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{student_id}", response_model=StudentRead)
async def get_student(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    account_id: UUID = Depends(get_account_id),
) -> StudentRead:
    student = await service.get_student(account_id, student_id)
    return StudentRead.model_validate(student)


@router.patch("/{student_id}", response_model=StudentRead)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    service: StudentsService = Depends(get_students_service),
    account_id: UUID = Depends(get_account_id),
) -> StudentRead:
    """Update student profile fields."""
    student = await service.update_student(account_id, student_id, payload)
    return StudentRead.model_validate(student)
