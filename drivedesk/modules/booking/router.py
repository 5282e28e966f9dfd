"""Booking API router."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from drivedesk.modules.booking.schemas import (
    BookingDraftRead,
    BookingRead,
    BookingSeriesCreate,
    BookingUpdate,
)
from drivedesk.modules.booking.service import BookingService, get_booking_service
from drivedesk.shared.accounts import get_account_id
from drivedesk.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/bookings", tags=["booking"])


@router.post("/preview", response_model=list[BookingDraftRead])
async def preview_series(
    payload: BookingSeriesCreate,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> list[BookingDraftRead]:
    """Show the occurrences a request would create."""
    drafts = await service.preview_series(account_id, payload)
    return [BookingDraftRead.model_validate(item) for item in drafts]


@router.post("/series", response_model=list[BookingRead], status_code=status.HTTP_201_CREATED)
async def create_series(
    payload: BookingSeriesCreate,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> list[BookingRead]:
    """Create a single or repeating booking."""
    bookings = await service.create_series(account_id, payload)
    return [BookingRead.model_validate(item) for item in bookings]


@router.get("", response_model=Page[BookingRead])
async def list_bookings(
    student_id: UUID | None = Query(default=None),
    starts_from: datetime | None = Query(default=None),
    starts_before: datetime | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> Page[BookingRead]:
    """List bookings ordered by start time."""
    items, total = await service.list_bookings(
        account_id=account_id,
        limit=pagination.limit,
        offset=pagination.offset,
        student_id=student_id,
        starts_from=starts_from,
        starts_before=starts_before,
    )
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> BookingRead:
    booking = await service.get_booking(account_id, booking_id)
    return BookingRead.model_validate(booking)


@router.patch("/{booking_id}", response_model=BookingRead)
async def update_booking(
    booking_id: UUID,
    payload: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> BookingRead:
    """Edit a scheduled booking."""
    booking = await service.update_booking(account_id, booking_id, payload)
    return BookingRead.model_validate(booking)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> Response:
    await service.delete_booking(account_id, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> BookingRead:
    """Complete booking and deduct its length from prepaid hours."""
    booking = await service.complete_booking(account_id, booking_id)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    account_id: UUID = Depends(get_account_id),
) -> BookingRead:
    booking = await service.cancel_booking(account_id, booking_id)
    return BookingRead.model_validate(booking)
