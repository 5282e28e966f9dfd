"""Ledger schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PackageCreate(BaseModel):
    """Record a purchase of prepaid hours."""

    student_id: UUID
    package_hours: Decimal = Field(ge=Decimal("0.5"), max_digits=6, decimal_places=2)
    amount_paid: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    purchase_date: datetime | None = None
    notes: str | None = None


class PackageRead(BaseModel):
    """Hour package response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    package_hours: Decimal
    remaining_hours: Decimal
    amount_paid: Decimal | None
    purchase_date: datetime
    notes: str | None
    created_at: datetime
    updated_at: datetime


class LedgerTransactionRead(BaseModel):
    """Ledger transaction response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    package_id: UUID
    booking_id: UUID
    hours_deducted: Decimal
    transaction_date: datetime
    reverses_transaction_id: UUID | None
    note: str | None


class PackageDetailRead(BaseModel):
    """Package together with the bookings that used its hours."""

    package: PackageRead
    transactions: list[LedgerTransactionRead]


class TransactionReverseRequest(BaseModel):
    """Offset a transaction with a correcting entry."""

    note: str | None = Field(default=None, max_length=512)


class StudentBalanceRead(BaseModel):
    """Hours left for a student across every package."""

    model_config = ConfigDict(from_attributes=True)

    student_id: UUID
    package_count: int
    total_package_hours: Decimal
    total_remaining_hours: Decimal
    is_low: bool
    is_exhausted: bool


class BalanceDiscrepancyRead(BaseModel):
    """Package whose balance disagrees with its transaction log."""

    model_config = ConfigDict(from_attributes=True)

    package_id: UUID
    student_id: UUID
    package_hours: Decimal
    remaining_hours: Decimal
    deducted_total: Decimal
    expected_remaining_hours: Decimal
