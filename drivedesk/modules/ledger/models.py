"""Prepaid-hours ledger ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drivedesk.core.database import Base, BaseModelMixin


class HourPackage(BaseModelMixin, Base):
    """Block of prepaid lesson hours bought by a student."""

    __tablename__ = "hour_packages"
    __table_args__ = (
        CheckConstraint("package_hours > 0", name="package_hours_positive"),
        CheckConstraint(
            "remaining_hours >= 0 AND remaining_hours <= package_hours",
            name="remaining_hours_bounds",
        ),
        CheckConstraint("amount_paid IS NULL OR amount_paid >= 0", name="amount_paid_non_negative"),
    )

    account_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    package_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    remaining_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    amount_paid: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    purchase_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transactions: Mapped[list[LedgerTransaction]] = relationship(
        back_populates="package",
        order_by="LedgerTransaction.transaction_date",
    )


class LedgerTransaction(BaseModelMixin, Base):
    """Append-only record of hours taken from (or returned to) one package."""

    __tablename__ = "ledger_transactions"

    package_id: Mapped[UUID] = mapped_column(
        ForeignKey("hour_packages.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    booking_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    hours_deducted: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reverses_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ledger_transactions.id", ondelete="RESTRICT"),
        nullable=True,
        unique=True,
    )
    note: Mapped[str | None] = mapped_column(String(512), nullable=True)

    package: Mapped[HourPackage] = relationship(back_populates="transactions")
