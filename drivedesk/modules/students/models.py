"""Student ORM models."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from drivedesk.core.database import Base, BaseModelMixin


class Student(BaseModelMixin, Base):
    """Learner driver owned by an instructor account."""

    __tablename__ = "students"

    account_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    driving_license_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    full_address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
