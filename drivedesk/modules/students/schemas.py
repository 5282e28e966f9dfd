"""Student schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StudentCreate(BaseModel):
    """Create student request."""

    name: str = Field(min_length=2, max_length=255)
    phone_number: str | None = Field(default=None, max_length=64)
    driving_license_number: str | None = Field(default=None, max_length=64)
    full_address: str | None = Field(default=None, max_length=512)
    notes: str | None = None


class StudentUpdate(BaseModel):
    """Partial update of student profile fields."""

    name: str | None = Field(default=None, min_length=2, max_length=255)
    phone_number: str | None = Field(default=None, max_length=64)
    driving_license_number: str | None = Field(default=None, max_length=64)
    full_address: str | None = Field(default=None, max_length=512)
    notes: str | None = None


class StudentRead(BaseModel):
    """Student response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    name: str
    phone_number: str | None
    driving_license_number: str | None
    full_address: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
