"""Initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


lesson_type_enum = sa.Enum("lesson", "test", "personal", name="lesson_type_enum", native_enum=False)
booking_status_enum = sa.Enum(
    "scheduled", "completed", "cancelled", name="booking_status_enum", native_enum=False
)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "students",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=64), nullable=True),
        sa.Column("driving_license_number", sa.String(length=64), nullable=True),
        sa.Column("full_address", sa.String(length=512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_students_account_id", "students", ["account_id"], unique=False)

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("lesson_type", lesson_type_enum, nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("targets_for_next_session", sa.Text(), nullable=True),
        sa.Column("series_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("series_index", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_bookings_student_id_students", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("end_at > start_at", name="ck_bookings_end_after_start"),
    )
    op.create_index("ix_bookings_account_id", "bookings", ["account_id"], unique=False)
    op.create_index("ix_bookings_student_id", "bookings", ["student_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_start_at", "bookings", ["start_at"], unique=False)
    op.create_index("ix_bookings_series_id", "bookings", ["series_id"], unique=False)

    op.create_table(
        "hour_packages",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("package_hours", sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column("remaining_hours", sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_hour_packages_student_id_students", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("package_hours > 0", name="ck_hour_packages_package_hours_positive"),
        sa.CheckConstraint(
            "remaining_hours >= 0 AND remaining_hours <= package_hours",
            name="ck_hour_packages_remaining_hours_bounds",
        ),
        sa.CheckConstraint(
            "amount_paid IS NULL OR amount_paid >= 0",
            name="ck_hour_packages_amount_paid_non_negative",
        ),
    )
    op.create_index("ix_hour_packages_account_id", "hour_packages", ["account_id"], unique=False)
    op.create_index("ix_hour_packages_student_id", "hour_packages", ["student_id"], unique=False)
    op.create_index("ix_hour_packages_purchase_date", "hour_packages", ["purchase_date"], unique=False)

    op.create_table(
        "ledger_transactions",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hours_deducted", sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reverses_transaction_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("note", sa.String(length=512), nullable=True),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["hour_packages.id"],
            name="fk_ledger_transactions_package_id_hour_packages",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["booking_id"], ["bookings.id"], name="fk_ledger_transactions_booking_id_bookings", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["reverses_transaction_id"],
            ["ledger_transactions.id"],
            name="fk_ledger_transactions_reverses_transaction_id_ledger_transactions",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("reverses_transaction_id", name="uq_ledger_transactions_reverses_transaction_id"),
    )
    op.create_index("ix_ledger_transactions_package_id", "ledger_transactions", ["package_id"], unique=False)
    op.create_index("ix_ledger_transactions_booking_id", "ledger_transactions", ["booking_id"], unique=False)

    op.create_table(
        "audit_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_ledger_transactions_booking_id", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_package_id", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")

    op.drop_index("ix_hour_packages_purchase_date", table_name="hour_packages")
    op.drop_index("ix_hour_packages_student_id", table_name="hour_packages")
    op.drop_index("ix_hour_packages_account_id", table_name="hour_packages")
    op.drop_table("hour_packages")

    op.drop_index("ix_bookings_series_id", table_name="bookings")
    op.drop_index("ix_bookings_start_at", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_student_id", table_name="bookings")
    op.drop_index("ix_bookings_account_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_students_account_id", table_name="students")
    op.drop_table("students")
