"""Initial schema: records, service providers and learning tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-01

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # ── service_providers ─────────────────────────────────────────────
    op.create_table(
        "service_providers",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("provider_type", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "provider_type", "name", name="uq_service_provider"),
    )
    op.create_index("ix_service_providers_user_id", "service_providers", ["user_id"])

    # ── service_provider_wages ────────────────────────────────────────
    op.create_table(
        "service_provider_wages",
        _id(),
        sa.Column(
            "service_provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("service_providers.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("frequency", sa.Text, nullable=False),
        sa.Column("visits_per_week", sa.Integer, nullable=True),
        sa.Column("hours_per_visit", sa.Float, nullable=True),
        sa.Column("effective_from", sa.Date, nullable=False),
        sa.CheckConstraint(
            "frequency IN ('hourly', 'daily', 'weekly', 'monthly')",
            name="ck_wage_frequency",
        ),
    )

    # ── transactions ──────────────────────────────────────────────────
    op.create_table(
        "transactions",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.Text, nullable=False, server_default="expense"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("payment_method", sa.Text, nullable=True),
        sa.Column("event_date", sa.Date, nullable=False),
        sa.Column(
            "service_provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("service_providers.id"),
            nullable=True,
        ),
        _created_at(),
        sa.CheckConstraint("type IN ('expense', 'income')", name="ck_transactions_type"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])

    # ── transaction_categories ────────────────────────────────────────
    op.create_table(
        "transaction_categories",
        _id(),
        sa.Column(
            "transaction_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("transactions.id"),
            nullable=False,
        ),
        sa.Column("category", sa.Text, nullable=False),
    )

    # ── attendance_logs ───────────────────────────────────────────────
    op.create_table(
        "attendance_logs",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column(
            "service_provider_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("service_providers.id"),
            nullable=False,
        ),
        sa.Column("event_date", sa.Date, nullable=False),
        sa.Column("status", sa.Text, nullable=False),
        _created_at(),
        sa.CheckConstraint("status IN ('present', 'absent')", name="ck_attendance_status"),
    )
    op.create_index("ix_attendance_logs_user_id", "attendance_logs", ["user_id"])

    # ── reminders ─────────────────────────────────────────────────────
    op.create_table(
        "reminders",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("recurring", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("frequency", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])

    # ── event_relationships ───────────────────────────────────────────
    op.create_table(
        "event_relationships",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("primary_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("related_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("relationship_type", sa.Text, nullable=False),
        sa.Column("strength", sa.Float, nullable=False),
        _created_at(),
    )
    op.create_index("ix_event_relationships_user_id", "event_relationships", ["user_id"])

    # ── learning_patterns ─────────────────────────────────────────────
    op.create_table(
        "learning_patterns",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("pattern_type", sa.Text, nullable=False),
        sa.Column("pattern_key", sa.Text, nullable=False),
        sa.Column("confidence", sa.Float, nullable=False),
        sa.Column("pattern_data", postgresql.JSONB, nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "pattern_type", "pattern_key", name="uq_learning_pattern"),
    )
    op.create_index("ix_learning_patterns_user_id", "learning_patterns", ["user_id"])

    # ── context_logs ──────────────────────────────────────────────────
    op.create_table(
        "context_logs",
        _id(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("utterance", sa.Text, nullable=False),
        sa.Column("intent", sa.Text, nullable=False),
        sa.Column("confidence", sa.Float, nullable=False),
        sa.Column("slots", postgresql.JSONB, nullable=False),
        _created_at(),
    )
    op.create_index("ix_context_logs_user_id", "context_logs", ["user_id"])


def downgrade() -> None:
    op.drop_table("context_logs")
    op.drop_table("learning_patterns")
    op.drop_table("event_relationships")
    op.drop_table("reminders")
    op.drop_table("attendance_logs")
    op.drop_table("transaction_categories")
    op.drop_table("transactions")
    op.drop_table("service_provider_wages")
    op.drop_table("service_providers")
