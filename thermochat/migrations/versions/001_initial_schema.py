"""Initial ThermoChat schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rooms",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("temperature_c", sa.Float(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("owner_id", "name", name="uq_rooms_owner_name"),
    )
    op.create_index("ix_rooms_owner_id", "rooms", ["owner_id"])

    op.create_table(
        "scheduled_changes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("room", sa.String(128), nullable=False),
        sa.Column("temperature_c", sa.Float(), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_scheduled_changes_due_at", "scheduled_changes", ["due_at"])
    op.create_index("ix_scheduled_changes_owner_id", "scheduled_changes", ["owner_id"])

    op.create_table(
        "chat_turns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("response", sa.Text(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_chat_turns_owner_id", "chat_turns", ["owner_id"])


def downgrade() -> None:
    op.drop_index("ix_chat_turns_owner_id", table_name="chat_turns")
    op.drop_table("chat_turns")
    op.drop_index("ix_scheduled_changes_owner_id", table_name="scheduled_changes")
    op.drop_index("idx_scheduled_changes_due_at", table_name="scheduled_changes")
    op.drop_table("scheduled_changes")
    op.drop_index("ix_rooms_owner_id", table_name="rooms")
    op.drop_table("rooms")
