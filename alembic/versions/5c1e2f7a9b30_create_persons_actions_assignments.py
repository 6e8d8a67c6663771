"""Create persons, actions and assignments tables

Revision ID: 5c1e2f7a9b30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e2f7a9b30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- persons ---
    op.create_table(
        "persons",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "uq_persons_name_lower", "persons", [sa.text("lower(name)")], unique=True
    )

    # --- actions (rewards + punishments) ---
    op.create_table(
        "actions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("value", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "(kind = 'reward' AND value > 0) OR (kind = 'punishment' AND value < 0)",
            name="ck_actions_value_sign",
        ),
    )
    op.create_index("ix_actions_kind", "actions", ["kind"])
    op.create_index(
        "uq_actions_kind_name_lower",
        "actions",
        ["kind", sa.text("lower(name)")],
        unique=True,
    )

    # --- assignments ---
    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "person_id",
            sa.Integer,
            sa.ForeignKey("persons.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("item_type", sa.String(20), nullable=False),
        sa.Column(
            "item_id",
            sa.Integer,
            sa.ForeignKey("actions.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("item_value", sa.Integer, nullable=False),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_assignments_person_time", "assignments", ["person_id", "assigned_at"])
    op.create_index("ix_assignments_assigned_at", "assignments", ["assigned_at"])
    op.create_index("ix_assignments_item", "assignments", ["item_type", "item_id"])


def downgrade() -> None:
    op.drop_table("assignments")
    op.drop_table("actions")
    op.drop_table("persons")
