"""add vessel master, shipment.vessel_id and migration_run

Revision ID: 7e4d2f8a1c93
Revises: 3c1e9a7b2d40
Create Date: 2026-09-16 14:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "7e4d2f8a1c93"
down_revision: Union[str, None] = "3c1e9a7b2d40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "vessel",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("vessel_name", sa.String(length=120), nullable=False),
        sa.Column("job_number", sa.String(length=60), nullable=True),
        sa.Column("pod", sa.String(length=80), nullable=True),
        sa.Column("etd", sa.DateTime(), nullable=True),
        sa.Column("shipping_line", sa.String(length=120), nullable=True),
        sa.Column("identity_key", sa.String(length=200), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column(
            "last_changed_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.UniqueConstraint("identity_key", name="uq_vessel_identity_key"),
    )
    op.create_index("ix_vessel_vessel_name", "vessel", ["vessel_name"], unique=False)
    op.create_index(
        "ix_vessel_name_job_number",
        "vessel",
        ["vessel_name", "job_number"],
        unique=False,
    )

    # No FK: dangling references must stay representable so verify can report them.
    op.add_column("shipment", sa.Column("vessel_id", sa.Integer(), nullable=True))
    op.create_index("ix_shipment_vessel_id", "shipment", ["vessel_id"], unique=False)

    op.create_table(
        "migration_run",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("phase", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("actor_email", sa.String(length=255), nullable=True),
        sa.Column(
            "started_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.Column("summary_json", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_migration_run_phase", "migration_run", ["phase"], unique=False)
    op.create_index("ix_migration_run_status", "migration_run", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_migration_run_status", table_name="migration_run")
    op.drop_index("ix_migration_run_phase", table_name="migration_run")
    op.drop_table("migration_run")

    op.drop_index("ix_shipment_vessel_id", table_name="shipment")
    op.drop_column("shipment", "vessel_id")

    op.drop_index("ix_vessel_name_job_number", table_name="vessel")
    op.drop_index("ix_vessel_vessel_name", table_name="vessel")
    op.drop_table("vessel")
