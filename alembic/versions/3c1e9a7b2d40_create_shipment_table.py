"""create shipment table

Revision ID: 3c1e9a7b2d40
Revises:
Create Date: 2026-09-02 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1e9a7b2d40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "shipment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("chassis_number", sa.String(length=40), nullable=False),
        sa.Column("make_model", sa.String(length=120), nullable=True),
        sa.Column("gate_in_date", sa.DateTime(), nullable=False),
        sa.Column("gate_out_date", sa.DateTime(), nullable=True),
        sa.Column("yard", sa.String(length=80), nullable=True),
        sa.Column("storage_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "export_status",
            sa.String(length=20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("vessel_name", sa.String(length=120), nullable=True),
        sa.Column("job_number", sa.String(length=60), nullable=True),
        sa.Column("pod", sa.String(length=80), nullable=True),
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
    )

    op.create_index("ix_shipment_client_id", "shipment", ["client_id"], unique=False)
    op.create_index("ix_shipment_chassis_number", "shipment", ["chassis_number"], unique=False)
    op.create_index("ix_shipment_gate_in_date", "shipment", ["gate_in_date"], unique=False)
    op.create_index("ix_shipment_gate_out_date", "shipment", ["gate_out_date"], unique=False)
    op.create_index("ix_shipment_yard", "shipment", ["yard"], unique=False)
    op.create_index("ix_shipment_export_status", "shipment", ["export_status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_shipment_export_status", table_name="shipment")
    op.drop_index("ix_shipment_yard", table_name="shipment")
    op.drop_index("ix_shipment_gate_out_date", table_name="shipment")
    op.drop_index("ix_shipment_gate_in_date", table_name="shipment")
    op.drop_index("ix_shipment_chassis_number", table_name="shipment")
    op.drop_index("ix_shipment_client_id", table_name="shipment")
    op.drop_table("shipment")
