"""create instances table

Revision ID: 20250304_1939_instances_table
Revises: 20230713_1415_study_tables
Create Date: 2025-03-04 19:39:00
"""

from alembic import op
import sqlalchemy as sa


revision = "20250304_1939_instances_table"
down_revision = "20230713_1415_study_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "lab_instances",
        sa.Column("instance_id", sa.String(36), primary_key=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("hostname", sa.String(255), nullable=True),
        sa.Column("port", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_heartbeat", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_lab_instances_last_heartbeat", "lab_instances", ["last_heartbeat"])
    op.create_index("ix_lab_instances_start_time", "lab_instances", ["start_time"])


def downgrade() -> None:
    op.drop_index("ix_lab_instances_start_time", table_name="lab_instances")
    op.drop_index("ix_lab_instances_last_heartbeat", table_name="lab_instances")
    op.drop_table("lab_instances")
