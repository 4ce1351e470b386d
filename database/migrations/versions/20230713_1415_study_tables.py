"""create study tables

Revision ID: 20230713_1415_study_tables
Revises:
Create Date: 2023-07-13 14:15:30
"""

from alembic import op
import sqlalchemy as sa


revision = "20230713_1415_study_tables"
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "lab_studies",
        sa.Column("study_id", sa.String(255), primary_key=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("deletion_protection", sa.Boolean(), nullable=False, server_default=sa.false()),
        *timestamps(),
    )

    op.create_table(
        "lab_participants",
        sa.Column("participant_id", sa.String(36), primary_key=True),
        sa.Column("public_info", sa.JSON(), nullable=True),
        sa.Column("private_info", sa.JSON(), nullable=True),
        *timestamps(),
    )

    op.create_table(
        "lab_sessions",
        sa.Column("session_id", sa.String(36), primary_key=True),
        sa.Column("study_id", sa.String(255), sa.ForeignKey("lab_studies.study_id"), nullable=False),
        sa.Column(
            "participant_id",
            sa.String(36),
            sa.ForeignKey("lab_participants.participant_id"),
            nullable=True,
        ),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("finished", sa.Boolean(), nullable=False, server_default=sa.false()),
        *timestamps(),
    )
    op.create_index("ix_lab_sessions_created_at", "lab_sessions", ["created_at"])
    op.create_index("ix_lab_sessions_study_id", "lab_sessions", ["study_id"])

    op.create_table(
        "lab_responses",
        sa.Column("response_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(36), sa.ForeignKey("lab_sessions.session_id"), nullable=False),
        sa.Column(
            "participant_id",
            sa.String(36),
            sa.ForeignKey("lab_participants.participant_id"),
            nullable=True,
        ),
        sa.Column("study_id", sa.String(255), sa.ForeignKey("lab_studies.study_id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        *timestamps(),
    )
    op.create_index("ix_lab_responses_session_id", "lab_responses", ["session_id"])


def downgrade() -> None:
    op.drop_index("ix_lab_responses_session_id", table_name="lab_responses")
    op.drop_table("lab_responses")
    op.drop_index("ix_lab_sessions_study_id", table_name="lab_sessions")
    op.drop_index("ix_lab_sessions_created_at", table_name="lab_sessions")
    op.drop_table("lab_sessions")
    op.drop_table("lab_participants")
    op.drop_table("lab_studies")
