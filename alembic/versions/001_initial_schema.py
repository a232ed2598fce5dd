"""Initial schema — all tables

Revision ID: 001
Revises:
Create Date: 2026-01-05
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Meeting status enum
    meetingstatus = sa.Enum(
        "upcoming", "in_progress", "completed",
        name="meetingstatus",
    )

    op.create_table(
        "meeting",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meeting_type", sa.String(50), nullable=False),
        sa.Column("meeting_date", sa.Date(), nullable=False),
        sa.Column("meeting_time", sa.Time()),
        sa.Column("cycle_date", sa.Date(), nullable=False),
        sa.Column("video_url", sa.String(1000)),
        sa.Column("minutes", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", meetingstatus, nullable=False, server_default="upcoming"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("meeting_type", "meeting_date", name="uq_meeting_type_date"),
    )
    op.create_index("ix_meeting_meeting_date", "meeting", ["meeting_date"])
    op.create_index("ix_meeting_cycle_date", "meeting", ["cycle_date"])

    # Docket status enum
    docketstatus = sa.Enum(
        "new", "reviewed", "accepted", "needs_info", "rejected", "on_agenda",
        name="docketstatus",
    )

    op.create_table(
        "docket_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email_id", sa.String(255), nullable=False),
        sa.Column("email_from", sa.String(500), nullable=False, server_default=""),
        sa.Column("email_subject", sa.String(1000), nullable=False, server_default=""),
        sa.Column("email_date", sa.Date()),
        sa.Column("email_body_preview", sa.Text(), nullable=False, server_default=""),
        sa.Column("relevant", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confidence", sa.String(20)),
        sa.Column("item_type", sa.String(100)),
        sa.Column("department", sa.String(255)),
        sa.Column("summary", sa.Text()),
        sa.Column("extracted_fields", sa.JSON(), nullable=False),
        sa.Column("completeness", sa.JSON(), nullable=False),
        sa.Column("attachment_filenames", sa.JSON(), nullable=False),
        sa.Column("status", docketstatus, nullable=False, server_default="new"),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("target_meeting_date", sa.Date()),
        sa.Column("text_override", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email_id"),
    )
    op.create_index("ix_docket_item_item_type", "docket_item", ["item_type"])
    op.create_index("ix_docket_item_status", "docket_item", ["status"])
    op.create_index("ix_docket_item_target_meeting_date", "docket_item", ["target_meeting_date"])

    op.create_table(
        "ordinance_tracking",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("docket_id", sa.Integer(), nullable=False),
        sa.Column("ordinance_number", sa.String(100)),
        sa.Column("introduction_date", sa.Date()),
        sa.Column("introduction_meeting", sa.String(255)),
        sa.Column("pub_intro_date", sa.Date()),
        sa.Column("pub_intro_newspaper", sa.String(255)),
        sa.Column("bulletin_posted_date", sa.Date()),
        sa.Column("hearing_date", sa.Date()),
        sa.Column("hearing_amended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hearing_notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("adoption_date", sa.Date()),
        sa.Column("adoption_vote", sa.String(255)),
        sa.Column("adoption_failed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pub_final_date", sa.Date()),
        sa.Column("pub_final_newspaper", sa.String(255)),
        sa.Column("effective_date", sa.Date()),
        sa.Column("is_emergency", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("website_posted_date", sa.Date()),
        sa.Column("website_url", sa.String(1000)),
        sa.Column("clerk_notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["docket_id"], ["docket_item.id"]),
        sa.UniqueConstraint("docket_id"),
    )

    op.create_table(
        "history_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_type", sa.String(50), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("field_name", sa.String(100), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=False),
        sa.Column("new_value", sa.Text(), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_history_entry_owner", "history_entry", ["owner_type", "owner_id", "field_name"]
    )


def downgrade() -> None:
    op.drop_table("history_entry")
    op.drop_table("ordinance_tracking")
    op.drop_table("docket_item")
    op.drop_table("meeting")
    sa.Enum(name="meetingstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="docketstatus").drop(op.get_bind(), checkfirst=True)
