"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Creates all tables for SoulPass: profiles, events, rsvps.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("address", sa.String(128), primary_key=True),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("avatar_url", sa.String(1000), nullable=True),
        sa.Column("linkedin_url", sa.String(500), nullable=True),
        sa.Column("twitter_url", sa.String(500), nullable=True),
        sa.Column("github_url", sa.String(500), nullable=True),
        sa.Column("reputation_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("events_attended", sa.Integer, nullable=False, server_default="0"),
        sa.Column("events_approved", sa.Integer, nullable=False, server_default="0"),
        sa.Column("score_stale", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(36), primary_key=True),
        sa.Column("organizer_id", sa.String(128), sa.ForeignKey("profiles.address"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("capacity", sa.Integer, nullable=True),
        sa.Column("visibility", sa.String(10), nullable=False, server_default="public"),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("end_time IS NULL OR end_time >= start_time", name="ck_events_end_after_start"),
        sa.CheckConstraint("capacity IS NULL OR capacity > 0", name="ck_events_capacity_positive"),
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])

    # --- rsvps ---
    op.create_table(
        "rsvps",
        sa.Column("rsvp_id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("participant_id", sa.String(128), sa.ForeignKey("profiles.address"), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attended_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("event_id", "participant_id", name="uq_rsvps_event_participant"),
        sa.CheckConstraint("attended_at IS NULL OR approved_at IS NOT NULL", name="ck_rsvps_attended_after_approved"),
    )
    op.create_index("ix_rsvps_event_id", "rsvps", ["event_id"])
    op.create_index("ix_rsvps_participant_id", "rsvps", ["participant_id"])


def downgrade() -> None:
    op.drop_index("ix_rsvps_participant_id", table_name="rsvps")
    op.drop_index("ix_rsvps_event_id", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_index("ix_events_organizer_id", table_name="events")
    op.drop_table("events")
    op.drop_table("profiles")
