"""Initial migration: create event, registration, bracket, match, result tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Mirrors of the events/registration service records
    op.create_table(
        "event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="UPCOMING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("entrant_id", sa.Integer(), nullable=False),
        sa.Column("entrant_name", sa.String(), nullable=False),
        sa.Column("dojo_name", sa.String(), nullable=True),
        sa.Column("belt_rank", sa.String(), nullable=True),
        sa.Column("category_age", sa.String(), nullable=True),
        sa.Column("category_weight", sa.String(), nullable=True),
        sa.Column("category_belt", sa.String(), nullable=True),
        sa.Column("approval_status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "entrant_id", name="uq_event_entrant"),
    )
    op.create_index("ix_registration_event_id", "registration", ["event_id"])

    op.create_table(
        "bracket",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("category_name", sa.String(), nullable=False),
        sa.Column("category_age", sa.String(), nullable=False),
        sa.Column("category_weight", sa.String(), nullable=False),
        sa.Column("category_belt", sa.String(), nullable=False),
        sa.Column("total_participants", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="DRAFT"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "category_age", "category_weight", "category_belt", name="uq_event_category"),
    )
    op.create_index("ix_bracket_event_id", "bracket", ["event_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("round_name", sa.String(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("fighter_a_id", sa.Integer(), nullable=True),
        sa.Column("fighter_a_name", sa.String(), nullable=True),
        sa.Column("fighter_b_id", sa.Integer(), nullable=True),
        sa.Column("fighter_b_name", sa.String(), nullable=True),
        sa.Column("is_bye", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(), nullable=False, server_default="SCHEDULED"),
        sa.Column("score_a", sa.Integer(), nullable=True),
        sa.Column("score_b", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("next_match_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["bracket_id"], ["bracket.id"]),
        sa.ForeignKeyConstraint(["next_match_id"], ["match.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("bracket_id", "match_number", name="uq_bracket_match_number"),
    )
    op.create_index("ix_match_bracket_id", "match", ["bracket_id"])
    op.create_index("ix_match_next_match_id", "match", ["next_match_id"])

    op.create_table(
        "result",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("bracket_id", sa.Integer(), nullable=False),
        sa.Column("entrant_id", sa.Integer(), nullable=False),
        sa.Column("entrant_name", sa.String(), nullable=True),
        sa.Column("category_name", sa.String(), nullable=False),
        sa.Column("final_rank", sa.Integer(), nullable=False),
        sa.Column("medal", sa.String(), nullable=False),
        sa.Column("total_matches", sa.Integer(), nullable=False),
        sa.Column("matches_won", sa.Integer(), nullable=False),
        sa.Column("matches_lost", sa.Integer(), nullable=False),
        sa.Column("eliminated_in_round", sa.String(), nullable=True),
        sa.Column("eliminated_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["bracket_id"], ["bracket.id"]),
    )
    op.create_index("ix_result_event_id", "result", ["event_id"])
    op.create_index("ix_result_bracket_id", "result", ["bracket_id"])


def downgrade() -> None:
    op.drop_table("result")
    op.drop_table("match")
    op.drop_table("bracket")
    op.drop_table("registration")
    op.drop_table("event")
