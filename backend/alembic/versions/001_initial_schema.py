"""Initial schema: tournaments, participants, groups, matches, phase generation markers

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("tournament_type", sa.String(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False, server_default="registration"),
        sa.Column("num_groups", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("advancement_count", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("points_per_win", sa.Integer(), nullable=True),
        sa.Column("match_format", sa.String(), nullable=False, server_default="best_of_3"),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tournamentgroup",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "ordinal", name="uq_tournament_group_ordinal"),
    )
    op.create_index("ix_tournamentgroup_tournament_id", "tournamentgroup", ["tournament_id"])

    op.create_table(
        "participant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("seed", sa.Integer(), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["group_id"], ["tournamentgroup.id"]),
        sa.UniqueConstraint("tournament_id", "seed", name="uq_tournament_seed"),
    )
    op.create_index("ix_participant_tournament_id", "participant", ["tournament_id"])
    op.create_index("ix_participant_group_id", "participant", ["group_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("phase", sa.String(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("round_name", sa.String(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("bracket_position", sa.Integer(), nullable=True),
        sa.Column("participant_a_id", sa.Integer(), nullable=True),
        sa.Column("participant_b_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("winner_id", sa.Integer(), nullable=True),
        sa.Column("score_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["group_id"], ["tournamentgroup.id"]),
        sa.ForeignKeyConstraint(["participant_a_id"], ["participant.id"]),
        sa.ForeignKeyConstraint(["participant_b_id"], ["participant.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["participant.id"]),
        sa.UniqueConstraint("tournament_id", "match_number", name="uq_tournament_match_number"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_group_id", "match", ["group_id"])

    # Atomic idempotency guard for match generation
    op.create_table(
        "phasegeneration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False),
        sa.Column("matches_created", sa.Integer(), nullable=False),
        sa.Column("groups_created", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "phase", name="uq_tournament_phase_generation"),
    )
    op.create_index("ix_phasegeneration_tournament_id", "phasegeneration", ["tournament_id"])


def downgrade() -> None:
    op.drop_index("ix_phasegeneration_tournament_id", table_name="phasegeneration")
    op.drop_table("phasegeneration")
    op.drop_index("ix_match_group_id", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_participant_group_id", table_name="participant")
    op.drop_index("ix_participant_tournament_id", table_name="participant")
    op.drop_table("participant")
    op.drop_index("ix_tournamentgroup_tournament_id", table_name="tournamentgroup")
    op.drop_table("tournamentgroup")
    op.drop_table("tournament")
