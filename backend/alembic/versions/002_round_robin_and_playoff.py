"""Round-robin matches/scores and playoff state/scores (versioned)

Revision ID: 002_round_robin_playoff
Revises: 001_initial
"""

from alembic import op
import sqlalchemy as sa


revision = "002_round_robin_playoff"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "round_robin_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("team1_id", sa.Integer(), sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("team2_id", sa.Integer(), sa.ForeignKey("teams.id"), nullable=False),
    )
    op.create_index("ix_round_robin_matches_tournament_id", "round_robin_matches", ["tournament_id"])

    # Absent row == version 0
    op.create_table(
        "round_robin_scores",
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("round_robin_matches.id"), primary_key=True),
        sa.Column("score1", sa.Integer(), nullable=True),
        sa.Column("score2", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "playoff_state",
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), primary_key=True),
        sa.Column("status", sa.String(), nullable=False, server_default="playoff"),
        sa.Column("playoff_team_count", sa.Integer(), nullable=False),
        sa.Column("bracket_size", sa.Integer(), nullable=False),
        sa.Column("seed_order", sa.JSON(), nullable=False),
        sa.Column("best_of_three", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bronze_best_of_three", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("started_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "playoff_scores",
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("match_number", sa.Integer(), nullable=False),
        sa.Column("game1_score1", sa.Integer(), nullable=True),
        sa.Column("game1_score2", sa.Integer(), nullable=True),
        sa.Column("game2_score1", sa.Integer(), nullable=True),
        sa.Column("game2_score2", sa.Integer(), nullable=True),
        sa.Column("game3_score1", sa.Integer(), nullable=True),
        sa.Column("game3_score2", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("tournament_id", "round_number", "match_number"),
    )


def downgrade():
    op.drop_table("playoff_scores")
    op.drop_table("playoff_state")
    op.drop_table("round_robin_scores")
    op.drop_index("ix_round_robin_matches_tournament_id", table_name="round_robin_matches")
    op.drop_table("round_robin_matches")
