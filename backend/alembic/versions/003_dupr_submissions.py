"""DUPR batch submission log and submitted-match audit rows

Revision ID: 003_dupr_submissions
Revises: 002_round_robin_playoff
"""

from alembic import op
import sqlalchemy as sa


revision = "003_dupr_submissions"
down_revision = "002_round_robin_playoff"
branch_labels = None
depends_on = None


def upgrade():
    # -----------------------------------------------------------------------
    # 1. dupr_match_submissions - one row per batch attempt
    # -----------------------------------------------------------------------
    op.create_table(
        "dupr_match_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), nullable=False),
        sa.Column("submitted_by", sa.String(), nullable=False),
        sa.Column("dupr_env", sa.String(), nullable=False, server_default="uat"),
        sa.Column("endpoint", sa.String(), nullable=False),
        sa.Column("match_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("response", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_dupr_match_submissions_tournament_id", "dupr_match_submissions", ["tournament_id"])

    # -----------------------------------------------------------------------
    # 2. dupr_submitted_matches - one audit row per reported match
    # -----------------------------------------------------------------------
    game_columns = []
    for n in range(1, 6):
        nullable = n > 1
        game_columns.append(sa.Column(f"team_a_game{n}", sa.Integer(), nullable=nullable))
        game_columns.append(sa.Column(f"team_b_game{n}", sa.Integer(), nullable=nullable))

    op.create_table(
        "dupr_submitted_matches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), nullable=True),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("dupr_match_submissions.id"), nullable=True),
        sa.Column("submitted_by", sa.String(), nullable=False),
        sa.Column("dupr_env", sa.String(), nullable=False, server_default="uat"),
        sa.Column("dupr_match_id", sa.Integer(), nullable=True),
        sa.Column("dupr_match_code", sa.String(), nullable=True),
        sa.Column("identifier", sa.String(), nullable=False),
        sa.Column("event_name", sa.String(), nullable=False),
        sa.Column("bracket_name", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("match_date", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False, server_default="DOUBLES"),
        sa.Column("match_type", sa.String(), nullable=False, server_default="SIDEOUT"),
        sa.Column("club_id", sa.Integer(), nullable=True),
        sa.Column("team_a_player1", sa.String(), nullable=False),
        sa.Column("team_a_player2", sa.String(), nullable=True),
        sa.Column("team_b_player1", sa.String(), nullable=False),
        sa.Column("team_b_player2", sa.String(), nullable=True),
        sa.Column("team_a_player1_dupr", sa.String(), nullable=False),
        sa.Column("team_a_player2_dupr", sa.String(), nullable=True),
        sa.Column("team_b_player1_dupr", sa.String(), nullable=False),
        sa.Column("team_b_player2_dupr", sa.String(), nullable=True),
        *game_columns,
        sa.Column("status", sa.String(), nullable=False, server_default="submitted"),
        sa.Column("last_status_code", sa.Integer(), nullable=True),
        sa.Column("last_response", sa.String(), nullable=True),
        sa.Column("verification_status", sa.String(), nullable=True),
        sa.Column("verification_response", sa.String(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("identifier", "dupr_env", name="uq_submitted_identifier_env"),
    )
    op.create_index("ix_dupr_submitted_matches_tournament_id", "dupr_submitted_matches", ["tournament_id"])


def downgrade():
    op.drop_index("ix_dupr_submitted_matches_tournament_id", table_name="dupr_submitted_matches")
    op.drop_table("dupr_submitted_matches")
    op.drop_index("ix_dupr_match_submissions_tournament_id", table_name="dupr_match_submissions")
    op.drop_table("dupr_match_submissions")
