"""Initial schema: users, tournaments, settings, state, teams, team_members

Revision ID: 001_initial
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dupr_id", sa.String(), nullable=True),
        sa.Column("doubles_rating", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="upcoming"),
        sa.Column("format_type", sa.String(), nullable=True),
        sa.Column("skill_cap", sa.String(), nullable=True),
        sa.Column("fee", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tournament_settings",
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("max_teams", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("rounds", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("playoff_teams", sa.Integer(), nullable=True),
        sa.Column("playoff_best_of_three", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("playoff_bronze_best_of_three", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dupr_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dupr_tier", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("tournament_id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
    )

    op.create_table(
        "tournament_state",
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("phase", sa.String(), nullable=False, server_default="registration"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("tournament_id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
    )

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
    )
    op.create_index("ix_teams_tournament_id", "teams", ["tournament_id"])

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )
    op.create_index("ix_team_members_team_id", "team_members", ["team_id"])
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])


def downgrade() -> None:
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("tournament_state")
    op.drop_table("tournament_settings")
    op.drop_table("tournaments")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
