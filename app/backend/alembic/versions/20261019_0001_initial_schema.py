"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_classification = sa.Enum("Core", "Non-Core", name="user_classification")
app_role = sa.Enum("DEVELOPER", "TEAM LEAD", "IT LEAD", "ADMIN", name="app_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("classification", user_classification, nullable=False, server_default="Non-Core"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "role_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", app_role, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "role", name="uq_role_assignments_user_role"),
    )
    op.create_index("ix_role_assignments_user_id", "role_assignments", ["user_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("type", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("issue_key", sa.String(length=64), nullable=False),
        sa.Column("project_name", sa.String(length=255), nullable=False),
        sa.Column("service_name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("owner_user_id", sa.String(length=36), nullable=False),
        sa.Column("lifecycle_status", sa.String(length=64), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("deploy_sit_date", sa.Date(), nullable=True),
        sa.Column("deploy_uat_date", sa.Date(), nullable=True),
        sa.Column("deploy_preprod_date", sa.Date(), nullable=True),
        sa.Column("deploy_prod_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_issues_owner_user_id", "issues", ["owner_user_id"])
    op.create_index("ix_issues_project_name", "issues", ["project_name"])

    op.create_table(
        "time_log_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("issue_id", sa.String(length=36), nullable=False),
        sa.Column("log_date", sa.DateTime(timezone=False), nullable=False),
        sa.Column("hours_spent", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("hours_spent >= 0", name="ck_time_log_entries_hours_non_negative"),
    )
    op.create_index("ix_time_log_entries_log_date", "time_log_entries", ["log_date"])
    op.create_index("ix_time_log_entries_issue_id", "time_log_entries", ["issue_id"])

    op.create_table(
        "teams",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("team_lead_user_id", sa.String(length=36), nullable=False),
        sa.Column("team_name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_teams_lead_active", "teams", ["team_lead_user_id", "is_active"])

    op.create_table(
        "team_members",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("team_id", sa.String(length=36), sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_team_members_user_id", table_name="team_members")
    op.drop_table("team_members")

    op.drop_index("ix_teams_lead_active", table_name="teams")
    op.drop_table("teams")

    op.drop_index("ix_time_log_entries_issue_id", table_name="time_log_entries")
    op.drop_index("ix_time_log_entries_log_date", table_name="time_log_entries")
    op.drop_table("time_log_entries")

    op.drop_index("ix_issues_project_name", table_name="issues")
    op.drop_index("ix_issues_owner_user_id", table_name="issues")
    op.drop_table("issues")

    op.drop_table("projects")

    op.drop_index("ix_role_assignments_user_id", table_name="role_assignments")
    op.drop_table("role_assignments")

    op.drop_table("users")

    bind = op.get_bind()
    app_role.drop(bind, checkfirst=True)
    user_classification.drop(bind, checkfirst=True)
