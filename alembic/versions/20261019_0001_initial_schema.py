"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_status = postgresql.ENUM("active", "deleted", name="user_status", create_type=False)
workspace_visibility = postgresql.ENUM("PUBLIC", "PRIVATE", name="workspace_visibility", create_type=False)
workspace_role = postgresql.ENUM("ADMIN", "MEMBER", name="workspace_role", create_type=False)
invitation_status = postgresql.ENUM("PENDING", "ACCEPTED", name="invitation_status", create_type=False)
project_status = postgresql.ENUM(
    "PLANNING", "ACTIVE", "COMPLETED", "ON_HOLD", "CANCELLED", name="project_status", create_type=False
)
priority = postgresql.ENUM("LOW", "MEDIUM", "HIGH", name="priority", create_type=False)
task_status = postgresql.ENUM("TODO", "IN_PROGRESS", "DONE", name="task_status", create_type=False)
task_type = postgresql.ENUM("TASK", "BUG", "FEATURE", "IMPROVEMENT", "OTHER", name="task_type", create_type=False)
contribution_status = postgresql.ENUM(
    "PENDING", "APPROVED", "REJECTED", name="contribution_status", create_type=False
)

ENUMS = (
    user_status,
    workspace_visibility,
    workspace_role,
    invitation_status,
    project_status,
    priority,
    task_status,
    task_type,
    contribution_status,
)


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _project_fk() -> sa.Column:
    return sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False)


def upgrade() -> None:
    for enum_type in ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("status", user_status, nullable=False, server_default="active"),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "workspaces",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("owner_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("visibility", workspace_visibility, nullable=False, server_default="PUBLIC"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "workspace_members",
        _uuid_pk(),
        sa.Column("workspace_id", sa.String(length=64), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", workspace_role, nullable=False, server_default="MEMBER"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
    )
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])

    op.create_table(
        "workspace_invitations",
        _uuid_pk(),
        sa.Column("workspace_id", sa.String(length=64), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", workspace_role, nullable=False, server_default="MEMBER"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("invited_by_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", invitation_status, nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("workspace_id", "email", name="uq_workspace_invitations_workspace_email"),
    )
    op.create_index("ix_workspace_invitations_email", "workspace_invitations", ["email"])

    op.create_table(
        "projects",
        _uuid_pk(),
        sa.Column("workspace_id", sa.String(length=64), sa.ForeignKey("workspaces.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", project_status, nullable=False, server_default="ACTIVE"),
        sa.Column("priority", priority, nullable=False, server_default="MEDIUM"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_lead_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("treasurer_name", sa.String(length=255), nullable=True),
        sa.Column("treasurer_phone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress_range"),
    )
    op.create_index("ix_projects_workspace_id", "projects", ["workspace_id"])

    op.create_table(
        "project_members",
        _uuid_pk(),
        _project_fk(),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "tasks",
        _uuid_pk(),
        _project_fk(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", task_status, nullable=False, server_default="TODO"),
        sa.Column("type", task_type, nullable=False, server_default="TASK"),
        sa.Column("priority", priority, nullable=False, server_default="MEDIUM"),
        sa.Column("assignee_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("objective", sa.Text(), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("risk", sa.Text(), nullable=True),
        sa.Column("key_factor", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])

    op.create_table(
        "comments",
        _uuid_pk(),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("user_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_task_id", "comments", ["task_id"])

    op.create_table(
        "objectives",
        _uuid_pk(),
        _project_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("risk", sa.Text(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("position", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_objectives_project_position", "objectives", ["project_id", "position"])

    op.create_table(
        "indicators",
        _uuid_pk(),
        sa.Column("objective_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("objectives.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("target", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(length=64), nullable=False, server_default=""),
        sa.CheckConstraint("target >= 0", name="ck_indicators_target_non_negative"),
    )
    op.create_index("ix_indicators_objective_id", "indicators", ["objective_id"])

    op.create_table(
        "material_resources",
        _uuid_pk(),
        _project_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("needed", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("owned", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("needed >= 0", name="ck_material_resources_needed_non_negative"),
        sa.CheckConstraint("owned >= 0", name="ck_material_resources_owned_non_negative"),
    )
    op.create_index("ix_material_resources_project_id", "material_resources", ["project_id"])

    op.create_table(
        "human_resources",
        _uuid_pk(),
        _project_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("needed", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("needed >= 0", name="ck_human_resources_needed_non_negative"),
    )
    op.create_index("ix_human_resources_project_id", "human_resources", ["project_id"])

    op.create_table(
        "financial_resources",
        _uuid_pk(),
        _project_fk(),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("owned", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.CheckConstraint("amount >= 0", name="ck_financial_resources_amount_non_negative"),
        sa.CheckConstraint("owned >= 0", name="ck_financial_resources_owned_non_negative"),
        sa.UniqueConstraint("project_id", name="uq_financial_resources_project"),
    )

    op.create_table(
        "material_contributions",
        _uuid_pk(),
        _project_fk(),
        sa.Column(
            "resource_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("material_resources.id"),
            nullable=False,
        ),
        sa.Column("contributor_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", contribution_status, nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_material_contributions_quantity_positive"),
    )
    op.create_index(
        "ix_material_contributions_project_status", "material_contributions", ["project_id", "status"]
    )
    op.create_index("ix_material_contributions_contributor_id", "material_contributions", ["contributor_id"])

    op.create_table(
        "human_contributions",
        _uuid_pk(),
        _project_fk(),
        sa.Column(
            "resource_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("human_resources.id"),
            nullable=False,
        ),
        sa.Column("participant_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", contribution_status, nullable=False, server_default="APPROVED"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("resource_id", "participant_id", name="uq_human_contributions_resource_participant"),
    )
    op.create_index("ix_human_contributions_project_id", "human_contributions", ["project_id"])

    op.create_table(
        "financial_contributions",
        _uuid_pk(),
        _project_fk(),
        sa.Column("contributor_id", sa.String(length=64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("reference", sa.String(length=255), nullable=False),
        sa.Column("status", contribution_status, nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_financial_contributions_amount_positive"),
    )
    op.create_index(
        "ix_financial_contributions_project_status", "financial_contributions", ["project_id", "status"]
    )


def downgrade() -> None:
    op.drop_index("ix_financial_contributions_project_status", table_name="financial_contributions")
    op.drop_table("financial_contributions")

    op.drop_index("ix_human_contributions_project_id", table_name="human_contributions")
    op.drop_table("human_contributions")

    op.drop_index("ix_material_contributions_contributor_id", table_name="material_contributions")
    op.drop_index("ix_material_contributions_project_status", table_name="material_contributions")
    op.drop_table("material_contributions")

    op.drop_table("financial_resources")

    op.drop_index("ix_human_resources_project_id", table_name="human_resources")
    op.drop_table("human_resources")

    op.drop_index("ix_material_resources_project_id", table_name="material_resources")
    op.drop_table("material_resources")

    op.drop_index("ix_indicators_objective_id", table_name="indicators")
    op.drop_table("indicators")

    op.drop_index("ix_objectives_project_position", table_name="objectives")
    op.drop_table("objectives")

    op.drop_index("ix_comments_task_id", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_tasks_assignee_id", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_project_members_user_id", table_name="project_members")
    op.drop_table("project_members")

    op.drop_index("ix_projects_workspace_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_workspace_invitations_email", table_name="workspace_invitations")
    op.drop_table("workspace_invitations")

    op.drop_index("ix_workspace_members_user_id", table_name="workspace_members")
    op.drop_table("workspace_members")

    op.drop_table("workspaces")
    op.drop_table("users")

    for enum_type in reversed(ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
