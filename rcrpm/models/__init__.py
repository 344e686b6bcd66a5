"""ORM model package."""

from rcrpm.models.entities import (
    Comment,
    FinancialContribution,
    FinancialResource,
    HumanContribution,
    HumanResource,
    Indicator,
    MaterialContribution,
    MaterialResource,
    Objective,
    Project,
    ProjectMember,
    Task,
    User,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMember,
)

__all__ = [
    "Comment",
    "FinancialContribution",
    "FinancialResource",
    "HumanContribution",
    "HumanResource",
    "Indicator",
    "MaterialContribution",
    "MaterialResource",
    "Objective",
    "Project",
    "ProjectMember",
    "Task",
    "User",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMember",
]
