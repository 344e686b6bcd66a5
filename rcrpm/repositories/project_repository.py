"""Repository helpers for workspaces, projects and their sub-records."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from rcrpm.models.entities import (
    Comment,
    FinancialResource,
    HumanContribution,
    HumanResource,
    Indicator,
    InvitationStatus,
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


class ProjectRepository:
    """Persistence operations used by workspace, project, task and objective services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email.strip().lower()))

    def list_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(User).where(User.id.in_(ids))).all()
        return {row.id: row for row in rows}

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    # ---------- Workspaces ----------
    def get_workspace(self, workspace_id: str) -> Workspace | None:
        return self.db.get(Workspace, workspace_id)

    def add_workspace(self, workspace: Workspace) -> Workspace:
        self.db.add(workspace)
        self.db.flush()
        return workspace

    def list_workspaces_for_user(self, user_id: str) -> list[Workspace]:
        return self.db.scalars(
            select(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(Workspace.name.asc())
        ).all()

    def list_workspace_members(self, workspace_id: str) -> list[WorkspaceMember]:
        return self.db.scalars(
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.created_at.asc())
        ).all()

    def get_workspace_member(self, workspace_id: str, user_id: str) -> WorkspaceMember | None:
        return self.db.scalar(
            select(WorkspaceMember).where(
                and_(
                    WorkspaceMember.workspace_id == workspace_id,
                    WorkspaceMember.user_id == user_id,
                )
            )
        )

    def add_workspace_member(self, member: WorkspaceMember) -> WorkspaceMember:
        self.db.add(member)
        self.db.flush()
        return member

    def delete_workspace_member(self, member: WorkspaceMember) -> None:
        self.db.delete(member)
        self.db.flush()

    def delete_memberships_for_user(self, user_id: str) -> None:
        self.db.execute(delete(WorkspaceMember).where(WorkspaceMember.user_id == user_id))
        self.db.execute(delete(ProjectMember).where(ProjectMember.user_id == user_id))
        self.db.flush()

    # ---------- Invitations ----------
    def get_invitation(self, workspace_id: str, email: str) -> WorkspaceInvitation | None:
        return self.db.scalar(
            select(WorkspaceInvitation).where(
                and_(
                    WorkspaceInvitation.workspace_id == workspace_id,
                    WorkspaceInvitation.email == email,
                )
            )
        )

    def list_pending_invitations(self, email: str) -> list[WorkspaceInvitation]:
        return self.db.scalars(
            select(WorkspaceInvitation)
            .where(
                and_(
                    WorkspaceInvitation.email == email,
                    WorkspaceInvitation.status == InvitationStatus.PENDING,
                )
            )
            .order_by(WorkspaceInvitation.created_at.asc())
        ).all()

    def add_invitation(self, invitation: WorkspaceInvitation) -> WorkspaceInvitation:
        self.db.add(invitation)
        self.db.flush()
        return invitation

    # ---------- Projects ----------
    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.get(Project, project_id)

    def list_projects_for_workspace(self, workspace_id: str, *, public_only: bool = False) -> list[Project]:
        conditions = [Project.workspace_id == workspace_id]
        if public_only:
            conditions.append(Project.is_public.is_(True))
        return self.db.scalars(
            select(Project).where(and_(*conditions)).order_by(Project.created_at.desc())
        ).all()

    def list_public_projects(self) -> list[Project]:
        return self.db.scalars(
            select(Project).where(Project.is_public.is_(True)).order_by(Project.created_at.desc())
        ).all()

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        objective_ids = select(Objective.id).where(Objective.project_id == project.id)
        self.db.execute(delete(Indicator).where(Indicator.objective_id.in_(objective_ids)))
        self.db.execute(delete(Objective).where(Objective.project_id == project.id))
        self.db.execute(delete(MaterialResource).where(MaterialResource.project_id == project.id))
        self.db.execute(delete(HumanResource).where(HumanResource.project_id == project.id))
        self.db.execute(delete(FinancialResource).where(FinancialResource.project_id == project.id))
        self.db.execute(delete(ProjectMember).where(ProjectMember.project_id == project.id))
        self.db.delete(project)
        self.db.flush()

    # ---------- Project members ----------
    def list_project_members(self, project_id: UUID) -> list[ProjectMember]:
        return self.db.scalars(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.created_at.asc())
        ).all()

    def list_project_member_ids(self, project_id: UUID) -> list[str]:
        return self.db.scalars(select(ProjectMember.user_id).where(ProjectMember.project_id == project_id)).all()

    def add_project_member(self, member: ProjectMember) -> ProjectMember:
        self.db.add(member)
        self.db.flush()
        return member

    # ---------- Tasks ----------
    def list_tasks(self, project_id: UUID) -> list[Task]:
        return self.db.scalars(
            select(Task).where(Task.project_id == project_id).order_by(Task.created_at.asc())
        ).all()

    def list_tasks_by_ids(self, task_ids: Iterable[UUID]) -> list[Task]:
        ids = set(task_ids)
        if not ids:
            return []
        return self.db.scalars(select(Task).where(Task.id.in_(ids))).all()

    def get_task(self, task_id: UUID) -> Task | None:
        return self.db.get(Task, task_id)

    def add_task(self, task: Task) -> Task:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_tasks(self, task_ids: Iterable[UUID]) -> None:
        ids = set(task_ids)
        self.db.execute(delete(Comment).where(Comment.task_id.in_(ids)))
        self.db.execute(delete(Task).where(Task.id.in_(ids)))
        self.db.flush()

    def task_count_for_project(self, project_id: UUID) -> int:
        return int(self.db.scalar(select(func.count(Task.id)).where(Task.project_id == project_id)) or 0)

    # ---------- Comments ----------
    def list_comments(self, task_id: UUID) -> list[Comment]:
        return self.db.scalars(
            select(Comment).where(Comment.task_id == task_id).order_by(Comment.created_at.desc())
        ).all()

    def add_comment(self, comment: Comment) -> Comment:
        self.db.add(comment)
        self.db.flush()
        return comment

    # ---------- Objectives and indicators ----------
    def list_objectives(self, project_id: UUID) -> list[Objective]:
        return self.db.scalars(
            select(Objective)
            .where(Objective.project_id == project_id)
            .order_by(Objective.position.asc(), Objective.created_at.asc())
        ).all()

    def get_objective(self, objective_id: UUID) -> Objective | None:
        return self.db.get(Objective, objective_id)

    def max_objective_position(self, project_id: UUID) -> int:
        return int(
            self.db.scalar(select(func.max(Objective.position)).where(Objective.project_id == project_id)) or 0
        )

    def add_objective(self, objective: Objective) -> Objective:
        self.db.add(objective)
        self.db.flush()
        return objective

    def delete_objective(self, objective: Objective) -> None:
        self.db.execute(delete(Indicator).where(Indicator.objective_id == objective.id))
        self.db.delete(objective)
        self.db.flush()

    def list_indicators(self, objective_ids: Iterable[UUID]) -> list[Indicator]:
        ids = set(objective_ids)
        if not ids:
            return []
        return self.db.scalars(
            select(Indicator).where(Indicator.objective_id.in_(ids)).order_by(Indicator.name.asc())
        ).all()

    def get_indicator(self, indicator_id: UUID) -> Indicator | None:
        return self.db.get(Indicator, indicator_id)

    def add_indicator(self, indicator: Indicator) -> Indicator:
        self.db.add(indicator)
        self.db.flush()
        return indicator

    def delete_indicator(self, indicator: Indicator) -> None:
        self.db.delete(indicator)
        self.db.flush()

    # ---------- Resources ----------
    def list_material_resources(self, project_id: UUID) -> list[MaterialResource]:
        return self.db.scalars(
            select(MaterialResource)
            .where(MaterialResource.project_id == project_id)
            .order_by(MaterialResource.name.asc())
        ).all()

    def list_human_resources(self, project_id: UUID) -> list[HumanResource]:
        return self.db.scalars(
            select(HumanResource).where(HumanResource.project_id == project_id).order_by(HumanResource.name.asc())
        ).all()

    def get_financial_resource(self, project_id: UUID) -> FinancialResource | None:
        return self.db.scalar(select(FinancialResource).where(FinancialResource.project_id == project_id))

    def add_resource(self, resource: MaterialResource | HumanResource | FinancialResource) -> None:
        self.db.add(resource)
        self.db.flush()

    def delete_resource(self, resource: MaterialResource | HumanResource | FinancialResource) -> None:
        self.db.delete(resource)
        self.db.flush()

    def participant_counts(self, resource_ids: Iterable[UUID]) -> dict[UUID, int]:
        ids = set(resource_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(HumanContribution.resource_id, func.count(HumanContribution.id))
            .where(HumanContribution.resource_id.in_(ids))
            .group_by(HumanContribution.resource_id)
        ).all()
        return {resource_id: int(count) for resource_id, count in rows}

    def list_participations(self, resource_ids: Iterable[UUID]) -> list[HumanContribution]:
        ids = set(resource_ids)
        if not ids:
            return []
        return self.db.scalars(
            select(HumanContribution)
            .where(HumanContribution.resource_id.in_(ids))
            .order_by(HumanContribution.created_at.asc())
        ).all()
