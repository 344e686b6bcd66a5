"""Application service for project lifecycle, membership and resource needs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, is_workspace_admin, is_workspace_member
from rcrpm.models.entities import (
    FinancialResource,
    HumanResource,
    MaterialResource,
    Priority,
    Project,
    ProjectMember,
    ProjectStatus,
    Workspace,
    WorkspaceMember,
    WorkspaceVisibility,
    utc_now,
)
from rcrpm.repositories.contribution_repository import ContributionRepository
from rcrpm.repositories.project_repository import ProjectRepository
from rcrpm.services import progress
from rcrpm.services.objective_service import ObjectiveService
from rcrpm.services.scope import ProjectScope, load_project_scope, serialize_user
from rcrpm.services.task_service import TaskService

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _q2(value: Decimal | int | float) -> Decimal:
    return Decimal(str(value)).quantize(Q2)


@dataclass(slots=True)
class MaterialResourceInput:
    name: str
    needed: int = 1
    owned: int = 0
    id: UUID | None = None


@dataclass(slots=True)
class HumanResourceInput:
    name: str
    needed: int = 1
    id: UUID | None = None


@dataclass(slots=True)
class FinancialResourceInput:
    needed: Decimal = ZERO
    owned: Decimal = ZERO

    @property
    def is_positive(self) -> bool:
        return self.needed > 0 or self.owned > 0


@dataclass(slots=True)
class ProjectCreateData:
    workspace_id: str
    name: str
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    progress: int = 0
    is_public: bool = True
    team_lead: str | None = None
    team_members: list[str] = field(default_factory=list)
    treasurer_name: str | None = None
    treasurer_phone: str | None = None
    material_resources: list[MaterialResourceInput] = field(default_factory=list)
    human_resources: list[HumanResourceInput] = field(default_factory=list)
    financial_resources: FinancialResourceInput = field(default_factory=FinancialResourceInput)


@dataclass(slots=True)
class ProjectUpdateData:
    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: date | None = None
    end_date: date | None = None
    progress: int | None = None
    is_public: bool | None = None
    treasurer_name: str | None = None
    treasurer_phone: str | None = None
    treasurer_name_provided: bool = False
    treasurer_phone_provided: bool = False
    material_resources: list[MaterialResourceInput] | None = None
    human_resources: list[HumanResourceInput] | None = None
    financial_resources: FinancialResourceInput | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def ensure_date_range(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must be greater than or equal to start_date.",
        )


def ensure_treasurer(
    financial: FinancialResourceInput | None,
    treasurer_name: str | None,
    treasurer_phone: str | None,
) -> None:
    """A positive financial need requires a treasurer name and phone."""

    if financial is None or not financial.is_positive:
        return
    if not treasurer_name:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Treasurer name is required when the project has financial resources.",
        )
    if not treasurer_phone:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Treasurer phone is required when the project has financial resources.",
        )


class ProjectService:
    """Service implementing project setup, sharing and resource planning."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProjectRepository(db)
        self.contributions = ContributionRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": str(project.id),
            "workspace_id": project.workspace_id,
            "name": project.name,
            "description": project.description,
            "status": project.status.value,
            "priority": project.priority.value,
            "start_date": project.start_date.isoformat() if project.start_date else None,
            "end_date": project.end_date.isoformat() if project.end_date else None,
            "progress": project.progress,
            "team_lead": project.team_lead_id,
            "is_public": project.is_public,
            "treasurer_name": project.treasurer_name,
            "treasurer_phone": project.treasurer_phone,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    def serialize_public_project(self, project: Project) -> dict[str, object]:
        workspace = self.repo.get_workspace(project.workspace_id)
        financial = self.repo.get_financial_resource(project.id)
        payload = self.serialize_project(project)
        payload["workspace"] = {"id": workspace.id, "name": workspace.name} if workspace else None
        payload["team_lead_user"] = serialize_user(self.repo.get_user(project.team_lead_id))
        payload["material_resources"] = [
            self.serialize_material_resource(row) for row in self.repo.list_material_resources(project.id)
        ]
        payload["financial_resource"] = self.serialize_financial_resource(financial)
        return payload

    @staticmethod
    def serialize_material_resource(resource: MaterialResource) -> dict[str, object]:
        return {
            "id": str(resource.id),
            "name": resource.name,
            "needed": resource.needed,
            "owned": resource.owned,
        }

    @staticmethod
    def serialize_financial_resource(resource: FinancialResource | None) -> dict[str, object] | None:
        if resource is None:
            return None
        return {
            "id": str(resource.id),
            "amount": str(_q2(resource.amount)),
            "owned": str(_q2(resource.owned)),
        }

    def serialize_human_resources(self, project_id: UUID) -> list[dict[str, object]]:
        resources = self.repo.list_human_resources(project_id)
        participations = self.repo.list_participations(row.id for row in resources)
        users = self.repo.list_users(row.participant_id for row in participations)
        by_resource: dict[UUID, list[dict[str, object]]] = {row.id: [] for row in resources}
        for row in participations:
            by_resource[row.resource_id].append(
                {
                    "id": str(row.id),
                    "participant": serialize_user(users.get(row.participant_id)),
                    "message": row.message,
                    "status": row.status.value,
                    "created_at": row.created_at.isoformat(),
                }
            )
        return [
            {
                "id": str(resource.id),
                "name": resource.name,
                "needed": resource.needed,
                "participants": by_resource[resource.id],
            }
            for resource in resources
        ]

    def serialize_project_detail(self, scope: ProjectScope) -> dict[str, object]:
        project = scope.project
        members = self.repo.list_project_members(project.id)
        tasks = self.repo.list_tasks(project.id)
        users = self.repo.list_users(
            [project.team_lead_id]
            + [row.user_id for row in members]
            + [task.assignee_id for task in tasks if task.assignee_id]
        )

        payload = self.serialize_project(project)
        payload.update(
            {
                "workspace": {
                    "id": scope.workspace.id,
                    "name": scope.workspace.name,
                    "visibility": scope.workspace.visibility.value,
                },
                "team_lead_user": serialize_user(users.get(project.team_lead_id)),
                "members": [serialize_user(users.get(row.user_id)) for row in members],
                "material_resources": [
                    self.serialize_material_resource(row) for row in self.repo.list_material_resources(project.id)
                ],
                "human_resources": self.serialize_human_resources(project.id),
                "financial_resource": self.serialize_financial_resource(
                    self.repo.get_financial_resource(project.id)
                ),
                "objectives": ObjectiveService(self.db).serialize_objectives(self.repo.list_objectives(project.id)),
                "tasks": [TaskService.serialize_task(task, users) for task in tasks],
                "access": {
                    "can_manage": scope.access.can_manage,
                    "is_lead": scope.access.is_lead,
                    "is_workspace_admin": scope.access.is_workspace_admin,
                    "is_project_member": scope.access.is_project_member,
                },
            }
        )
        return payload

    # ---------- Helpers ----------
    def _get_workspace(self, workspace_id: str) -> Workspace:
        workspace = self.repo.get_workspace(workspace_id)
        if workspace is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.")
        return workspace

    def _commit(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    def _resolve_team_lead(self, email: str | None, fallback_user_id: str, members: list[WorkspaceMember]) -> str:
        if email:
            user = self.repo.get_user_by_email(email)
            if user is not None:
                if not is_workspace_member(members, user.id):
                    raise HTTPException(
                        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                        detail="The team lead must be a member of the workspace.",
                    )
                return user.id
        return fallback_user_id

    def _add_material_resources(self, project_id: UUID, entries: list[MaterialResourceInput]) -> None:
        for entry in entries:
            name = entry.name.strip()
            if not name:
                continue
            self.repo.add_resource(
                MaterialResource(project_id=project_id, name=name, needed=entry.needed, owned=entry.owned)
            )

    def _add_human_resources(self, project_id: UUID, entries: list[HumanResourceInput]) -> None:
        for entry in entries:
            name = entry.name.strip()
            if not name:
                continue
            self.repo.add_resource(HumanResource(project_id=project_id, name=name, needed=entry.needed))

    def _sync_material_resources(self, project_id: UUID, entries: list[MaterialResourceInput]) -> None:
        existing = {row.id: row for row in self.repo.list_material_resources(project_id)}
        kept: set[UUID] = set()
        for entry in entries:
            name = entry.name.strip()
            if not name:
                continue
            if entry.id is None:
                self.repo.add_resource(
                    MaterialResource(project_id=project_id, name=name, needed=entry.needed, owned=entry.owned)
                )
                continue
            resource = existing.get(entry.id)
            if resource is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material resource not found.")
            resource.name = name
            resource.needed = entry.needed
            resource.owned = entry.owned
            kept.add(resource.id)

        for resource_id, resource in existing.items():
            if resource_id in kept:
                continue
            if self.contributions.material_count_for_resource(resource_id) > 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Cannot remove material resource '{resource.name}' with existing contributions.",
                )
            self.repo.delete_resource(resource)

    def _sync_human_resources(self, project_id: UUID, entries: list[HumanResourceInput]) -> None:
        existing = {row.id: row for row in self.repo.list_human_resources(project_id)}
        kept: set[UUID] = set()
        for entry in entries:
            name = entry.name.strip()
            if not name:
                continue
            if entry.id is None:
                self.repo.add_resource(HumanResource(project_id=project_id, name=name, needed=entry.needed))
                continue
            resource = existing.get(entry.id)
            if resource is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Human resource not found.")
            resource.name = name
            resource.needed = entry.needed
            kept.add(resource.id)

        for resource_id, resource in existing.items():
            if resource_id in kept:
                continue
            if self.contributions.human_count_for_resource(resource_id) > 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Cannot remove human resource '{resource.name}' with existing participants.",
                )
            self.repo.delete_resource(resource)

    def _sync_financial_resource(self, project_id: UUID, entry: FinancialResourceInput) -> None:
        resource = self.repo.get_financial_resource(project_id)
        if resource is None:
            if entry.is_positive:
                self.repo.add_resource(
                    FinancialResource(project_id=project_id, amount=_q2(entry.needed), owned=_q2(entry.owned))
                )
            return
        resource.amount = _q2(entry.needed)
        resource.owned = _q2(entry.owned)

    # ---------- Project CRUD ----------
    def list_public_projects(self) -> list[Project]:
        return self.repo.list_public_projects()

    def list_workspace_projects(self, *, context: RequestUserContext, workspace_id: str) -> list[Project]:
        workspace = self._get_workspace(workspace_id)
        members = self.repo.list_workspace_members(workspace.id)
        if is_workspace_member(members, context.user_id):
            return self.repo.list_projects_for_workspace(workspace.id)
        if workspace.visibility is WorkspaceVisibility.PUBLIC:
            return self.repo.list_projects_for_workspace(workspace.id, public_only=True)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a member of this workspace.")

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        workspace = self._get_workspace(data.workspace_id)
        members = self.repo.list_workspace_members(workspace.id)
        if not is_workspace_admin(members, context.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only workspace admins can create projects.",
            )

        ensure_date_range(data.start_date, data.end_date)
        treasurer_name = _clean(data.treasurer_name)
        treasurer_phone = _clean(data.treasurer_phone)
        ensure_treasurer(data.financial_resources, treasurer_name, treasurer_phone)

        lead_id = self._resolve_team_lead(data.team_lead, context.user_id, members)
        now = utc_now()
        project = self.repo.add_project(
            Project(
                workspace_id=workspace.id,
                name=data.name.strip(),
                description=_clean(data.description),
                status=data.status,
                priority=data.priority,
                start_date=data.start_date,
                end_date=data.end_date,
                progress=data.progress,
                team_lead_id=lead_id,
                is_public=data.is_public,
                treasurer_name=treasurer_name,
                treasurer_phone=treasurer_phone,
                created_at=now,
                updated_at=now,
            )
        )

        member_ids = [lead_id]
        emails = {email.strip().lower() for email in data.team_members if email.strip()}
        if emails:
            users = self.repo.list_users(row.user_id for row in members)
            for row in members:
                user = users.get(row.user_id)
                if user is not None and user.email in emails and user.id not in member_ids:
                    member_ids.append(user.id)
        for user_id in member_ids:
            self.repo.add_project_member(ProjectMember(project_id=project.id, user_id=user_id, created_at=now))

        self._add_material_resources(project.id, data.material_resources)
        self._add_human_resources(project.id, data.human_resources)
        if data.financial_resources.is_positive:
            self._sync_financial_resource(project.id, data.financial_resources)

        self._commit("Project could not be created because of conflicting data.")
        self.db.refresh(project)
        logger.info("Project %s created in workspace %s by %s", project.id, workspace.id, context.user_id)
        return project

    def get_project_scope(self, *, context: RequestUserContext, project_id: UUID) -> ProjectScope:
        return load_project_scope(self.repo, context=context, project_id=project_id)

    def update_project(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        data: ProjectUpdateData,
    ) -> Project:
        scope = load_project_scope(self.repo, context=context, project_id=project_id, require_manage=True)
        project = scope.project

        ensure_date_range(
            data.start_date if data.start_date is not None else project.start_date,
            data.end_date if data.end_date is not None else project.end_date,
        )

        treasurer_name = _clean(data.treasurer_name) if data.treasurer_name_provided else project.treasurer_name
        treasurer_phone = _clean(data.treasurer_phone) if data.treasurer_phone_provided else project.treasurer_phone
        financial = data.financial_resources
        if financial is None:
            current = self.repo.get_financial_resource(project.id)
            if current is not None:
                financial = FinancialResourceInput(needed=current.amount, owned=current.owned)
        ensure_treasurer(financial, treasurer_name, treasurer_phone)

        if data.name is not None:
            project.name = data.name.strip()
        if data.description is not None:
            project.description = _clean(data.description)
        if data.status is not None:
            project.status = data.status
        if data.priority is not None:
            project.priority = data.priority
        if data.start_date is not None:
            project.start_date = data.start_date
        if data.end_date is not None:
            project.end_date = data.end_date
        if data.progress is not None:
            project.progress = data.progress
        if data.is_public is not None:
            project.is_public = data.is_public
        project.treasurer_name = treasurer_name
        project.treasurer_phone = treasurer_phone

        if data.material_resources is not None:
            self._sync_material_resources(project.id, data.material_resources)
        if data.human_resources is not None:
            self._sync_human_resources(project.id, data.human_resources)
        if data.financial_resources is not None:
            self._sync_financial_resource(project.id, data.financial_resources)
        project.updated_at = utc_now()

        self._commit("Project could not be updated because of conflicting data.")
        self.db.refresh(project)
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: UUID) -> None:
        scope = load_project_scope(self.repo, context=context, project_id=project_id)
        if not scope.access.is_workspace_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only workspace admins can delete projects.",
            )
        if self.repo.task_count_for_project(project_id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete project with existing tasks.",
            )
        if self.contributions.contribution_count_for_project(project_id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete project with existing contributions.",
            )

        self.repo.delete_project(scope.project)
        self.db.commit()
        logger.info("Project %s deleted by %s", project_id, context.user_id)

    # ---------- Members ----------
    def add_member(self, *, context: RequestUserContext, project_id: UUID, member_email: str) -> ProjectMember:
        scope = load_project_scope(self.repo, context=context, project_id=project_id, require_manage=True)

        user = self.repo.get_user_by_email(member_email)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        if user.id in set(self.repo.list_project_member_ids(scope.project.id)):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a project member.")
        if not is_workspace_member(scope.members, user.id):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="User is not a member of the project workspace.",
            )

        member = self.repo.add_project_member(
            ProjectMember(project_id=scope.project.id, user_id=user.id, created_at=utc_now())
        )
        self._commit("User is already a project member.")
        self.db.refresh(member)
        return member

    # ---------- Progress ----------
    def get_progress(self, *, context: RequestUserContext, project_id: UUID) -> dict[str, object]:
        scope = load_project_scope(self.repo, context=context, project_id=project_id)
        project = scope.project
        objectives = self.repo.list_objectives(project.id)
        human = self.repo.list_human_resources(project.id)
        return {
            "project_id": str(project.id),
            "progress": project.progress,
            "objectives": progress.objective_summary(objectives, self.repo.list_indicators(row.id for row in objectives)),
            "tasks": progress.task_summary(self.repo.list_tasks(project.id)),
            "resources": progress.resource_summary(
                material=self.repo.list_material_resources(project.id),
                human=human,
                participants=self.repo.participant_counts(row.id for row in human),
                financial=self.repo.get_financial_resource(project.id),
            ),
        }
