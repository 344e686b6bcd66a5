"""Project lifecycle, membership and progress endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, get_current_user_context
from rcrpm.db.dependencies import get_db_session
from rcrpm.models.entities import Priority, ProjectStatus
from rcrpm.services.project_service import (
    FinancialResourceInput,
    HumanResourceInput,
    MaterialResourceInput,
    ProjectCreateData,
    ProjectService,
    ProjectUpdateData,
)
from rcrpm.services.task_service import TaskService

router = APIRouter(prefix="/projects", tags=["projects"])


class MaterialResourcePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID | None = None
    name: str = Field(default="", max_length=255)
    needed: int = Field(default=1, ge=0)
    owned: int = Field(default=0, ge=0)


class HumanResourcePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID | None = None
    name: str = Field(default="", max_length=255)
    needed: int = Field(default=1, ge=0)


class FinancialResourcePayload(BaseModel):
    needed: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    owned: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=2)


class ProjectCreatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    workspace_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    progress: int = Field(default=0, ge=0, le=100)
    is_public: bool = True
    team_lead: str | None = Field(default=None, max_length=320)
    team_members: list[str] = Field(default_factory=list)
    treasurer_name: str | None = Field(default=None, max_length=255)
    treasurer_phone: str | None = Field(default=None, max_length=64)
    material_resources: list[MaterialResourcePayload] = Field(default_factory=list)
    human_resources: list[HumanResourcePayload] = Field(default_factory=list)
    financial_resources: FinancialResourcePayload = Field(default_factory=FinancialResourcePayload)


class ProjectUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: ProjectStatus | None = None
    priority: Priority | None = None
    start_date: date | None = None
    end_date: date | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    is_public: bool | None = None
    treasurer_name: str | None = Field(default=None, max_length=255)
    treasurer_phone: str | None = Field(default=None, max_length=64)
    material_resources: list[MaterialResourcePayload] | None = None
    human_resources: list[HumanResourcePayload] | None = None
    financial_resources: FinancialResourcePayload | None = None


class ProjectMemberPayload(BaseModel):
    member_email: str = Field(min_length=3, max_length=320)


def _project_service(db: Session) -> ProjectService:
    return ProjectService(db)


def _material_inputs(rows: list[MaterialResourcePayload] | None) -> list[MaterialResourceInput] | None:
    if rows is None:
        return None
    return [MaterialResourceInput(id=row.id, name=row.name, needed=row.needed, owned=row.owned) for row in rows]


def _human_inputs(rows: list[HumanResourcePayload] | None) -> list[HumanResourceInput] | None:
    if rows is None:
        return None
    return [HumanResourceInput(id=row.id, name=row.name, needed=row.needed) for row in rows]


def _financial_input(row: FinancialResourcePayload | None) -> FinancialResourceInput | None:
    if row is None:
        return None
    return FinancialResourceInput(needed=row.needed, owned=row.owned)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    project = service.create_project(
        context=context,
        data=ProjectCreateData(
            workspace_id=payload.workspace_id,
            name=payload.name,
            description=payload.description,
            status=payload.status,
            priority=payload.priority,
            start_date=payload.start_date,
            end_date=payload.end_date,
            progress=payload.progress,
            is_public=payload.is_public,
            team_lead=payload.team_lead,
            team_members=payload.team_members,
            treasurer_name=payload.treasurer_name,
            treasurer_phone=payload.treasurer_phone,
            material_resources=_material_inputs(payload.material_resources),
            human_resources=_human_inputs(payload.human_resources),
            financial_resources=_financial_input(payload.financial_resources),
        ),
    )
    return service.serialize_project_detail(service.get_project_scope(context=context, project_id=project.id))


@router.get("/public")
def list_public_projects(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    """Public showcase listing; no identity required."""

    service = _project_service(db)
    return {"items": [service.serialize_public_project(project) for project in service.list_public_projects()]}


@router.get("/workspace/{workspace_id}")
def list_workspace_projects(
    workspace_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _project_service(db)
    rows = service.list_workspace_projects(context=context, workspace_id=workspace_id)
    return {"items": [service.serialize_project(project) for project in rows]}


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    return service.serialize_project_detail(service.get_project_scope(context=context, project_id=project_id))


@router.put("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    service.update_project(
        context=context,
        project_id=project_id,
        data=ProjectUpdateData(
            name=payload.name,
            description=payload.description,
            status=payload.status,
            priority=payload.priority,
            start_date=payload.start_date,
            end_date=payload.end_date,
            progress=payload.progress,
            is_public=payload.is_public,
            treasurer_name=payload.treasurer_name,
            treasurer_phone=payload.treasurer_phone,
            treasurer_name_provided="treasurer_name" in payload.model_fields_set,
            treasurer_phone_provided="treasurer_phone" in payload.model_fields_set,
            material_resources=_material_inputs(payload.material_resources),
            human_resources=_human_inputs(payload.human_resources),
            financial_resources=_financial_input(payload.financial_resources),
        ),
    )
    return service.serialize_project_detail(service.get_project_scope(context=context, project_id=project_id))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _project_service(db)
    service.delete_project(context=context, project_id=project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/members", status_code=status.HTTP_201_CREATED)
def add_project_member(
    project_id: UUID,
    payload: ProjectMemberPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _project_service(db)
    member = service.add_member(context=context, project_id=project_id, member_email=payload.member_email)
    return {"project_id": str(member.project_id), "user_id": member.user_id}


@router.get("/{project_id}/progress")
def get_project_progress(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _project_service(db).get_progress(context=context, project_id=project_id)


@router.get("/{project_id}/tasks")
def list_project_tasks(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = TaskService(db)
    tasks = service.list_tasks(context=context, project_id=project_id)
    users = service.users_for_tasks(tasks)
    return {"items": [service.serialize_task(task, users) for task in tasks]}
