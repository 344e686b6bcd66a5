"""Workspace membership and invitation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, get_current_user_context
from rcrpm.db.dependencies import get_db_session
from rcrpm.events.bus import EventPublisher, get_event_publisher
from rcrpm.models.entities import WorkspaceRole
from rcrpm.services.workspace_service import InvitationData, MemberAddData, WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


class MemberAddPayload(BaseModel):
    workspace_id: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, max_length=320)
    role: WorkspaceRole = WorkspaceRole.MEMBER
    message: str | None = Field(default=None, max_length=2000)


class InvitationPayload(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    role: WorkspaceRole = WorkspaceRole.MEMBER
    message: str | None = Field(default=None, max_length=2000)


def _workspace_service(db: Session, publisher: EventPublisher | None = None) -> WorkspaceService:
    return WorkspaceService(db, publisher)


@router.get("")
def list_my_workspaces(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _workspace_service(db)
    rows = service.list_workspaces(context=context)
    return {"items": [service.serialize_workspace_detail(workspace) for workspace in rows]}


@router.post("/add-member", status_code=status.HTTP_201_CREATED)
def add_workspace_member(
    payload: MemberAddPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _workspace_service(db)
    member = service.add_member(
        context=context,
        data=MemberAddData(
            workspace_id=payload.workspace_id,
            email=payload.email,
            role=payload.role,
            message=payload.message,
        ),
    )
    users = service.repo.list_users([member.user_id])
    return service.serialize_member(member, users)


@router.get("/invitations/check")
def check_invitations(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _workspace_service(db)
    joined = service.accept_pending_invitations(context=context)
    return {"items": [service.serialize_workspace(workspace) for workspace in joined]}


@router.post("/{workspace_id}/invite", status_code=status.HTTP_201_CREATED)
def invite_workspace_member(
    workspace_id: str,
    payload: InvitationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _workspace_service(db, publisher)
    invitation = service.invite(
        context=context,
        workspace_id=workspace_id,
        data=InvitationData(email=payload.email, role=payload.role, message=payload.message),
    )
    return service.serialize_invitation(invitation)
