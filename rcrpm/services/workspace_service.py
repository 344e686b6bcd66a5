"""Application service for workspace membership and invitations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, is_workspace_admin
from rcrpm.core.config import get_settings
from rcrpm.events.bus import EventPublisher
from rcrpm.events.notifications import WORKSPACE_INVITATION
from rcrpm.models.entities import (
    InvitationStatus,
    User,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMember,
    WorkspaceRole,
    utc_now,
)
from rcrpm.repositories.project_repository import ProjectRepository
from rcrpm.services.project_service import ProjectService
from rcrpm.services.scope import serialize_user

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MemberAddData:
    workspace_id: str
    email: str
    role: WorkspaceRole = WorkspaceRole.MEMBER
    message: str | None = None


@dataclass(slots=True)
class InvitationData:
    email: str
    role: WorkspaceRole = WorkspaceRole.MEMBER
    message: str | None = None


class WorkspaceService:
    def __init__(self, db: Session, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.repo = ProjectRepository(db)
        self.publisher = publisher
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_member(member: WorkspaceMember, users: dict[str, User]) -> dict[str, object]:
        return {
            "id": str(member.id),
            "user_id": member.user_id,
            "role": member.role.value,
            "message": member.message,
            "user": serialize_user(users.get(member.user_id)),
        }

    @staticmethod
    def serialize_invitation(invitation: WorkspaceInvitation) -> dict[str, object]:
        return {
            "id": str(invitation.id),
            "workspace_id": invitation.workspace_id,
            "email": invitation.email,
            "role": invitation.role.value,
            "message": invitation.message,
            "status": invitation.status.value,
            "created_at": invitation.created_at.isoformat(),
        }

    @staticmethod
    def serialize_workspace(workspace: Workspace) -> dict[str, object]:
        return {
            "id": workspace.id,
            "name": workspace.name,
            "slug": workspace.slug,
            "description": workspace.description,
            "image_url": workspace.image_url,
            "owner_id": workspace.owner_id,
            "visibility": workspace.visibility.value,
            "created_at": workspace.created_at.isoformat(),
        }

    def serialize_workspace_detail(self, workspace: Workspace) -> dict[str, object]:
        members = self.repo.list_workspace_members(workspace.id)
        users = self.repo.list_users(row.user_id for row in members)
        payload = self.serialize_workspace(workspace)
        payload["members"] = [self.serialize_member(row, users) for row in members]
        payload["projects"] = [
            ProjectService.serialize_project(project)
            for project in self.repo.list_projects_for_workspace(workspace.id)
        ]
        return payload

    # ---------- Helpers ----------
    def _ensure_admin(self, *, context: RequestUserContext, workspace_id: str) -> Workspace:
        workspace = self.repo.get_workspace(workspace_id)
        if workspace is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.")
        if not is_workspace_admin(self.repo.list_workspace_members(workspace.id), context.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only workspace admins can manage members.",
            )
        return workspace

    # ---------- Operations ----------
    def list_workspaces(self, *, context: RequestUserContext) -> list[Workspace]:
        return self.repo.list_workspaces_for_user(context.user_id)

    def add_member(self, *, context: RequestUserContext, data: MemberAddData) -> WorkspaceMember:
        workspace = self._ensure_admin(context=context, workspace_id=data.workspace_id)

        user = self.repo.get_user_by_email(data.email)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        if self.repo.get_workspace_member(workspace.id, user.id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a workspace member.")

        member = self.repo.add_workspace_member(
            WorkspaceMember(
                workspace_id=workspace.id,
                user_id=user.id,
                role=data.role,
                message=data.message,
                created_at=utc_now(),
            )
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User is already a workspace member.",
            ) from exc

        self.db.refresh(member)
        logger.info("User %s added to workspace %s by %s", user.id, workspace.id, context.user_id)
        return member

    def invite(self, *, context: RequestUserContext, workspace_id: str, data: InvitationData) -> WorkspaceInvitation:
        workspace = self._ensure_admin(context=context, workspace_id=workspace_id)
        email = data.email.strip().lower()

        existing_user = self.repo.get_user_by_email(email)
        if existing_user is not None and self.repo.get_workspace_member(workspace.id, existing_user.id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a workspace member.")

        now = utc_now()
        invitation = self.repo.get_invitation(workspace.id, email)
        if invitation is None:
            invitation = self.repo.add_invitation(
                WorkspaceInvitation(
                    workspace_id=workspace.id,
                    email=email,
                    role=data.role,
                    message=data.message,
                    invited_by_id=context.user_id,
                    status=InvitationStatus.PENDING,
                    created_at=now,
                )
            )
        else:
            invitation.role = data.role
            invitation.message = data.message
            invitation.invited_by_id = context.user_id
            invitation.status = InvitationStatus.PENDING
            invitation.created_at = now
            invitation.accepted_at = None

        self.db.commit()
        self.db.refresh(invitation)

        if self.publisher is not None:
            self.publisher.send(
                WORKSPACE_INVITATION,
                {
                    "to": email,
                    "workspace_name": workspace.name,
                    "inviter_name": context.name,
                    "role": invitation.role.value,
                    "message": invitation.message,
                    "link": self.settings.frontend_url.rstrip("/"),
                },
            )
        return invitation

    def accept_pending_invitations(self, *, context: RequestUserContext) -> list[Workspace]:
        joined: list[Workspace] = []
        now = utc_now()
        for invitation in self.repo.list_pending_invitations(context.email):
            workspace = self.repo.get_workspace(invitation.workspace_id)
            if workspace is None:
                continue
            if self.repo.get_workspace_member(workspace.id, context.user_id) is None:
                self.repo.add_workspace_member(
                    WorkspaceMember(
                        workspace_id=workspace.id,
                        user_id=context.user_id,
                        role=invitation.role,
                        message=invitation.message,
                        created_at=now,
                    )
                )
            invitation.status = InvitationStatus.ACCEPTED
            invitation.accepted_at = now
            joined.append(workspace)

        self.db.commit()
        if joined:
            logger.info("User %s joined %d workspace(s) from invitations", context.user_id, len(joined))
        return joined
