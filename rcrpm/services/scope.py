"""Project lookup with permission resolution, shared by the project-scoped services."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status

from rcrpm.core.auth import ProjectAccess, RequestUserContext, resolve_project_access
from rcrpm.models.entities import Project, User, Workspace, WorkspaceMember
from rcrpm.repositories.project_repository import ProjectRepository


@dataclass(slots=True)
class ProjectScope:
    project: Project
    workspace: Workspace
    members: list[WorkspaceMember]
    access: ProjectAccess


def load_project_scope(
    repo: ProjectRepository,
    *,
    context: RequestUserContext,
    project_id: UUID,
    require_manage: bool = False,
) -> ProjectScope:
    project = repo.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

    workspace = repo.get_workspace(project.workspace_id)
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.")

    members = repo.list_workspace_members(workspace.id)
    access = resolve_project_access(
        project=project,
        workspace=workspace,
        workspace_members=members,
        project_member_ids=repo.list_project_member_ids(project.id),
        user_id=context.user_id,
    )
    if not access.can_read:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this project.")
    if require_manage and not access.can_manage:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the project lead or a workspace admin can perform this operation.",
        )
    return ProjectScope(project=project, workspace=workspace, members=list(members), access=access)


def serialize_user(user: User | None) -> dict[str, object] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "image_url": user.image_url,
    }
