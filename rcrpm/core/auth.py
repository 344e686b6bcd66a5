"""Authentication context extraction and permission helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from rcrpm.core.config import get_settings
from rcrpm.db.dependencies import get_db_session
from rcrpm.models.entities import (
    Project,
    User,
    UserStatus,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceVisibility,
    utc_now,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: str
    email: str
    name: str
    status: str


@dataclass(frozen=True)
class ProjectAccess:
    """Effective permissions of one user on one project."""

    can_read: bool
    can_manage: bool
    is_lead: bool
    is_workspace_admin: bool
    is_workspace_member: bool
    is_project_member: bool


def _require_identity_headers(
    x_user_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
) -> tuple[str, str, str]:
    if not x_user_id or not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-USER-ID and X-USER-EMAIL or enable development principal fallback."
            ),
        )

    name = x_user_name or x_user_email
    return x_user_id.strip(), x_user_email.strip().lower(), name.strip()


def _resolve_identity(
    x_user_id: str | None,
    x_user_email: str | None,
    x_user_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_user_id and x_user_email:
        return _require_identity_headers(x_user_id, x_user_email, x_user_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_user_id.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_name.strip(),
        )

    return _require_identity_headers(x_user_id, x_user_email, x_user_name)


def _upsert_user(db: Session, *, user_id: str, email: str, name: str) -> User:
    user = db.get(User, user_id)
    now = utc_now()

    if user is None:
        user = User(
            id=user_id,
            email=email,
            name=name,
            status=UserStatus.ACTIVE,
            last_seen_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        logger.info("Registered user %s on first request", user_id)
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.name != name:
        user.name = name
        changed = True

    user.last_seen_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(db: Session, *, user_id: str, email: str, name: str) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    user = _upsert_user(
        db,
        user_id=user_id.strip(),
        email=normalized_email,
        name=name.strip() or normalized_email,
    )
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_user_id: str | None = Header(default=None, alias="X-USER-ID"),
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    x_user_name: str | None = Header(default=None, alias="X-USER-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user.

    Identity headers are injected by the authenticating proxy in front of
    the API; the identity provider's webhooks keep the user table in sync.
    """

    user_id, email, name = _resolve_identity(x_user_id, x_user_email, x_user_name)
    user = _upsert_user(db, user_id=user_id, email=email, name=name)
    if user.status is UserStatus.DELETED:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled.")
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        status=user.status.value,
    )


def is_workspace_admin(members: Iterable[WorkspaceMember], user_id: str) -> bool:
    """Whether user holds the ADMIN role in the given membership rows."""

    return any(member.user_id == user_id and member.role is WorkspaceRole.ADMIN for member in members)


def is_workspace_member(members: Iterable[WorkspaceMember], user_id: str) -> bool:
    return any(member.user_id == user_id for member in members)


def resolve_project_access(
    *,
    project: Project,
    workspace: Workspace,
    workspace_members: Iterable[WorkspaceMember],
    project_member_ids: Iterable[str],
    user_id: str,
) -> ProjectAccess:
    """Compute read/manage rights of ``user_id`` on ``project``.

    Workspace members may read every project of their workspace. Anyone may
    read a public project of a public workspace. Workspace admins and the
    project lead may manage it.
    """

    members = list(workspace_members)
    member = is_workspace_member(members, user_id)
    admin = is_workspace_admin(members, user_id)
    lead = project.team_lead_id == user_id
    publicly_visible = workspace.visibility is WorkspaceVisibility.PUBLIC and project.is_public

    return ProjectAccess(
        can_read=member or publicly_visible,
        can_manage=admin or lead,
        is_lead=lead,
        is_workspace_admin=admin,
        is_workspace_member=member,
        is_project_member=user_id in set(project_member_ids),
    )
