"""Identity provider sync handlers (``clerk/*`` events)."""

from __future__ import annotations

import logging
from typing import Any

from rcrpm.events.bus import Event, HandlerContext, event_bus
from rcrpm.models.entities import User, UserStatus, Workspace, WorkspaceMember, WorkspaceRole, utc_now
from rcrpm.repositories.project_repository import ProjectRepository

logger = logging.getLogger(__name__)

ADMIN_ROLE = "org:admin"


def _repo(context: HandlerContext) -> ProjectRepository:
    if context.db is None:
        raise RuntimeError("Identity handlers require a database session.")
    return ProjectRepository(context.db)


def _primary_email(data: dict[str, Any]) -> str | None:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return data.get("identifier")


def _full_name(data: dict[str, Any], fallback: str) -> str:
    parts = [data.get("first_name"), data.get("last_name")]
    name = " ".join(part.strip() for part in parts if part and part.strip())
    return name or fallback


def upsert_user(
    repo: ProjectRepository,
    *,
    user_id: str,
    email: str,
    name: str,
    image_url: str | None,
) -> User:
    now = utc_now()
    email = email.strip().lower()
    user = repo.get_user(user_id)
    if user is None:
        user = repo.add_user(
            User(
                id=user_id,
                email=email,
                name=name,
                image_url=image_url,
                status=UserStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Synced new user %s", user_id)
        return user

    user.email = email
    user.name = name
    user.image_url = image_url
    user.status = UserStatus.ACTIVE
    user.updated_at = now
    repo.db.flush()
    logger.info("Synced user %s", user_id)
    return user


@event_bus.on("clerk/user.created")
@event_bus.on("clerk/user.updated")
def sync_user(event: Event, context: HandlerContext) -> None:
    data = event.data
    email = _primary_email(data)
    if not email:
        logger.warning("Ignoring %s for %s: no email address", event.name, data.get("id"))
        return
    upsert_user(
        _repo(context),
        user_id=data["id"],
        email=email,
        name=_full_name(data, email),
        image_url=data.get("image_url") or data.get("profile_image_url"),
    )


@event_bus.on("clerk/user.deleted")
def delete_user(event: Event, context: HandlerContext) -> None:
    repo = _repo(context)
    user = repo.get_user(event.data["id"])
    if user is None:
        logger.info("User %s already absent; nothing to delete", event.data["id"])
        return

    user.status = UserStatus.DELETED
    user.updated_at = utc_now()
    repo.delete_memberships_for_user(user.id)
    logger.info("Soft-deleted user %s and removed memberships", user.id)


def _upsert_workspace(repo: ProjectRepository, data: dict[str, Any], *, owner_id: str | None) -> Workspace | None:
    now = utc_now()
    workspace = repo.get_workspace(data["id"])
    if workspace is not None:
        workspace.name = data.get("name") or workspace.name
        workspace.slug = data.get("slug") or workspace.slug
        workspace.image_url = data.get("image_url") or workspace.image_url
        workspace.updated_at = now
        repo.db.flush()
        return workspace

    if owner_id is None or repo.get_user(owner_id) is None:
        logger.warning("Cannot create workspace %s: owner %s is not synced", data["id"], owner_id)
        return None

    return repo.add_workspace(
        Workspace(
            id=data["id"],
            name=data.get("name") or data["id"],
            slug=data.get("slug"),
            image_url=data.get("image_url"),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
    )


def _ensure_member(repo: ProjectRepository, *, workspace_id: str, user_id: str, role: WorkspaceRole) -> None:
    member = repo.get_workspace_member(workspace_id, user_id)
    if member is None:
        repo.add_workspace_member(WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role))
        logger.info("Added %s to workspace %s as %s", user_id, workspace_id, role.value)
        return
    if member.role is not role:
        member.role = role
        repo.db.flush()


@event_bus.on("clerk/organization.created")
def create_workspace(event: Event, context: HandlerContext) -> None:
    repo = _repo(context)
    creator_id = event.data.get("created_by")
    workspace = _upsert_workspace(repo, event.data, owner_id=creator_id)
    if workspace is not None and creator_id:
        _ensure_member(repo, workspace_id=workspace.id, user_id=creator_id, role=WorkspaceRole.ADMIN)


@event_bus.on("clerk/organization.updated")
def update_workspace(event: Event, context: HandlerContext) -> None:
    repo = _repo(context)
    if repo.get_workspace(event.data["id"]) is None:
        logger.info("Workspace %s not synced yet; ignoring update", event.data["id"])
        return
    _upsert_workspace(repo, event.data, owner_id=None)


@event_bus.on("clerk/organizationMembership.created")
def add_membership(event: Event, context: HandlerContext) -> None:
    repo = _repo(context)
    organization = event.data.get("organization") or {}
    member_data = event.data.get("public_user_data") or {}
    user_id = member_data.get("user_id")
    if not organization.get("id") or not user_id:
        logger.warning("Ignoring membership event without organization or user id")
        return

    if repo.get_user(user_id) is None:
        email = member_data.get("identifier")
        if not email:
            logger.warning("Cannot sync member %s: no email address", user_id)
            return
        upsert_user(
            repo,
            user_id=user_id,
            email=email,
            name=_full_name(member_data, email),
            image_url=member_data.get("image_url"),
        )

    workspace = _upsert_workspace(repo, organization, owner_id=user_id)
    if workspace is None:
        return
    role = WorkspaceRole.ADMIN if event.data.get("role") == ADMIN_ROLE else WorkspaceRole.MEMBER
    _ensure_member(repo, workspace_id=workspace.id, user_id=user_id, role=role)


@event_bus.on("clerk/organizationMembership.deleted")
def remove_membership(event: Event, context: HandlerContext) -> None:
    repo = _repo(context)
    organization_id = (event.data.get("organization") or {}).get("id")
    user_id = (event.data.get("public_user_data") or {}).get("user_id")
    member = repo.get_workspace_member(organization_id, user_id) if organization_id and user_id else None
    if member is None:
        logger.info("Membership %s/%s already absent", organization_id, user_id)
        return
    repo.delete_workspace_member(member)
    logger.info("Removed %s from workspace %s", user_id, organization_id)
