from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import auth_headers, create_user
from rcrpm.core.auth import ensure_user_principal, is_workspace_admin, is_workspace_member, resolve_project_access
from rcrpm.core.config import get_settings
from rcrpm.models.entities import (
    Project,
    UserStatus,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceVisibility,
    utc_now,
)


def _workspace(visibility: WorkspaceVisibility = WorkspaceVisibility.PUBLIC) -> Workspace:
    return Workspace(id="org_1", name="RCR", owner_id="user_owner", visibility=visibility)


def _project(*, lead: str = "user_lead", is_public: bool = True) -> Project:
    return Project(id=uuid.uuid4(), workspace_id="org_1", name="Project", team_lead_id=lead, is_public=is_public)


def _members() -> list[WorkspaceMember]:
    return [
        WorkspaceMember(workspace_id="org_1", user_id="user_owner", role=WorkspaceRole.ADMIN),
        WorkspaceMember(workspace_id="org_1", user_id="user_member", role=WorkspaceRole.MEMBER),
        WorkspaceMember(workspace_id="org_1", user_id="user_lead", role=WorkspaceRole.MEMBER),
    ]


def test_workspace_role_helpers() -> None:
    members = _members()

    assert is_workspace_admin(members, "user_owner") is True
    assert is_workspace_admin(members, "user_member") is False
    assert is_workspace_member(members, "user_member") is True
    assert is_workspace_member(members, "user_stranger") is False


def test_lead_and_admin_can_manage_project() -> None:
    project = _project()
    workspace = _workspace()

    lead = resolve_project_access(
        project=project,
        workspace=workspace,
        workspace_members=_members(),
        project_member_ids=["user_lead"],
        user_id="user_lead",
    )
    admin = resolve_project_access(
        project=project,
        workspace=workspace,
        workspace_members=_members(),
        project_member_ids=["user_lead"],
        user_id="user_owner",
    )
    member = resolve_project_access(
        project=project,
        workspace=workspace,
        workspace_members=_members(),
        project_member_ids=["user_lead"],
        user_id="user_member",
    )

    assert lead.can_manage is True and lead.is_lead is True and lead.is_project_member is True
    assert admin.can_manage is True and admin.is_workspace_admin is True and admin.is_project_member is False
    assert member.can_read is True and member.can_manage is False


@pytest.mark.parametrize(
    ("visibility", "is_public", "expected"),
    [
        (WorkspaceVisibility.PUBLIC, True, True),
        (WorkspaceVisibility.PUBLIC, False, False),
        (WorkspaceVisibility.PRIVATE, True, False),
    ],
)
def test_outsider_reads_only_public_projects_of_public_workspaces(
    visibility: WorkspaceVisibility,
    is_public: bool,
    expected: bool,
) -> None:
    access = resolve_project_access(
        project=_project(is_public=is_public),
        workspace=_workspace(visibility),
        workspace_members=_members(),
        project_member_ids=[],
        user_id="user_stranger",
    )

    assert access.can_read is expected
    assert access.can_manage is False


def test_me_registers_caller_from_identity_headers(client: TestClient) -> None:
    headers = auth_headers(user_id="user_new", email="New.User@RCR.test", name="New User")

    response = client.get("/api/me", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "id": "user_new",
        "email": "new.user@rcr.test",
        "name": "New User",
        "status": "active",
    }


def test_me_falls_back_to_development_principal(client: TestClient) -> None:
    settings = get_settings()

    response = client.get("/api/me")

    assert response.status_code == 200
    assert response.json()["id"] == settings.auth_dev_user_id


def test_missing_headers_rejected_without_development_principal(
    client: TestClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(get_settings(), "auth_allow_dev_principal", False)

    response = client.get("/api/me")

    assert response.status_code == 401


def test_deleted_user_is_refused(client: TestClient, db_session: Session) -> None:
    user = create_user(db_session, user_id="user_gone", email="gone@rcr.test", name="Gone")
    user.status = UserStatus.DELETED
    db_session.commit()

    response = client.get("/api/me", headers=auth_headers(user_id="user_gone", email="gone@rcr.test", name="Gone"))

    assert response.status_code == 403


def test_timestamps_are_timezone_aware_utc(db_session: Session) -> None:
    assert utc_now().utcoffset() == timedelta(0)

    before = utc_now()
    user = ensure_user_principal(db_session, user_id="user_tz", email="Tz@RCR.test", name="Tz")

    assert user.email == "tz@rcr.test"
    seen = user.last_seen_at
    # SQLite drops the offset on the way back; PostgreSQL keeps it.
    if seen.tzinfo is None:
        seen = seen.replace(tzinfo=before.tzinfo)
    assert seen >= before
