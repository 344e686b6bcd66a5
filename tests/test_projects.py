from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import add_workspace_member, create_project, create_user, create_workspace, headers_for
from rcrpm.models.entities import MaterialContribution, MaterialResource, User, Workspace, WorkspaceVisibility


def test_admin_creates_project_with_lead_members_and_resources(
    client: TestClient,
    workspace: Workspace,
    admin: User,
    member: User,
) -> None:
    project = create_project(
        client,
        workspace,
        admin,
        team_lead=member.email,
        team_members=[member.email, "stranger@rcr.test"],
        financial_resources={"needed": "1500000", "owned": "0"},
        treasurer_name="Rasoa",
        treasurer_phone="+261340000000",
    )

    assert project["team_lead"] == member.id
    assert project["team_lead_user"]["email"] == member.email
    assert [row["id"] for row in project["members"]] == [member.id]
    assert project["material_resources"][0] == {
        "id": project["material_resources"][0]["id"],
        "name": "Kifafa",
        "needed": 20,
        "owned": 2,
    }
    assert project["human_resources"][0]["participants"] == []
    assert project["financial_resource"]["amount"] == "1500000.00"
    assert project["access"]["is_workspace_admin"] is True
    assert project["access"]["is_lead"] is False


def test_project_creation_rules(client: TestClient, workspace: Workspace, admin: User, member: User) -> None:
    base = {"workspace_id": workspace.id, "name": "Tetikasa"}

    not_admin = client.post("/api/projects", json=base, headers=headers_for(member))
    bad_dates = client.post(
        "/api/projects",
        json={**base, "start_date": "2026-05-01", "end_date": "2026-04-01"},
        headers=headers_for(admin),
    )
    no_treasurer = client.post(
        "/api/projects",
        json={**base, "financial_resources": {"needed": "100000"}},
        headers=headers_for(admin),
    )
    missing_workspace = client.post(
        "/api/projects",
        json={**base, "workspace_id": "org_missing"},
        headers=headers_for(admin),
    )

    assert not_admin.status_code == 403
    assert bad_dates.status_code == 422
    assert no_treasurer.status_code == 422
    assert missing_workspace.status_code == 404


def test_lead_defaults_to_creator(client: TestClient, workspace: Workspace, admin: User) -> None:
    project = create_project(client, workspace, admin, team_lead="unknown@rcr.test")

    assert project["team_lead"] == admin.id
    assert project["access"]["is_lead"] is True
    assert project["financial_resource"] is None


def test_lead_must_belong_to_the_workspace(
    client: TestClient,
    workspace: Workspace,
    admin: User,
    outsider: User,
) -> None:
    response = client.post(
        "/api/projects",
        json={"workspace_id": workspace.id, "name": "Tetikasa", "team_lead": outsider.email},
        headers=headers_for(admin),
    )

    assert response.status_code == 422


def test_public_listing_includes_every_public_project(
    client: TestClient,
    db_session: Session,
    workspace: Workspace,
    admin: User,
) -> None:
    create_project(client, workspace, admin, name="Public one")
    create_project(client, workspace, admin, name="Hidden one", is_public=False)
    other_owner = create_user(db_session, user_id="user_private", email="private@rcr.test", name="Private")
    private = create_workspace(
        db_session,
        workspace_id="org_private",
        name="Closed",
        owner=other_owner,
        visibility=WorkspaceVisibility.PRIVATE,
    )
    create_project(client, private, other_owner, name="Private workspace project")

    response = client.get("/api/projects/public")

    assert response.status_code == 200
    items = {row["name"]: row for row in response.json()["items"]}
    assert sorted(items) == ["Private workspace project", "Public one"]
    assert items["Public one"]["workspace"]["name"] == workspace.name
    assert items["Private workspace project"]["workspace"]["name"] == private.name


def test_workspace_listing_depends_on_membership(
    client: TestClient,
    workspace: Workspace,
    admin: User,
    member: User,
    outsider: User,
) -> None:
    create_project(client, workspace, admin, name="Open")
    create_project(client, workspace, admin, name="Internal", is_public=False)

    as_member = client.get(f"/api/projects/workspace/{workspace.id}", headers=headers_for(member))
    as_outsider = client.get(f"/api/projects/workspace/{workspace.id}", headers=headers_for(outsider))

    assert sorted(row["name"] for row in as_member.json()["items"]) == ["Internal", "Open"]
    assert [row["name"] for row in as_outsider.json()["items"]] == ["Open"]


def test_private_project_is_forbidden_to_outsiders(
    client: TestClient,
    workspace: Workspace,
    admin: User,
    outsider: User,
) -> None:
    project = create_project(client, workspace, admin, is_public=False)

    response = client.get(f"/api/projects/{project['id']}", headers=headers_for(outsider))

    assert response.status_code == 403


def test_update_syncs_resources_and_requires_manage(
    client: TestClient,
    workspace: Workspace,
    admin: User,
    member: User,
) -> None:
    project = create_project(client, workspace, admin)
    existing = project["material_resources"][0]

    denied = client.put(f"/api/projects/{project['id']}", json={"name": "Nope"}, headers=headers_for(member))
    updated = client.put(
        f"/api/projects/{project['id']}",
        json={
            "name": "Fanadiovana tsena lehibe",
            "progress": 40,
            "material_resources": [
                {"id": existing["id"], "name": "Kifafa", "needed": 30, "owned": 5},
                {"name": "Harona", "needed": 15},
            ],
            "human_resources": [],
        },
        headers=headers_for(admin),
    )

    assert denied.status_code == 403
    assert updated.status_code == 200
    body = updated.json()
    assert body["name"] == "Fanadiovana tsena lehibe"
    assert body["progress"] == 40
    assert {row["name"]: row["needed"] for row in body["material_resources"]} == {"Harona": 15, "Kifafa": 30}
    assert body["human_resources"] == []


def test_removing_resource_with_contributions_conflicts(
    client: TestClient,
    db_session: Session,
    workspace: Workspace,
    admin: User,
    member: User,
) -> None:
    project = create_project(client, workspace, admin)
    resource = db_session.query(MaterialResource).one()
    db_session.add(
        MaterialContribution(
            project_id=resource.project_id,
            resource_id=resource.id,
            contributor_id=member.id,
            quantity=1,
        )
    )
    db_session.commit()

    response = client.put(
        f"/api/projects/{project['id']}",
        json={"material_resources": []},
        headers=headers_for(admin),
    )

    assert response.status_code == 409


def test_update_rejects_inverted_dates(client: TestClient, workspace: Workspace, admin: User) -> None:
    project = create_project(client, workspace, admin)

    response = client.put(
        f"/api/projects/{project['id']}",
        json={"end_date": "2026-01-01"},
        headers=headers_for(admin),
    )

    assert response.status_code == 422


def test_update_can_clear_treasurer_without_financial_need(
    client: TestClient,
    workspace: Workspace,
    admin: User,
) -> None:
    project = create_project(client, workspace, admin, treasurer_name="Rasoa", treasurer_phone="+261340000000")
    url = f"/api/projects/{project['id']}"

    untouched = client.put(url, json={"progress": 10}, headers=headers_for(admin))
    cleared = client.put(url, json={"treasurer_name": None, "treasurer_phone": ""}, headers=headers_for(admin))

    assert untouched.json()["treasurer_name"] == "Rasoa"
    assert cleared.status_code == 200
    assert cleared.json()["treasurer_name"] is None
    assert cleared.json()["treasurer_phone"] is None


def test_update_keeps_treasurer_while_funds_are_needed(
    client: TestClient,
    workspace: Workspace,
    admin: User,
) -> None:
    project = create_project(
        client,
        workspace,
        admin,
        financial_resources={"needed": "500000", "owned": "0"},
        treasurer_name="Rasoa",
        treasurer_phone="+261340000000",
    )

    response = client.put(
        f"/api/projects/{project['id']}",
        json={"treasurer_name": None},
        headers=headers_for(admin),
    )

    assert response.status_code == 422


def test_blank_project_names_are_rejected(client: TestClient, workspace: Workspace, admin: User) -> None:
    project = create_project(client, workspace, admin)

    created = client.post(
        "/api/projects",
        json={"workspace_id": workspace.id, "name": "   "},
        headers=headers_for(admin),
    )
    renamed = client.put(f"/api/projects/{project['id']}", json={"name": "  "}, headers=headers_for(admin))
    trimmed = client.put(f"/api/projects/{project['id']}", json={"name": "  Lalana  "}, headers=headers_for(admin))

    assert created.status_code == 422
    assert renamed.status_code == 422
    assert trimmed.json()["name"] == "Lalana"


def test_add_project_member(
    client: TestClient,
    db_session: Session,
    workspace: Workspace,
    admin: User,
    member: User,
    outsider: User,
) -> None:
    project = create_project(client, workspace, admin)
    url = f"/api/projects/{project['id']}/members"

    added = client.post(url, json={"member_email": member.email}, headers=headers_for(admin))
    duplicate = client.post(url, json={"member_email": member.email}, headers=headers_for(admin))
    not_in_workspace = client.post(url, json={"member_email": outsider.email}, headers=headers_for(admin))
    unknown = client.post(url, json={"member_email": "ghost@rcr.test"}, headers=headers_for(admin))

    assert added.status_code == 201
    assert added.json() == {"project_id": project["id"], "user_id": member.id}
    assert duplicate.status_code == 409
    assert not_in_workspace.status_code == 422
    assert unknown.status_code == 404


def test_delete_project_rules(
    client: TestClient,
    db_session: Session,
    workspace: Workspace,
    admin: User,
    member: User,
) -> None:
    lead = create_user(db_session, user_id="user_lead", email="lead@rcr.test", name="Lead")
    add_workspace_member(db_session, workspace, lead)
    project = create_project(client, workspace, admin, team_lead=lead.email)

    task = client.post(
        "/api/tasks",
        json={"project_id": project["id"], "title": "Hetsika voalohany"},
        headers=headers_for(admin),
    )
    assert task.status_code == 201

    by_lead = client.delete(f"/api/projects/{project['id']}", headers=headers_for(lead))
    with_tasks = client.delete(f"/api/projects/{project['id']}", headers=headers_for(admin))
    client.request("DELETE", "/api/tasks", json={"task_ids": [task.json()["id"]]}, headers=headers_for(admin))
    deleted = client.delete(f"/api/projects/{project['id']}", headers=headers_for(admin))
    gone = client.get(f"/api/projects/{project['id']}", headers=headers_for(admin))

    assert by_lead.status_code == 403
    assert with_tasks.status_code == 409
    assert deleted.status_code == 204
    assert gone.status_code == 404


def test_progress_aggregates_resources(
    client: TestClient,
    workspace: Workspace,
    admin: User,
) -> None:
    project = create_project(client, workspace, admin)

    response = client.get(f"/api/projects/{project['id']}/progress", headers=headers_for(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["project_id"] == project["id"]
    assert body["tasks"]["total"] == 0
    assert body["objectives"]["percent"] == 0.0
    assert body["resources"]["material"][0]["percent"] == 10.0
