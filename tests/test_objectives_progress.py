from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import create_project, headers_for
from rcrpm.models.entities import User, Workspace


@pytest.fixture()
def project(client: TestClient, workspace: Workspace, admin: User) -> dict[str, object]:
    return create_project(client, workspace, admin)


def _create_objective(client: TestClient, project: dict[str, object], user: User, name: str):
    return client.post(
        f"/api/objectives/project/{project['id']}",
        json={"name": name, "result": "Tsena madio"},
        headers=headers_for(user),
    )


def test_objectives_are_appended_in_order(client: TestClient, project: dict[str, object], admin: User) -> None:
    first = _create_objective(client, project, admin, "Fanentanana")
    second = _create_objective(client, project, admin, "Fanadiovana")

    assert first.status_code == 201
    assert first.json()["position"] == 1
    assert second.json()["position"] == 2
    assert first.json()["indicators"] == []

    listed = client.get(f"/api/objectives/project/{project['id']}", headers=headers_for(admin))
    assert [row["name"] for row in listed.json()["items"]] == ["Fanentanana", "Fanadiovana"]


def test_objective_management_requires_lead_or_admin(
    client: TestClient,
    project: dict[str, object],
    admin: User,
    member: User,
) -> None:
    denied = _create_objective(client, project, member, "Tsy mahazo")
    blank = _create_objective(client, project, admin, "   ")
    objective = _create_objective(client, project, admin, "Fanentanana").json()
    rename_denied = client.put(
        f"/api/objectives/{objective['id']}",
        json={"name": "Hafa"},
        headers=headers_for(member),
    )
    renamed = client.put(
        f"/api/objectives/{objective['id']}",
        json={"name": "Fanentanana lehibe", "risk": "Orana"},
        headers=headers_for(admin),
    )

    assert denied.status_code == 403
    assert blank.status_code == 422
    assert rename_denied.status_code == 403
    assert renamed.json()["name"] == "Fanentanana lehibe"
    assert renamed.json()["risk"] == "Orana"


def test_members_toggle_and_record_indicator_progress(
    client: TestClient,
    project: dict[str, object],
    admin: User,
    member: User,
    outsider: User,
) -> None:
    objective = _create_objective(client, project, admin, "Fanentanana").json()
    indicator = client.post(
        f"/api/objectives/{objective['id']}/indicators",
        json={"name": "Olona voatendry", "target": 200, "unit": "olona"},
        headers=headers_for(admin),
    )
    assert indicator.status_code == 201
    assert indicator.json()["current"] == 0
    indicator_id = indicator.json()["id"]

    toggled = client.put(f"/api/objectives/{objective['id']}/toggle", headers=headers_for(member))
    outsider_toggle = client.put(f"/api/objectives/{objective['id']}/toggle", headers=headers_for(outsider))
    updated = client.put(
        f"/api/objectives/indicators/{indicator_id}",
        json={"current": 50},
        headers=headers_for(member),
    )
    outsider_update = client.put(
        f"/api/objectives/indicators/{indicator_id}",
        json={"current": 60},
        headers=headers_for(outsider),
    )

    assert toggled.status_code == 200
    assert toggled.json()["is_completed"] is True
    assert outsider_toggle.status_code == 403
    assert updated.json()["current"] == 50
    assert updated.json()["progress"] == 25.0
    assert outsider_update.status_code == 403

    progress = client.get(f"/api/projects/{project['id']}/progress", headers=headers_for(member)).json()
    assert progress["objectives"]["total"] == 1
    assert progress["objectives"]["completed"] == 1
    assert progress["objectives"]["percent"] == 100.0
    assert progress["objectives"]["indicator_average"] == 25.0


def test_indicator_progress_is_capped(client: TestClient, project: dict[str, object], admin: User) -> None:
    objective = _create_objective(client, project, admin, "Fanentanana").json()
    indicator = client.post(
        f"/api/objectives/{objective['id']}/indicators",
        json={"name": "Fivoriana", "target": 4},
        headers=headers_for(admin),
    ).json()

    response = client.put(
        f"/api/objectives/indicators/{indicator['id']}",
        json={"current": 9},
        headers=headers_for(admin),
    )

    assert response.json()["progress"] == 100.0


def test_delete_objective_and_indicator(client: TestClient, project: dict[str, object], admin: User) -> None:
    objective = _create_objective(client, project, admin, "Fanentanana").json()
    indicator = client.post(
        f"/api/objectives/{objective['id']}/indicators",
        json={"name": "Fivoriana", "target": 4},
        headers=headers_for(admin),
    ).json()

    removed_indicator = client.delete(f"/api/objectives/indicators/{indicator['id']}", headers=headers_for(admin))
    removed_objective = client.delete(f"/api/objectives/{objective['id']}", headers=headers_for(admin))
    listed = client.get(f"/api/objectives/project/{project['id']}", headers=headers_for(admin))

    assert removed_indicator.status_code == 204
    assert removed_objective.status_code == 204
    assert listed.json() == {"items": []}
