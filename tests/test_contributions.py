from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from conftest import RecordingMailer, add_workspace_member, create_project, create_user, headers_for
from rcrpm.models.entities import User, Workspace


@pytest.fixture()
def lead(db_session: Session, workspace: Workspace) -> User:
    user = create_user(db_session, user_id="user_lead", email="lead@rcr.test", name="Rabe Lead")
    add_workspace_member(db_session, workspace, user)
    return user


@pytest.fixture()
def project(client: TestClient, workspace: Workspace, admin: User, lead: User) -> dict[str, object]:
    return create_project(client, workspace, admin, team_lead=lead.email)


def _material_payload(project: dict[str, object], quantity: int = 3) -> dict[str, object]:
    return {
        "project_id": project["id"],
        "resource_id": project["material_resources"][0]["id"],
        "quantity": quantity,
        "message": "Avy amin'ny fokontany",
    }


def _material_owned(client: TestClient, project: dict[str, object], user: User) -> int:
    detail = client.get(f"/api/projects/{project['id']}", headers=headers_for(user)).json()
    return detail["material_resources"][0]["owned"]


def test_material_contribution_waits_for_review(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
    admin: User,
    mailer: RecordingMailer,
) -> None:
    response = client.post("/api/contributions/material", json=_material_payload(project), headers=headers_for(member))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["resource_name"] == "Kifafa"
    assert body["contributor"]["id"] == member.id
    assert mailer.recipients() == [lead.email, admin.email]
    assert mailer.subjects()[0] == f"[{project['name']}] Fanolorana materialy miandry"
    assert _material_owned(client, project, lead) == 2


def test_lead_material_contribution_is_approved_at_once(
    client: TestClient,
    project: dict[str, object],
    lead: User,
    mailer: RecordingMailer,
) -> None:
    response = client.post(
        "/api/contributions/material",
        json=_material_payload(project, quantity=5),
        headers=headers_for(lead),
    )

    assert response.status_code == 201
    assert response.json()["status"] == "APPROVED"
    assert mailer.outbox == []
    assert _material_owned(client, project, lead) == 7


def test_approve_material_adds_to_owned_and_emails_contributor(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
    mailer: RecordingMailer,
) -> None:
    created = client.post("/api/contributions/material", json=_material_payload(project), headers=headers_for(member))
    contribution_id = created.json()["id"]
    mailer.outbox.clear()

    by_member = client.put(f"/api/contributions/{contribution_id}/approve", headers=headers_for(member))
    approved = client.put(f"/api/contributions/{contribution_id}/approve", headers=headers_for(lead))
    again = client.put(f"/api/contributions/{contribution_id}/approve", headers=headers_for(lead))
    reject_after = client.put(
        f"/api/contributions/{contribution_id}/reject",
        json={"reason": "Tara"},
        headers=headers_for(lead),
    )

    assert by_member.status_code == 403
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert again.status_code == 409
    assert reject_after.status_code == 409
    assert mailer.outbox[0][0] == member.email
    assert mailer.outbox[0][1] == "Nekena ilay fanampianao !"
    assert _material_owned(client, project, lead) == 5


def test_reject_material_keeps_owned_and_stores_reason(
    client: TestClient,
    project: dict[str, object],
    member: User,
    admin: User,
    lead: User,
    mailer: RecordingMailer,
) -> None:
    created = client.post("/api/contributions/material", json=_material_payload(project), headers=headers_for(member))
    mailer.outbox.clear()

    rejected = client.put(
        f"/api/contributions/{created.json()['id']}/reject",
        json={"reason": "Efa ampy"},
        headers=headers_for(admin),
    )

    assert rejected.status_code == 200
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["rejection_reason"] == "Efa ampy"
    assert mailer.outbox[0][:2] == (member.email, "Contribution non retenue")
    assert "Efa ampy" in mailer.outbox[0][2]
    assert _material_owned(client, project, lead) == 2


def test_material_listings(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
) -> None:
    client.post("/api/contributions/material", json=_material_payload(project), headers=headers_for(member))
    client.post("/api/contributions/material", json=_material_payload(project, 1), headers=headers_for(lead))

    mine = client.get("/api/contributions/my-contributions", headers=headers_for(member))
    pending = client.get(
        f"/api/contributions/project/{project['id']}",
        params={"status": "PENDING"},
        headers=headers_for(lead),
    )
    everything = client.get(f"/api/contributions/project/{project['id']}", headers=headers_for(lead))

    assert [row["quantity"] for row in mine.json()["items"]] == [3]
    assert [row["contributor"]["id"] for row in pending.json()["items"]] == [member.id]
    assert len(everything.json()["items"]) == 2


def test_material_contribution_validation(
    client: TestClient,
    project: dict[str, object],
    member: User,
) -> None:
    zero = client.post(
        "/api/contributions/material",
        json=_material_payload(project, quantity=0),
        headers=headers_for(member),
    )
    wrong_resource = client.post(
        "/api/contributions/material",
        json={**_material_payload(project), "resource_id": str(uuid.uuid4())},
        headers=headers_for(member),
    )

    assert zero.status_code == 422
    assert wrong_resource.status_code == 404


def test_financial_contribution_flow(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
    admin: User,
    mailer: RecordingMailer,
) -> None:
    created = client.post(
        "/api/contributions/financial",
        json={"project_id": project["id"], "amount": "250000", "reference": "MVOLA-889"},
        headers=headers_for(member),
    )

    assert created.status_code == 201
    assert created.json()["amount"] == "250000.00"
    assert created.json()["status"] == "PENDING"
    assert mailer.recipients() == [lead.email, admin.email]
    assert mailer.subjects()[0] == f"[{project['name']}] Fanohanana ara-bola miandry"
    mailer.outbox.clear()

    approved = client.put(f"/api/contributions/financial/{created.json()['id']}/approve", headers=headers_for(lead))

    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"
    assert mailer.outbox[0][:2] == (member.email, "Voaray ny fanampianao ara-bola")
    detail = client.get(f"/api/projects/{project['id']}", headers=headers_for(lead)).json()
    assert detail["financial_resource"] == {
        "id": detail["financial_resource"]["id"],
        "amount": "0.00",
        "owned": "250000.00",
    }

    approved_list = client.get(
        f"/api/contributions/financial/project/{project['id']}",
        params={"status": "APPROVED"},
        headers=headers_for(lead),
    )
    assert [row["reference"] for row in approved_list.json()["items"]] == ["MVOLA-889"]


def test_financial_contribution_validation_and_rejection(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
    mailer: RecordingMailer,
) -> None:
    negative = client.post(
        "/api/contributions/financial",
        json={"project_id": project["id"], "amount": "-5", "reference": "X"},
        headers=headers_for(member),
    )
    blank_reference = client.post(
        "/api/contributions/financial",
        json={"project_id": project["id"], "amount": "5000", "reference": "   "},
        headers=headers_for(member),
    )
    created = client.post(
        "/api/contributions/financial",
        json={"project_id": project["id"], "amount": "5000", "reference": "ORANGE-1"},
        headers=headers_for(member),
    )
    mailer.outbox.clear()
    rejected = client.put(
        f"/api/contributions/financial/{created.json()['id']}/reject",
        json={"reason": "Tsy hita ny vola"},
        headers=headers_for(lead),
    )
    approve_after = client.put(
        f"/api/contributions/financial/{created.json()['id']}/approve",
        headers=headers_for(lead),
    )

    assert negative.status_code == 422
    assert blank_reference.status_code == 422
    assert rejected.json()["status"] == "REJECTED"
    assert mailer.outbox[0][:2] == (member.email, "Fanohanana ara-bola tsy voaray")
    assert approve_after.status_code == 409


def test_human_participation_flow(
    client: TestClient,
    project: dict[str, object],
    member: User,
    lead: User,
    mailer: RecordingMailer,
) -> None:
    resource_id = project["human_resources"][0]["id"]
    payload = {"project_id": project["id"], "resource_id": resource_id, "message": "Vonona aho"}

    joined = client.post("/api/contributions/human", json=payload, headers=headers_for(member))
    duplicate = client.post("/api/contributions/human", json=payload, headers=headers_for(member))

    assert joined.status_code == 201
    assert joined.json()["status"] == "APPROVED"
    assert duplicate.status_code == 409
    assert mailer.outbox[0][:2] == (member.email, f"[{project['name']}] Voamarina ny firotsahanao")
    assert mailer.outbox[1][:2] == (lead.email, f"[{project['name']}] Mpikambana vaovao")
    assert len(mailer.outbox) == 2

    participants = client.get(f"/api/contributions/human/resource/{resource_id}", headers=headers_for(lead))
    assert [row["participant"]["id"] for row in participants.json()["items"]] == [member.id]

    by_lead = client.delete(f"/api/contributions/human/{joined.json()['id']}", headers=headers_for(lead))
    cancelled = client.delete(f"/api/contributions/human/{joined.json()['id']}", headers=headers_for(member))
    after = client.get(f"/api/contributions/human/resource/{resource_id}", headers=headers_for(lead))

    assert by_lead.status_code == 404
    assert cancelled.status_code == 204
    assert after.json() == {"items": []}


def test_lead_participation_does_not_notify_lead(
    client: TestClient,
    project: dict[str, object],
    lead: User,
    mailer: RecordingMailer,
) -> None:
    response = client.post(
        "/api/contributions/human",
        json={"project_id": project["id"], "resource_id": project["human_resources"][0]["id"]},
        headers=headers_for(lead),
    )

    assert response.status_code == 201
    assert mailer.recipients() == [lead.email]


def test_resource_with_participants_cannot_be_removed(
    client: TestClient,
    project: dict[str, object],
    member: User,
    admin: User,
) -> None:
    client.post(
        "/api/contributions/human",
        json={"project_id": project["id"], "resource_id": project["human_resources"][0]["id"]},
        headers=headers_for(member),
    )

    response = client.put(
        f"/api/projects/{project['id']}",
        json={"human_resources": []},
        headers=headers_for(admin),
    )
    blocked_delete = client.delete(f"/api/projects/{project['id']}", headers=headers_for(admin))

    assert response.status_code == 409
    assert blocked_delete.status_code == 409
