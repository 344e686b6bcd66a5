from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import rcrpm.models.entities  # noqa: F401
from rcrpm.db.base import Base
from rcrpm.db.dependencies import get_db_session
from rcrpm.main import create_app
from rcrpm.models.entities import (
    User,
    UserStatus,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceVisibility,
    utc_now,
)
from rcrpm.notifications.mailer import get_mailer


class RecordingMailer:
    """Captures outbound email instead of talking to SMTP."""

    def __init__(self) -> None:
        self.outbox: list[tuple[str, str, str]] = []

    def send(self, *, to: str, subject: str, html: str) -> bool:
        self.outbox.append((to, subject, html))
        return True

    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.outbox]

    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.outbox]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def client(db_session: Session, mailer: RecordingMailer) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(
    *,
    user_id: str = "user_admin",
    email: str = "admin@rcr.test",
    name: str = "Admin User",
) -> dict[str, str]:
    return {
        "X-USER-ID": user_id,
        "X-USER-EMAIL": email,
        "X-USER-NAME": name,
    }


def create_user(db: Session, *, user_id: str, email: str, name: str) -> User:
    now = utc_now()
    user = User(id=user_id, email=email, name=name, status=UserStatus.ACTIVE, created_at=now, updated_at=now)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_workspace(
    db: Session,
    *,
    workspace_id: str = "org_rcr",
    name: str = "RCR Analamanga",
    owner: User,
    visibility: WorkspaceVisibility = WorkspaceVisibility.PUBLIC,
) -> Workspace:
    now = utc_now()
    workspace = Workspace(
        id=workspace_id,
        name=name,
        owner_id=owner.id,
        visibility=visibility,
        created_at=now,
        updated_at=now,
    )
    db.add(workspace)
    db.add(WorkspaceMember(workspace_id=workspace_id, user_id=owner.id, role=WorkspaceRole.ADMIN, created_at=now))
    db.commit()
    db.refresh(workspace)
    return workspace


def add_workspace_member(
    db: Session,
    workspace: Workspace,
    user: User,
    role: WorkspaceRole = WorkspaceRole.MEMBER,
) -> WorkspaceMember:
    member = WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role, created_at=utc_now())
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture()
def admin(db_session: Session) -> User:
    return create_user(db_session, user_id="user_admin", email="admin@rcr.test", name="Admin User")


@pytest.fixture()
def member(db_session: Session) -> User:
    return create_user(db_session, user_id="user_member", email="member@rcr.test", name="Rakoto Member")


@pytest.fixture()
def outsider(db_session: Session) -> User:
    return create_user(db_session, user_id="user_outsider", email="outsider@rcr.test", name="Outsider")


@pytest.fixture()
def workspace(db_session: Session, admin: User, member: User) -> Workspace:
    workspace = create_workspace(db_session, owner=admin)
    add_workspace_member(db_session, workspace, member)
    return workspace


def headers_for(user: User) -> dict[str, str]:
    return auth_headers(user_id=user.id, email=user.email, name=user.name)


def create_project(client: TestClient, workspace: Workspace, user: User, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "workspace_id": workspace.id,
        "name": "Fanadiovana tsena",
        "description": "Market cleanup campaign",
        "start_date": "2026-03-01",
        "end_date": "2026-06-30",
        "material_resources": [{"name": "Kifafa", "needed": 20, "owned": 2}],
        "human_resources": [{"name": "Mpanadio", "needed": 10}],
    }
    payload.update(overrides)
    response = client.post("/api/projects", json=payload, headers=headers_for(user))
    assert response.status_code == 201, response.text
    return response.json()
