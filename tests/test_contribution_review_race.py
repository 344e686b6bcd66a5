from __future__ import annotations

from collections.abc import Generator
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import rcrpm.models.entities  # noqa: F401
from conftest import add_workspace_member, create_user, create_workspace
from rcrpm.core.auth import RequestUserContext
from rcrpm.db.base import Base
from rcrpm.models.entities import (
    ContributionStatus,
    FinancialContribution,
    FinancialResource,
    MaterialContribution,
    MaterialResource,
    Project,
)
from rcrpm.services.contribution_service import ContributionService


@pytest.fixture()
def session_factory(tmp_path: Path) -> Generator[sessionmaker[Session], None, None]:
    # Two sessions need two connections, so the database lives in a file.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'review.db'}", future=True)
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def seeded(session_factory: sessionmaker[Session]) -> dict[str, object]:
    with session_factory() as db:
        admin = create_user(db, user_id="user_admin", email="admin@rcr.test", name="Admin User")
        member = create_user(db, user_id="user_member", email="member@rcr.test", name="Rakoto Member")
        workspace = create_workspace(db, owner=admin)
        add_workspace_member(db, workspace, member)

        project = Project(workspace_id=workspace.id, name="Fanadiovana tsena", team_lead_id=admin.id)
        db.add(project)
        db.flush()
        resource = MaterialResource(project_id=project.id, name="Kifafa", needed=20, owned=2)
        db.add(resource)
        db.flush()
        material = MaterialContribution(
            project_id=project.id,
            resource_id=resource.id,
            contributor_id=member.id,
            quantity=5,
            status=ContributionStatus.PENDING,
        )
        financial = FinancialContribution(
            project_id=project.id,
            contributor_id=member.id,
            amount=Decimal("250000.00"),
            reference="MVOLA-0042",
            status=ContributionStatus.PENDING,
        )
        db.add_all([material, financial])
        db.commit()
        return {
            "project_id": project.id,
            "resource_id": resource.id,
            "material_id": material.id,
            "financial_id": financial.id,
        }


ADMIN = RequestUserContext(user_id="user_admin", email="admin@rcr.test", name="Admin User", status="active")


def test_concurrent_material_approvals_credit_the_resource_once(
    session_factory: sessionmaker[Session],
    seeded: dict[str, object],
) -> None:
    with session_factory() as first, session_factory() as second:
        late = ContributionService(second)
        assert late.repo.get_material(seeded["material_id"]).status is ContributionStatus.PENDING

        ContributionService(first).approve_material(context=ADMIN, contribution_id=seeded["material_id"])

        with pytest.raises(HTTPException) as exc:
            late.approve_material(context=ADMIN, contribution_id=seeded["material_id"])
        assert exc.value.status_code == 409

    with session_factory() as check:
        assert check.get(MaterialResource, seeded["resource_id"]).owned == 7
        assert check.get(MaterialContribution, seeded["material_id"]).status is ContributionStatus.APPROVED


def test_reject_after_concurrent_approval_is_refused(
    session_factory: sessionmaker[Session],
    seeded: dict[str, object],
) -> None:
    with session_factory() as first, session_factory() as second:
        late = ContributionService(second)
        late.repo.get_material(seeded["material_id"])

        ContributionService(first).approve_material(context=ADMIN, contribution_id=seeded["material_id"])

        with pytest.raises(HTTPException) as exc:
            late.reject_material(context=ADMIN, contribution_id=seeded["material_id"], reason="Diso")
        assert exc.value.status_code == 409

    with session_factory() as check:
        row = check.get(MaterialContribution, seeded["material_id"])
        assert row.status is ContributionStatus.APPROVED
        assert row.rejection_reason is None


def test_concurrent_financial_approvals_credit_the_project_once(
    session_factory: sessionmaker[Session],
    seeded: dict[str, object],
) -> None:
    with session_factory() as first, session_factory() as second:
        late = ContributionService(second)
        late.repo.get_financial(seeded["financial_id"])

        ContributionService(first).approve_financial(context=ADMIN, contribution_id=seeded["financial_id"])

        with pytest.raises(HTTPException) as exc:
            late.approve_financial(context=ADMIN, contribution_id=seeded["financial_id"])
        assert exc.value.status_code == 409

    with session_factory() as check:
        resource = check.query(FinancialResource).filter_by(project_id=seeded["project_id"]).one()
        assert Decimal(resource.owned).quantize(Decimal("0.01")) == Decimal("250000.00")
