"""Repository helpers for resource contributions."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from rcrpm.models.entities import (
    ContributionStatus,
    FinancialContribution,
    FinancialResource,
    HumanContribution,
    HumanResource,
    MaterialContribution,
    MaterialResource,
)


class ContributionRepository:
    """Persistence operations for material, human and financial contributions."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Resources ----------
    def get_material_resource(self, resource_id: UUID) -> MaterialResource | None:
        return self.db.get(MaterialResource, resource_id)

    def get_human_resource(self, resource_id: UUID) -> HumanResource | None:
        return self.db.get(HumanResource, resource_id)

    def get_financial_resource(self, project_id: UUID) -> FinancialResource | None:
        return self.db.scalar(select(FinancialResource).where(FinancialResource.project_id == project_id))

    def add_financial_resource(self, resource: FinancialResource) -> FinancialResource:
        self.db.add(resource)
        self.db.flush()
        return resource

    def increment_material_owned(self, resource_id: UUID, quantity: int) -> None:
        self.db.execute(
            update(MaterialResource)
            .where(MaterialResource.id == resource_id)
            .values(owned=MaterialResource.owned + quantity)
            .execution_options(synchronize_session=False)
        )

    def increment_financial_owned(self, resource_id: UUID, amount: Decimal) -> None:
        self.db.execute(
            update(FinancialResource)
            .where(FinancialResource.id == resource_id)
            .values(owned=FinancialResource.owned + amount)
            .execution_options(synchronize_session=False)
        )

    # ---------- Review ----------
    def close_pending(
        self,
        model: type[MaterialContribution] | type[FinancialContribution],
        contribution_id: UUID,
        *,
        status: ContributionStatus,
        updated_at: datetime,
        rejection_reason: str | None = None,
    ) -> bool:
        """Move a contribution out of PENDING; False when it was no longer pending."""

        result = self.db.execute(
            update(model)
            .where(model.id == contribution_id, model.status == ContributionStatus.PENDING)
            .values(status=status, rejection_reason=rejection_reason, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ---------- Material ----------
    def get_material(self, contribution_id: UUID) -> MaterialContribution | None:
        return self.db.get(MaterialContribution, contribution_id)

    def list_material_for_project(
        self,
        project_id: UUID,
        *,
        status: ContributionStatus | None = None,
    ) -> list[MaterialContribution]:
        conditions = [MaterialContribution.project_id == project_id]
        if status is not None:
            conditions.append(MaterialContribution.status == status)
        return self.db.scalars(
            select(MaterialContribution)
            .where(and_(*conditions))
            .order_by(MaterialContribution.created_at.desc())
        ).all()

    def list_material_for_contributor(self, contributor_id: str) -> list[MaterialContribution]:
        return self.db.scalars(
            select(MaterialContribution)
            .where(MaterialContribution.contributor_id == contributor_id)
            .order_by(MaterialContribution.created_at.desc())
        ).all()

    def material_count_for_resource(self, resource_id: UUID) -> int:
        return int(
            self.db.scalar(
                select(func.count(MaterialContribution.id)).where(MaterialContribution.resource_id == resource_id)
            )
            or 0
        )

    def add_material(self, contribution: MaterialContribution) -> MaterialContribution:
        self.db.add(contribution)
        self.db.flush()
        return contribution

    # ---------- Financial ----------
    def get_financial(self, contribution_id: UUID) -> FinancialContribution | None:
        return self.db.get(FinancialContribution, contribution_id)

    def list_financial_for_project(
        self,
        project_id: UUID,
        *,
        status: ContributionStatus | None = None,
    ) -> list[FinancialContribution]:
        conditions = [FinancialContribution.project_id == project_id]
        if status is not None:
            conditions.append(FinancialContribution.status == status)
        return self.db.scalars(
            select(FinancialContribution)
            .where(and_(*conditions))
            .order_by(FinancialContribution.created_at.desc())
        ).all()

    def add_financial(self, contribution: FinancialContribution) -> FinancialContribution:
        self.db.add(contribution)
        self.db.flush()
        return contribution

    # ---------- Human ----------
    def get_human(self, contribution_id: UUID) -> HumanContribution | None:
        return self.db.get(HumanContribution, contribution_id)

    def get_participation(self, resource_id: UUID, participant_id: str) -> HumanContribution | None:
        return self.db.scalar(
            select(HumanContribution).where(
                and_(
                    HumanContribution.resource_id == resource_id,
                    HumanContribution.participant_id == participant_id,
                )
            )
        )

    def list_participants(self, resource_id: UUID) -> list[HumanContribution]:
        return self.db.scalars(
            select(HumanContribution)
            .where(HumanContribution.resource_id == resource_id)
            .order_by(HumanContribution.created_at.asc())
        ).all()

    def human_count_for_resource(self, resource_id: UUID) -> int:
        return int(
            self.db.scalar(
                select(func.count(HumanContribution.id)).where(HumanContribution.resource_id == resource_id)
            )
            or 0
        )

    def add_human(self, contribution: HumanContribution) -> HumanContribution:
        self.db.add(contribution)
        self.db.flush()
        return contribution

    def delete_human(self, contribution: HumanContribution) -> None:
        self.db.delete(contribution)
        self.db.flush()

    # ---------- Project-level counts ----------
    def contribution_count_for_project(self, project_id: UUID) -> int:
        total = 0
        for model in (MaterialContribution, FinancialContribution, HumanContribution):
            total += int(
                self.db.scalar(select(func.count(model.id)).where(model.project_id == project_id)) or 0
            )
        return total
