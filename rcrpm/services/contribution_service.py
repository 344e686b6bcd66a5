"""Application service for resource contributions and their approval flow.

Material and financial contributions start ``PENDING`` and are approved or
rejected once by the project lead or a workspace admin. A material
contribution from the lead is approved on creation. Human participation is
recorded as ``APPROVED`` immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext
from rcrpm.core.config import get_settings
from rcrpm.events import notifications as events
from rcrpm.events.bus import EventPublisher
from rcrpm.models.entities import (
    ContributionStatus,
    FinancialContribution,
    FinancialResource,
    HumanContribution,
    MaterialContribution,
    User,
    WorkspaceRole,
    utc_now,
)
from rcrpm.repositories.contribution_repository import ContributionRepository
from rcrpm.repositories.project_repository import ProjectRepository
from rcrpm.services.scope import ProjectScope, load_project_scope, serialize_user

logger = logging.getLogger(__name__)

Q2 = Decimal("0.01")


@dataclass(slots=True)
class MaterialContributionData:
    project_id: UUID
    resource_id: UUID
    quantity: int
    message: str | None = None


@dataclass(slots=True)
class FinancialContributionData:
    project_id: UUID
    amount: Decimal
    reference: str


@dataclass(slots=True)
class HumanParticipationData:
    project_id: UUID
    resource_id: UUID
    message: str | None = None


class ContributionService:
    def __init__(self, db: Session, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.repo = ContributionRepository(db)
        self.projects = ProjectRepository(db)
        self.publisher = publisher
        self.settings = get_settings()

    # ---------- Serialization ----------
    def serialize_material(self, contribution: MaterialContribution) -> dict[str, object]:
        resource = self.repo.get_material_resource(contribution.resource_id)
        project = self.projects.get_project(contribution.project_id)
        return {
            "id": str(contribution.id),
            "project_id": str(contribution.project_id),
            "project_name": project.name if project else None,
            "resource_id": str(contribution.resource_id),
            "resource_name": resource.name if resource else None,
            "contributor": serialize_user(self.projects.get_user(contribution.contributor_id)),
            "quantity": contribution.quantity,
            "message": contribution.message,
            "status": contribution.status.value,
            "rejection_reason": contribution.rejection_reason,
            "created_at": contribution.created_at.isoformat(),
            "updated_at": contribution.updated_at.isoformat(),
        }

    def serialize_financial(self, contribution: FinancialContribution) -> dict[str, object]:
        return {
            "id": str(contribution.id),
            "project_id": str(contribution.project_id),
            "contributor": serialize_user(self.projects.get_user(contribution.contributor_id)),
            "amount": str(Decimal(contribution.amount).quantize(Q2)),
            "reference": contribution.reference,
            "status": contribution.status.value,
            "rejection_reason": contribution.rejection_reason,
            "created_at": contribution.created_at.isoformat(),
            "updated_at": contribution.updated_at.isoformat(),
        }

    def serialize_human(self, contribution: HumanContribution) -> dict[str, object]:
        return {
            "id": str(contribution.id),
            "project_id": str(contribution.project_id),
            "resource_id": str(contribution.resource_id),
            "participant": serialize_user(self.projects.get_user(contribution.participant_id)),
            "message": contribution.message,
            "status": contribution.status.value,
            "created_at": contribution.created_at.isoformat(),
        }

    # ---------- Helpers ----------
    def _publish(self, name: str, data: dict[str, object]) -> None:
        if self.publisher is not None:
            self.publisher.send(name, data)

    def _project_link(self, project_id: UUID) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/projectsDetail?id={project_id}&tab=resources"

    def _reviewer_emails(self, scope: ProjectScope) -> list[str]:
        """Lead first, then every workspace admin other than the lead."""

        lead = self.projects.get_user(scope.project.team_lead_id)
        lead_email = lead.email if lead else None
        admins = self.projects.list_users(
            row.user_id for row in scope.members if row.role is WorkspaceRole.ADMIN
        )
        emails = [lead_email] if lead_email else []
        for user in sorted(admins.values(), key=lambda row: row.email):
            if user.email != lead_email and user.email not in emails:
                emails.append(user.email)
        return emails

    def _ensure_reviewer(self, scope: ProjectScope) -> None:
        if not scope.access.can_manage:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the project lead or a workspace admin can review contributions.",
            )

    @staticmethod
    def _ensure_pending(current: ContributionStatus) -> None:
        if current is not ContributionStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Contribution is already {current.value.lower()}.",
            )

    def _close_pending(
        self,
        model: type[MaterialContribution] | type[FinancialContribution],
        contribution_id: UUID,
        *,
        status_to: ContributionStatus,
        now: datetime,
        reason: str | None = None,
    ) -> None:
        closed = self.repo.close_pending(
            model,
            contribution_id,
            status=status_to,
            updated_at=now,
            rejection_reason=reason,
        )
        if not closed:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Contribution has already been reviewed.",
            )

    def _contributor(self, user_id: str) -> User:
        user = self.projects.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    # ---------- Material ----------
    def create_material(self, *, context: RequestUserContext, data: MaterialContributionData) -> MaterialContribution:
        scope = load_project_scope(self.projects, context=context, project_id=data.project_id)
        resource = self.repo.get_material_resource(data.resource_id)
        if resource is None or resource.project_id != scope.project.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material resource not found.")
        if data.quantity < 1:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Quantity must be at least 1.",
            )

        contributor = self._contributor(context.user_id)
        by_lead = scope.access.is_lead
        now = utc_now()
        contribution = self.repo.add_material(
            MaterialContribution(
                project_id=scope.project.id,
                resource_id=resource.id,
                contributor_id=contributor.id,
                quantity=data.quantity,
                message=(data.message or "").strip() or None,
                status=ContributionStatus.APPROVED if by_lead else ContributionStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )
        if by_lead:
            self.repo.increment_material_owned(resource.id, data.quantity)
        self.db.commit()
        self.db.refresh(contribution)

        if by_lead:
            logger.info("Material contribution %s auto-approved for lead %s", contribution.id, contributor.id)
            return contribution

        logger.info("Material contribution %s pending on project %s", contribution.id, scope.project.id)
        self._publish(
            events.MATERIAL_PENDING,
            {
                "recipients": self._reviewer_emails(scope),
                "contributor_name": contributor.name,
                "project_name": scope.project.name,
                "resource_name": resource.name,
                "quantity": contribution.quantity,
                "message": contribution.message,
                "link": self._project_link(scope.project.id),
            },
        )
        return contribution

    def list_my_material(self, *, context: RequestUserContext) -> list[MaterialContribution]:
        return self.repo.list_material_for_contributor(context.user_id)

    def list_project_material(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        status_filter: ContributionStatus | None = None,
    ) -> list[MaterialContribution]:
        load_project_scope(self.projects, context=context, project_id=project_id)
        return self.repo.list_material_for_project(project_id, status=status_filter)

    def _material_for_review(
        self,
        *,
        context: RequestUserContext,
        contribution_id: UUID,
    ) -> MaterialContribution:
        contribution = self.repo.get_material(contribution_id)
        if contribution is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contribution not found.")
        scope = load_project_scope(self.projects, context=context, project_id=contribution.project_id)
        self._ensure_reviewer(scope)
        self._ensure_pending(contribution.status)
        return contribution

    def approve_material(self, *, context: RequestUserContext, contribution_id: UUID) -> MaterialContribution:
        contribution = self._material_for_review(context=context, contribution_id=contribution_id)
        resource = self.repo.get_material_resource(contribution.resource_id)

        self._close_pending(
            MaterialContribution,
            contribution.id,
            status_to=ContributionStatus.APPROVED,
            now=utc_now(),
        )
        self.repo.increment_material_owned(resource.id, contribution.quantity)
        self.db.commit()
        self.db.refresh(contribution)
        logger.info("Material contribution %s approved by %s", contribution.id, context.user_id)

        contributor = self.projects.get_user(contribution.contributor_id)
        project = self.projects.get_project(contribution.project_id)
        if contributor is not None:
            self._publish(
                events.MATERIAL_APPROVED,
                {
                    "to": contributor.email,
                    "contributor_name": contributor.name,
                    "project_name": project.name,
                    "resource_name": resource.name,
                    "quantity": contribution.quantity,
                },
            )
        return contribution

    def reject_material(
        self,
        *,
        context: RequestUserContext,
        contribution_id: UUID,
        reason: str | None,
    ) -> MaterialContribution:
        contribution = self._material_for_review(context=context, contribution_id=contribution_id)

        self._close_pending(
            MaterialContribution,
            contribution.id,
            status_to=ContributionStatus.REJECTED,
            now=utc_now(),
            reason=(reason or "").strip() or None,
        )
        self.db.commit()
        self.db.refresh(contribution)
        logger.info("Material contribution %s rejected by %s", contribution.id, context.user_id)

        contributor = self.projects.get_user(contribution.contributor_id)
        project = self.projects.get_project(contribution.project_id)
        resource = self.repo.get_material_resource(contribution.resource_id)
        if contributor is not None:
            self._publish(
                events.MATERIAL_REJECTED,
                {
                    "to": contributor.email,
                    "contributor_name": contributor.name,
                    "project_name": project.name,
                    "resource_name": resource.name,
                    "quantity": contribution.quantity,
                    "reason": contribution.rejection_reason,
                },
            )
        return contribution

    # ---------- Financial ----------
    def create_financial(
        self,
        *,
        context: RequestUserContext,
        data: FinancialContributionData,
    ) -> FinancialContribution:
        scope = load_project_scope(self.projects, context=context, project_id=data.project_id)
        if data.amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Amount must be greater than zero.",
            )
        reference = data.reference.strip()
        if not reference:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Reference is required.")

        contributor = self._contributor(context.user_id)
        now = utc_now()
        contribution = self.repo.add_financial(
            FinancialContribution(
                project_id=scope.project.id,
                contributor_id=contributor.id,
                amount=Decimal(data.amount).quantize(Q2),
                reference=reference,
                status=ContributionStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(contribution)
        logger.info("Financial contribution %s pending on project %s", contribution.id, scope.project.id)

        self._publish(
            events.FINANCIAL_PENDING,
            {
                "recipients": self._reviewer_emails(scope),
                "contributor_name": contributor.name,
                "project_name": scope.project.name,
                "amount": str(contribution.amount),
                "reference": contribution.reference,
                "link": self._project_link(scope.project.id),
            },
        )
        return contribution

    def list_project_financial(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        status_filter: ContributionStatus | None = None,
    ) -> list[FinancialContribution]:
        load_project_scope(self.projects, context=context, project_id=project_id)
        return self.repo.list_financial_for_project(project_id, status=status_filter)

    def _financial_for_review(
        self,
        *,
        context: RequestUserContext,
        contribution_id: UUID,
    ) -> FinancialContribution:
        contribution = self.repo.get_financial(contribution_id)
        if contribution is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contribution not found.")
        scope = load_project_scope(self.projects, context=context, project_id=contribution.project_id)
        self._ensure_reviewer(scope)
        self._ensure_pending(contribution.status)
        return contribution

    def approve_financial(self, *, context: RequestUserContext, contribution_id: UUID) -> FinancialContribution:
        contribution = self._financial_for_review(context=context, contribution_id=contribution_id)

        resource = self.repo.get_financial_resource(contribution.project_id)
        if resource is None:
            resource = self.repo.add_financial_resource(
                FinancialResource(
                    project_id=contribution.project_id,
                    amount=Decimal("0.00"),
                    owned=Decimal("0.00"),
                )
            )
        now = utc_now()
        self._close_pending(
            FinancialContribution,
            contribution.id,
            status_to=ContributionStatus.APPROVED,
            now=now,
        )
        self.repo.increment_financial_owned(resource.id, Decimal(contribution.amount).quantize(Q2))
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Financial resource changed concurrently; retry the approval.",
            ) from exc
        self.db.refresh(contribution)
        logger.info("Financial contribution %s approved by %s", contribution.id, context.user_id)

        contributor = self.projects.get_user(contribution.contributor_id)
        project = self.projects.get_project(contribution.project_id)
        if contributor is not None:
            self._publish(
                events.FINANCIAL_APPROVED,
                {
                    "to": contributor.email,
                    "contributor_name": contributor.name,
                    "project_name": project.name,
                    "amount": str(contribution.amount),
                    "reference": contribution.reference,
                    "approved_on": now.strftime("%d/%m/%Y"),
                },
            )
        return contribution

    def reject_financial(
        self,
        *,
        context: RequestUserContext,
        contribution_id: UUID,
        reason: str | None,
    ) -> FinancialContribution:
        contribution = self._financial_for_review(context=context, contribution_id=contribution_id)

        self._close_pending(
            FinancialContribution,
            contribution.id,
            status_to=ContributionStatus.REJECTED,
            now=utc_now(),
            reason=(reason or "").strip() or None,
        )
        self.db.commit()
        self.db.refresh(contribution)
        logger.info("Financial contribution %s rejected by %s", contribution.id, context.user_id)

        contributor = self.projects.get_user(contribution.contributor_id)
        project = self.projects.get_project(contribution.project_id)
        if contributor is not None:
            self._publish(
                events.FINANCIAL_REJECTED,
                {
                    "to": contributor.email,
                    "contributor_name": contributor.name,
                    "project_name": project.name,
                    "amount": str(contribution.amount),
                    "reference": contribution.reference,
                    "reason": contribution.rejection_reason,
                },
            )
        return contribution

    # ---------- Human ----------
    def participate(self, *, context: RequestUserContext, data: HumanParticipationData) -> HumanContribution:
        scope = load_project_scope(self.projects, context=context, project_id=data.project_id)
        resource = self.repo.get_human_resource(data.resource_id)
        if resource is None or resource.project_id != scope.project.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Human resource not found.")

        participant = self._contributor(context.user_id)
        if self.repo.get_participation(resource.id, participant.id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already participate in this resource.",
            )

        contribution = self.repo.add_human(
            HumanContribution(
                project_id=scope.project.id,
                resource_id=resource.id,
                participant_id=participant.id,
                message=(data.message or "").strip() or None,
                status=ContributionStatus.APPROVED,
                created_at=utc_now(),
            )
        )
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already participate in this resource.",
            ) from exc
        self.db.refresh(contribution)
        logger.info("User %s joined human resource %s", participant.id, resource.id)

        self._publish(
            events.HUMAN_CONFIRMED,
            {
                "to": participant.email,
                "participant_name": participant.name,
                "project_name": scope.project.name,
                "resource_name": resource.name,
            },
        )
        if not scope.access.is_lead:
            lead = self.projects.get_user(scope.project.team_lead_id)
            if lead is not None:
                self._publish(
                    events.HUMAN_NOTIFY_LEAD,
                    {
                        "to": lead.email,
                        "lead_name": lead.name,
                        "participant_name": participant.name,
                        "participant_email": participant.email,
                        "project_name": scope.project.name,
                        "resource_name": resource.name,
                        "message": contribution.message,
                    },
                )
        return contribution

    def cancel_participation(self, *, context: RequestUserContext, contribution_id: UUID) -> None:
        contribution = self.repo.get_human(contribution_id)
        if contribution is None or contribution.participant_id != context.user_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participation not found.")
        self.repo.delete_human(contribution)
        self.db.commit()
        logger.info("User %s cancelled participation %s", context.user_id, contribution_id)

    def list_participants(self, *, context: RequestUserContext, resource_id: UUID) -> list[HumanContribution]:
        resource = self.repo.get_human_resource(resource_id)
        if resource is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Human resource not found.")
        load_project_scope(self.projects, context=context, project_id=resource.project_id)
        return self.repo.list_participants(resource.id)
