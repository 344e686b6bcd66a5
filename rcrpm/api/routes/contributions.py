"""Material, financial and human contribution endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, get_current_user_context
from rcrpm.db.dependencies import get_db_session
from rcrpm.events.bus import EventPublisher, get_event_publisher
from rcrpm.models.entities import ContributionStatus
from rcrpm.services.contribution_service import (
    ContributionService,
    FinancialContributionData,
    HumanParticipationData,
    MaterialContributionData,
)

router = APIRouter(prefix="/contributions", tags=["contributions"])


class MaterialContributionPayload(BaseModel):
    project_id: UUID
    resource_id: UUID
    quantity: int = Field(ge=1)
    message: str | None = Field(default=None, max_length=2000)


class FinancialContributionPayload(BaseModel):
    project_id: UUID
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    reference: str = Field(min_length=1, max_length=128)


class HumanParticipationPayload(BaseModel):
    project_id: UUID
    resource_id: UUID
    message: str | None = Field(default=None, max_length=2000)


class RejectPayload(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


def _contribution_service(db: Session, publisher: EventPublisher | None = None) -> ContributionService:
    return ContributionService(db, publisher)


# ---------- Material ----------
@router.post("/material", status_code=status.HTTP_201_CREATED)
def create_material_contribution(
    payload: MaterialContributionPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    contribution = service.create_material(
        context=context,
        data=MaterialContributionData(
            project_id=payload.project_id,
            resource_id=payload.resource_id,
            quantity=payload.quantity,
            message=payload.message,
        ),
    )
    return service.serialize_material(contribution)


@router.get("/my-contributions")
def list_my_contributions(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _contribution_service(db)
    rows = service.list_my_material(context=context)
    return {"items": [service.serialize_material(row) for row in rows]}


@router.get("/project/{project_id}")
def list_project_material(
    project_id: UUID,
    status_filter: ContributionStatus | None = Query(default=None, alias="status"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _contribution_service(db)
    rows = service.list_project_material(context=context, project_id=project_id, status_filter=status_filter)
    return {"items": [service.serialize_material(row) for row in rows]}


# ---------- Financial ----------
@router.post("/financial", status_code=status.HTTP_201_CREATED)
def create_financial_contribution(
    payload: FinancialContributionPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    contribution = service.create_financial(
        context=context,
        data=FinancialContributionData(
            project_id=payload.project_id,
            amount=payload.amount,
            reference=payload.reference,
        ),
    )
    return service.serialize_financial(contribution)


@router.get("/financial/project/{project_id}")
def list_project_financial(
    project_id: UUID,
    status_filter: ContributionStatus | None = Query(default=None, alias="status"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _contribution_service(db)
    rows = service.list_project_financial(context=context, project_id=project_id, status_filter=status_filter)
    return {"items": [service.serialize_financial(row) for row in rows]}


@router.put("/financial/{contribution_id}/approve")
def approve_financial_contribution(
    contribution_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    return service.serialize_financial(service.approve_financial(context=context, contribution_id=contribution_id))


@router.put("/financial/{contribution_id}/reject")
def reject_financial_contribution(
    contribution_id: UUID,
    payload: RejectPayload | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    contribution = service.reject_financial(
        context=context,
        contribution_id=contribution_id,
        reason=payload.reason if payload else None,
    )
    return service.serialize_financial(contribution)


# ---------- Human ----------
@router.post("/human", status_code=status.HTTP_201_CREATED)
def participate(
    payload: HumanParticipationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    contribution = service.participate(
        context=context,
        data=HumanParticipationData(
            project_id=payload.project_id,
            resource_id=payload.resource_id,
            message=payload.message,
        ),
    )
    return service.serialize_human(contribution)


@router.delete("/human/{contribution_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_participation(
    contribution_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _contribution_service(db).cancel_participation(context=context, contribution_id=contribution_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/human/resource/{resource_id}")
def list_participants(
    resource_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _contribution_service(db)
    rows = service.list_participants(context=context, resource_id=resource_id)
    return {"items": [service.serialize_human(row) for row in rows]}


# ---------- Material review ----------
@router.put("/{contribution_id}/approve")
def approve_material_contribution(
    contribution_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    return service.serialize_material(service.approve_material(context=context, contribution_id=contribution_id))


@router.put("/{contribution_id}/reject")
def reject_material_contribution(
    contribution_id: UUID,
    payload: RejectPayload | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _contribution_service(db, publisher)
    contribution = service.reject_material(
        context=context,
        contribution_id=contribution_id,
        reason=payload.reason if payload else None,
    )
    return service.serialize_material(contribution)
