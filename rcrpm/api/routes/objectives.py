"""Objective and indicator endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, get_current_user_context
from rcrpm.db.dependencies import get_db_session
from rcrpm.services.objective_service import (
    IndicatorCreateData,
    IndicatorUpdateData,
    ObjectiveCreateData,
    ObjectiveService,
    ObjectiveUpdateData,
)

router = APIRouter(prefix="/objectives", tags=["objectives"])


class ObjectiveCreatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    result: str | None = Field(default=None, max_length=5000)
    risk: str | None = Field(default=None, max_length=5000)


class ObjectiveUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    result: str | None = Field(default=None, max_length=5000)
    risk: str | None = Field(default=None, max_length=5000)
    is_completed: bool | None = None
    position: int | None = Field(default=None, ge=0)


class IndicatorCreatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    target: int = Field(default=0, ge=0)
    unit: str = Field(default="", max_length=64)


class IndicatorUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    target: int | None = Field(default=None, ge=0)
    current: int | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, max_length=64)


def _objective_service(db: Session) -> ObjectiveService:
    return ObjectiveService(db)


@router.get("/project/{project_id}")
def list_project_objectives(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _objective_service(db)
    rows = service.list_objectives(context=context, project_id=project_id)
    return {"items": service.serialize_objectives(rows)}


@router.post("/project/{project_id}", status_code=status.HTTP_201_CREATED)
def create_objective(
    project_id: UUID,
    payload: ObjectiveCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _objective_service(db)
    objective = service.create_objective(
        context=context,
        project_id=project_id,
        data=ObjectiveCreateData(
            name=payload.name,
            description=payload.description,
            result=payload.result,
            risk=payload.risk,
        ),
    )
    return service.serialize_objective(objective, [])


# Indicator routes are declared before "/{objective_id}" so "indicators" is not read as an id.
@router.put("/indicators/{indicator_id}")
def update_indicator(
    indicator_id: UUID,
    payload: IndicatorUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _objective_service(db)
    indicator = service.update_indicator(
        context=context,
        indicator_id=indicator_id,
        data=IndicatorUpdateData(
            name=payload.name,
            target=payload.target,
            current=payload.current,
            unit=payload.unit,
        ),
    )
    return service.serialize_indicator(indicator)


@router.delete("/indicators/{indicator_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_indicator(
    indicator_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _objective_service(db).delete_indicator(context=context, indicator_id=indicator_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{objective_id}")
def update_objective(
    objective_id: UUID,
    payload: ObjectiveUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _objective_service(db)
    objective = service.update_objective(
        context=context,
        objective_id=objective_id,
        data=ObjectiveUpdateData(
            name=payload.name,
            description=payload.description,
            result=payload.result,
            risk=payload.risk,
            is_completed=payload.is_completed,
            position=payload.position,
        ),
    )
    return service.serialize_objectives([objective])[0]


@router.put("/{objective_id}/toggle")
def toggle_objective(
    objective_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _objective_service(db)
    objective = service.toggle_objective(context=context, objective_id=objective_id)
    return service.serialize_objectives([objective])[0]


@router.delete("/{objective_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_objective(
    objective_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _objective_service(db).delete_objective(context=context, objective_id=objective_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{objective_id}/indicators", status_code=status.HTTP_201_CREATED)
def create_indicator(
    objective_id: UUID,
    payload: IndicatorCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _objective_service(db)
    indicator = service.create_indicator(
        context=context,
        objective_id=objective_id,
        data=IndicatorCreateData(name=payload.name, target=payload.target, unit=payload.unit),
    )
    return service.serialize_indicator(indicator)
