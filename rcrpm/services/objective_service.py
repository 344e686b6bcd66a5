"""Application service for project objectives and their indicators."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext
from rcrpm.models.entities import Indicator, Objective, utc_now
from rcrpm.repositories.project_repository import ProjectRepository
from rcrpm.services.progress import indicator_progress
from rcrpm.services.scope import ProjectScope, load_project_scope


@dataclass(slots=True)
class ObjectiveCreateData:
    name: str
    description: str | None = None
    result: str | None = None
    risk: str | None = None


@dataclass(slots=True)
class ObjectiveUpdateData:
    name: str | None = None
    description: str | None = None
    result: str | None = None
    risk: str | None = None
    is_completed: bool | None = None
    position: int | None = None


@dataclass(slots=True)
class IndicatorCreateData:
    name: str
    target: int = 0
    unit: str = ""


@dataclass(slots=True)
class IndicatorUpdateData:
    name: str | None = None
    target: int | None = None
    current: int | None = None
    unit: str | None = None


class ObjectiveService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ProjectRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_indicator(indicator: Indicator) -> dict[str, object]:
        return {
            "id": str(indicator.id),
            "objective_id": str(indicator.objective_id),
            "name": indicator.name,
            "target": indicator.target,
            "current": indicator.current,
            "unit": indicator.unit,
            "progress": indicator_progress(indicator),
        }

    @classmethod
    def serialize_objective(cls, objective: Objective, indicators: list[Indicator]) -> dict[str, object]:
        return {
            "id": str(objective.id),
            "project_id": str(objective.project_id),
            "name": objective.name,
            "description": objective.description,
            "result": objective.result,
            "risk": objective.risk,
            "is_completed": objective.is_completed,
            "position": objective.position,
            "created_at": objective.created_at.isoformat(),
            "indicators": [cls.serialize_indicator(row) for row in indicators],
        }

    def serialize_objectives(self, objectives: list[Objective]) -> list[dict[str, object]]:
        grouped: dict[UUID, list[Indicator]] = {row.id: [] for row in objectives}
        for indicator in self.repo.list_indicators(grouped):
            grouped[indicator.objective_id].append(indicator)
        return [self.serialize_objective(row, grouped[row.id]) for row in objectives]

    # ---------- Access ----------
    def _objective_scope(
        self,
        *,
        context: RequestUserContext,
        objective_id: UUID,
        require_manage: bool = False,
    ) -> tuple[Objective, ProjectScope]:
        objective = self.repo.get_objective(objective_id)
        if objective is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Objective not found.")
        scope = load_project_scope(
            self.repo,
            context=context,
            project_id=objective.project_id,
            require_manage=require_manage,
        )
        return objective, scope

    def _indicator_scope(
        self,
        *,
        context: RequestUserContext,
        indicator_id: UUID,
        require_manage: bool = False,
    ) -> tuple[Indicator, ProjectScope]:
        indicator = self.repo.get_indicator(indicator_id)
        if indicator is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Indicator not found.")
        _, scope = self._objective_scope(
            context=context,
            objective_id=indicator.objective_id,
            require_manage=require_manage,
        )
        return indicator, scope

    @staticmethod
    def _ensure_workspace_member(scope: ProjectScope) -> None:
        if not scope.access.is_workspace_member:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only workspace members can update progress.",
            )

    # ---------- Objectives ----------
    def list_objectives(self, *, context: RequestUserContext, project_id: UUID) -> list[Objective]:
        load_project_scope(self.repo, context=context, project_id=project_id)
        return self.repo.list_objectives(project_id)

    def create_objective(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        data: ObjectiveCreateData,
    ) -> Objective:
        scope = load_project_scope(self.repo, context=context, project_id=project_id, require_manage=True)
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Objective name is required.")

        objective = self.repo.add_objective(
            Objective(
                project_id=scope.project.id,
                name=name,
                description=data.description,
                result=data.result,
                risk=data.risk,
                is_completed=False,
                position=self.repo.max_objective_position(scope.project.id) + 1,
                created_at=utc_now(),
            )
        )
        self.db.commit()
        self.db.refresh(objective)
        return objective

    def update_objective(
        self,
        *,
        context: RequestUserContext,
        objective_id: UUID,
        data: ObjectiveUpdateData,
    ) -> Objective:
        objective, _ = self._objective_scope(context=context, objective_id=objective_id, require_manage=True)

        if data.name is not None:
            name = data.name.strip()
            if not name:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Objective name is required.",
                )
            objective.name = name
        if data.description is not None:
            objective.description = data.description
        if data.result is not None:
            objective.result = data.result
        if data.risk is not None:
            objective.risk = data.risk
        if data.is_completed is not None:
            objective.is_completed = data.is_completed
        if data.position is not None:
            objective.position = data.position

        self.db.commit()
        self.db.refresh(objective)
        return objective

    def toggle_objective(self, *, context: RequestUserContext, objective_id: UUID) -> Objective:
        objective, scope = self._objective_scope(context=context, objective_id=objective_id)
        self._ensure_workspace_member(scope)

        objective.is_completed = not objective.is_completed
        self.db.commit()
        self.db.refresh(objective)
        return objective

    def delete_objective(self, *, context: RequestUserContext, objective_id: UUID) -> None:
        objective, _ = self._objective_scope(context=context, objective_id=objective_id, require_manage=True)
        self.repo.delete_objective(objective)
        self.db.commit()

    # ---------- Indicators ----------
    def create_indicator(
        self,
        *,
        context: RequestUserContext,
        objective_id: UUID,
        data: IndicatorCreateData,
    ) -> Indicator:
        objective, _ = self._objective_scope(context=context, objective_id=objective_id, require_manage=True)
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Indicator name is required.")

        indicator = self.repo.add_indicator(
            Indicator(
                objective_id=objective.id,
                name=name,
                target=data.target,
                current=0,
                unit=data.unit.strip(),
            )
        )
        self.db.commit()
        self.db.refresh(indicator)
        return indicator

    def update_indicator(
        self,
        *,
        context: RequestUserContext,
        indicator_id: UUID,
        data: IndicatorUpdateData,
    ) -> Indicator:
        indicator, scope = self._indicator_scope(context=context, indicator_id=indicator_id)
        self._ensure_workspace_member(scope)

        if data.name is not None and data.name.strip():
            indicator.name = data.name.strip()
        if data.target is not None:
            indicator.target = data.target
        if data.current is not None:
            indicator.current = data.current
        if data.unit is not None:
            indicator.unit = data.unit.strip()

        self.db.commit()
        self.db.refresh(indicator)
        return indicator

    def delete_indicator(self, *, context: RequestUserContext, indicator_id: UUID) -> None:
        indicator, _ = self._indicator_scope(context=context, indicator_id=indicator_id, require_manage=True)
        self.repo.delete_indicator(indicator)
        self.db.commit()
