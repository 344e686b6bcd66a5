"""Task and comment endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext, get_current_user_context
from rcrpm.db.dependencies import get_db_session
from rcrpm.events.bus import EventPublisher, get_event_publisher
from rcrpm.models.entities import Priority, Task, TaskStatus, TaskType
from rcrpm.services.task_service import TaskCreateData, TaskService, TaskUpdateData

router = APIRouter(tags=["tasks"])


class TaskCreatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    project_id: UUID
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: TaskStatus = TaskStatus.TODO
    type: TaskType = TaskType.TASK
    priority: Priority = Priority.MEDIUM
    assignee_id: str | None = Field(default=None, max_length=64)
    due_date: date | None = None
    objective: str | None = None
    result: str | None = None
    risk: str | None = None
    key_factor: str | None = None


class TaskUpdatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    status: TaskStatus | None = None
    type: TaskType | None = None
    priority: Priority | None = None
    assignee_id: str | None = Field(default=None, max_length=64)
    due_date: date | None = None
    objective: str | None = None
    result: str | None = None
    risk: str | None = None
    key_factor: str | None = None


class TaskDeletePayload(BaseModel):
    task_ids: list[UUID] = Field(min_length=1)


class CommentCreatePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: UUID
    content: str = Field(min_length=1, max_length=5000)


def _task_service(db: Session, publisher: EventPublisher | None = None) -> TaskService:
    return TaskService(db, publisher)


def _serialize(service: TaskService, task: Task) -> dict[str, object]:
    return service.serialize_task(task, service.users_for_tasks([task]))


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreatePayload,
    origin: str | None = Header(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _task_service(db, publisher)
    task = service.create_task(
        context=context,
        data=TaskCreateData(
            project_id=payload.project_id,
            title=payload.title,
            description=payload.description,
            status=payload.status,
            type=payload.type,
            priority=payload.priority,
            assignee_id=payload.assignee_id,
            due_date=payload.due_date,
            objective=payload.objective,
            result=payload.result,
            risk=payload.risk,
            key_factor=payload.key_factor,
        ),
        origin=origin,
    )
    return _serialize(service, task)


@router.get("/tasks/{task_id}")
def get_task(
    task_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _task_service(db)
    return _serialize(service, service.get_task(context=context, task_id=task_id))


@router.put("/tasks/{task_id}")
def update_task(
    task_id: UUID,
    payload: TaskUpdatePayload,
    origin: str | None = Header(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    service = _task_service(db, publisher)
    task = service.update_task(
        context=context,
        task_id=task_id,
        data=TaskUpdateData(
            title=payload.title,
            description=payload.description,
            status=payload.status,
            type=payload.type,
            priority=payload.priority,
            assignee_id=payload.assignee_id,
            assignee_provided="assignee_id" in payload.model_fields_set,
            due_date=payload.due_date,
            objective=payload.objective,
            result=payload.result,
            risk=payload.risk,
            key_factor=payload.key_factor,
        ),
        origin=origin,
    )
    return _serialize(service, task)


@router.delete("/tasks")
def delete_tasks(
    payload: TaskDeletePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, int]:
    deleted = _task_service(db).delete_tasks(context=context, task_ids=payload.task_ids)
    return {"deleted": deleted}


@router.post("/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    payload: CommentCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _task_service(db)
    comment = service.add_comment(context=context, task_id=payload.task_id, content=payload.content)
    return service.serialize_comment(comment, service.users_for_comments([comment]))


@router.get("/comments/{task_id}")
def list_comments(
    task_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _task_service(db)
    comments = service.list_comments(context=context, task_id=task_id)
    users = service.users_for_comments(comments)
    return {"items": [service.serialize_comment(comment, users) for comment in comments]}
