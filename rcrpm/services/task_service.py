"""Application service for project tasks and their comments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from rcrpm.core.auth import RequestUserContext
from rcrpm.core.config import get_settings
from rcrpm.events.bus import EventPublisher
from rcrpm.events.notifications import TASK_ASSIGNED
from rcrpm.models.entities import Comment, Priority, Project, Task, TaskStatus, TaskType, User, utc_now
from rcrpm.repositories.project_repository import ProjectRepository
from rcrpm.services.scope import load_project_scope, serialize_user

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskCreateData:
    project_id: UUID
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    type: TaskType = TaskType.TASK
    priority: Priority = Priority.MEDIUM
    assignee_id: str | None = None
    due_date: date | None = None
    objective: str | None = None
    result: str | None = None
    risk: str | None = None
    key_factor: str | None = None


@dataclass(slots=True)
class TaskUpdateData:
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    type: TaskType | None = None
    priority: Priority | None = None
    assignee_id: str | None = None
    assignee_provided: bool = False
    due_date: date | None = None
    objective: str | None = None
    result: str | None = None
    risk: str | None = None
    key_factor: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TaskService:
    """Task lifecycle, assignment notifications and comment threads."""

    def __init__(self, db: Session, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.repo = ProjectRepository(db)
        self.publisher = publisher
        self.settings = get_settings()

    # ---------- Serialization ----------
    @staticmethod
    def serialize_task(task: Task, users: dict[str, User] | None = None) -> dict[str, object]:
        assignee = (users or {}).get(task.assignee_id) if task.assignee_id else None
        return {
            "id": str(task.id),
            "project_id": str(task.project_id),
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "type": task.type.value,
            "priority": task.priority.value,
            "assignee_id": task.assignee_id,
            "assignee": serialize_user(assignee),
            "due_date": task.due_date.isoformat() if task.due_date else None,
            "objective": task.objective,
            "result": task.result,
            "risk": task.risk,
            "key_factor": task.key_factor,
            "created_at": task.created_at.isoformat(),
            "updated_at": task.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_comment(comment: Comment, users: dict[str, User] | None = None) -> dict[str, object]:
        return {
            "id": str(comment.id),
            "task_id": str(comment.task_id),
            "user_id": comment.user_id,
            "user": serialize_user((users or {}).get(comment.user_id)),
            "content": comment.content,
            "created_at": comment.created_at.isoformat(),
        }

    def users_for_tasks(self, tasks: list[Task]) -> dict[str, User]:
        return self.repo.list_users(task.assignee_id for task in tasks if task.assignee_id)

    def users_for_comments(self, comments: list[Comment]) -> dict[str, User]:
        return self.repo.list_users(comment.user_id for comment in comments)

    # ---------- Helpers ----------
    def _get_task(self, task_id: UUID) -> Task:
        task = self.repo.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")
        return task

    def _ensure_assignee_is_member(self, project: Project, assignee_id: str) -> User:
        if assignee_id not in set(self.repo.list_project_member_ids(project.id)):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Assignee must be a member of the project.",
            )
        user = self.repo.get_user(assignee_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignee not found.")
        return user

    def _notify_assignee(self, *, task: Task, project: Project, assignee: User, origin: str | None) -> None:
        if self.publisher is None:
            return
        base_url = (origin or self.settings.frontend_url).rstrip("/")
        self.publisher.send(
            TASK_ASSIGNED,
            {
                "to": assignee.email,
                "assignee_name": assignee.name,
                "task_title": task.title,
                "project_name": project.name,
                "due_date": task.due_date.isoformat() if task.due_date else None,
                "link": f"{base_url}/taskDetails?projectId={project.id}&taskId={task.id}",
            },
        )

    # ---------- Tasks ----------
    def list_tasks(self, *, context: RequestUserContext, project_id: UUID) -> list[Task]:
        load_project_scope(self.repo, context=context, project_id=project_id)
        return self.repo.list_tasks(project_id)

    def get_task(self, *, context: RequestUserContext, task_id: UUID) -> Task:
        task = self._get_task(task_id)
        load_project_scope(self.repo, context=context, project_id=task.project_id)
        return task

    def create_task(
        self,
        *,
        context: RequestUserContext,
        data: TaskCreateData,
        origin: str | None = None,
    ) -> Task:
        scope = load_project_scope(self.repo, context=context, project_id=data.project_id, require_manage=True)

        assignee = None
        if data.assignee_id:
            assignee = self._ensure_assignee_is_member(scope.project, data.assignee_id)

        now = utc_now()
        task = self.repo.add_task(
            Task(
                project_id=scope.project.id,
                title=data.title.strip(),
                description=_clean(data.description),
                status=data.status,
                type=data.type,
                priority=data.priority,
                assignee_id=assignee.id if assignee else None,
                due_date=data.due_date,
                objective=_clean(data.objective),
                result=_clean(data.result),
                risk=_clean(data.risk),
                key_factor=_clean(data.key_factor),
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(task)
        logger.info("Task %s created in project %s by %s", task.id, scope.project.id, context.user_id)

        if assignee is not None:
            self._notify_assignee(task=task, project=scope.project, assignee=assignee, origin=origin)
        return task

    def update_task(
        self,
        *,
        context: RequestUserContext,
        task_id: UUID,
        data: TaskUpdateData,
        origin: str | None = None,
    ) -> Task:
        task = self._get_task(task_id)
        scope = load_project_scope(self.repo, context=context, project_id=task.project_id, require_manage=True)

        new_assignee = None
        if data.assignee_provided and data.assignee_id != task.assignee_id:
            if data.assignee_id:
                new_assignee = self._ensure_assignee_is_member(scope.project, data.assignee_id)
            task.assignee_id = data.assignee_id or None

        if data.title is not None:
            task.title = data.title.strip()
        if data.description is not None:
            task.description = _clean(data.description)
        if data.status is not None:
            task.status = data.status
        if data.type is not None:
            task.type = data.type
        if data.priority is not None:
            task.priority = data.priority
        if data.due_date is not None:
            task.due_date = data.due_date
        for field_name in ("objective", "result", "risk", "key_factor"):
            value = getattr(data, field_name)
            if value is not None:
                setattr(task, field_name, _clean(value))
        task.updated_at = utc_now()

        self.db.commit()
        self.db.refresh(task)

        if new_assignee is not None:
            self._notify_assignee(task=task, project=scope.project, assignee=new_assignee, origin=origin)
        return task

    def delete_tasks(self, *, context: RequestUserContext, task_ids: list[UUID]) -> int:
        tasks = self.repo.list_tasks_by_ids(task_ids)
        if not tasks:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No matching tasks found.")

        for project_id in {task.project_id for task in tasks}:
            load_project_scope(self.repo, context=context, project_id=project_id, require_manage=True)

        self.repo.delete_tasks(task.id for task in tasks)
        self.db.commit()
        logger.info("Deleted %d task(s) for %s", len(tasks), context.user_id)
        return len(tasks)

    # ---------- Comments ----------
    def list_comments(self, *, context: RequestUserContext, task_id: UUID) -> list[Comment]:
        task = self._get_task(task_id)
        load_project_scope(self.repo, context=context, project_id=task.project_id)
        return self.repo.list_comments(task.id)

    def add_comment(self, *, context: RequestUserContext, task_id: UUID, content: str) -> Comment:
        task = self._get_task(task_id)
        scope = load_project_scope(self.repo, context=context, project_id=task.project_id)
        if not scope.access.is_project_member:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only project members can comment on tasks.",
            )

        comment = self.repo.add_comment(
            Comment(
                task_id=task.id,
                user_id=context.user_id,
                content=content.strip(),
                created_at=utc_now(),
            )
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment
