"""Top-level API router."""

from fastapi import APIRouter

from rcrpm.api.routes.contact import router as contact_router
from rcrpm.api.routes.contributions import router as contributions_router
from rcrpm.api.routes.health import router as health_router
from rcrpm.api.routes.me import router as me_router
from rcrpm.api.routes.objectives import router as objectives_router
from rcrpm.api.routes.projects import router as projects_router
from rcrpm.api.routes.tasks import router as tasks_router
from rcrpm.api.routes.webhooks import router as webhooks_router
from rcrpm.api.routes.workspaces import router as workspaces_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(workspaces_router)
api_router.include_router(projects_router)
api_router.include_router(tasks_router)
api_router.include_router(objectives_router)
api_router.include_router(contributions_router)
api_router.include_router(contact_router)
api_router.include_router(webhooks_router)
