"""Top-level API router."""

from fastapi import APIRouter

from app.api.routes.admin import router as admin_router
from app.api.routes.exports import router as exports_router
from app.api.routes.health import router as health_router
from app.api.routes.issues import router as issues_router
from app.api.routes.me import router as me_router
from app.api.routes.projects import router as projects_router
from app.api.routes.summary import router as summary_router
from app.api.routes.team import router as team_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(admin_router)
api_router.include_router(projects_router)
api_router.include_router(issues_router)
api_router.include_router(team_router)
api_router.include_router(summary_router)
api_router.include_router(exports_router)
