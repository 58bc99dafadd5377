"""Top-level API router."""

from fastapi import APIRouter

from bi_dashboard.api.routes.dashboards import router as dashboards_router
from bi_dashboard.api.routes.datasets import router as datasets_router
from bi_dashboard.api.routes.exports import router as exports_router
from bi_dashboard.api.routes.health import router as health_router
from bi_dashboard.api.routes.projects import router as projects_router
from bi_dashboard.api.routes.warehouse import router as warehouse_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(projects_router)
api_router.include_router(datasets_router)
api_router.include_router(dashboards_router)
api_router.include_router(exports_router)
api_router.include_router(warehouse_router)
