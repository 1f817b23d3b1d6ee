from fastapi import APIRouter

from string_manager.api.http import (
    apps_router, health_router, projects_router, strings_router, users_router, versions_router
)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(users_router)
api_router.include_router(projects_router)
api_router.include_router(apps_router)
api_router.include_router(strings_router)
api_router.include_router(versions_router)
