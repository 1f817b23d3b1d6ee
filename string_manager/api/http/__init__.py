from string_manager.api.http.health import router as health_router
from string_manager.api.http.users import router as users_router
from string_manager.api.http.projects import router as projects_router
from string_manager.api.http.apps import router as apps_router
from string_manager.api.http.strings import router as strings_router
from string_manager.api.http.versions import router as versions_router

__all__ = [
    "health_router",
    "users_router",
    "projects_router",
    "apps_router",
    "strings_router",
    "versions_router"
]
