from fastapi import HTTPException, status

from string_manager.db.store import RecordStore
from string_manager.domains.access.services import AccessService
from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, Role


async def load_project(store: RecordStore, project_id: int, user: User, min_role: Role = Role.VIEWER) -> Project:
    """Проект с проверкой роли: 404, если его нет, 403, если роль ниже требуемой"""
    project = await store.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )

    try:
        await AccessService(store).require_project(project_id, user.id, min_role)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    return project


async def load_app(store: RecordStore, project_id: int, app_id: int, user: User, min_role: Role = Role.VIEWER) -> App:
    """Приложение проекта с проверкой роли в этом проекте"""
    app = await store.get_app(app_id)
    if not app or app.project_id != project_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="App not found"
        )

    try:
        await AccessService(store).require_app(app_id, user.id, min_role)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    return app
