from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from string_manager.core.auth import get_current_user
from string_manager.core.db import get_snapshot_policy, get_store
from string_manager.api.http.deps import load_app, load_project
from string_manager.db.store import RecordStore
from string_manager.domains.apps.schemas import AppCreate, AppDetailResponse, AppResponse, AppUpdate
from string_manager.domains.apps.services import AppService
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Role
from string_manager.domains.versions.snapshots import SnapshotPolicy

router = APIRouter(prefix="/projects/{project_id}/apps", tags=["apps"])


@router.get("", response_model=List[AppResponse])
async def get_apps(
    project_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Приложения проекта"""
    await load_project(store, project_id, user)
    return await AppService(store).list_apps(project_id)


@router.post("", response_model=AppResponse, status_code=status.HTTP_201_CREATED)
async def create_app(
    project_id: int,
    app_data: AppCreate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Создание приложения"""
    await load_project(store, project_id, user, Role.MEMBER)
    return await AppService(store).create_app(project_id, app_data)


@router.get("/{app_id}", response_model=AppDetailResponse)
async def get_app(
    project_id: int,
    app_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    policy: SnapshotPolicy = Depends(get_snapshot_policy)
):
    """Приложение со строками и версиями"""
    await load_app(store, project_id, app_id, user)
    detail = await AppService(store, policy).get_app_detail(project_id, app_id)

    if not detail:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="App not found"
        )

    return detail


@router.put("/{app_id}", response_model=AppResponse)
async def update_app(
    project_id: int,
    app_id: int,
    update_data: AppUpdate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Обновление приложения"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)
    app = await AppService(store).update_app(app_id, update_data)

    if not app:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="App not found"
        )

    return app


@router.delete("/{app_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_app(
    project_id: int,
    app_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    policy: SnapshotPolicy = Depends(get_snapshot_policy)
):
    """Удаление приложения вместе со строками и версиями"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)

    if not await AppService(store, policy).delete_app(app_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="App not found"
        )
