from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from string_manager.core.auth import get_current_user
from string_manager.core.db import get_publisher, get_store
from string_manager.api.http.deps import load_app
from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Role
from string_manager.domains.versions.schemas import VersionPublish, VersionResponse
from string_manager.domains.versions.services import VersionPublisher, VersionService

router = APIRouter(prefix="/projects/{project_id}/apps/{app_id}/versions", tags=["versions"])


@router.get("", response_model=List[VersionResponse])
async def get_versions(
    project_id: int,
    app_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    publisher: VersionPublisher = Depends(get_publisher)
):
    """Версии приложения по возрастанию номера"""
    await load_app(store, project_id, app_id, user)
    return await VersionService(store, publisher).list_versions(app_id)


@router.post("", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
async def publish_version(
    project_id: int,
    app_id: int,
    publish_data: VersionPublish,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    publisher: VersionPublisher = Depends(get_publisher)
):
    """Публикация новой версии"""
    await load_app(store, project_id, app_id, user, Role.MEMBER)
    if not publish_data.publisher_name:
        publish_data.publisher_name = user.name

    version = await VersionService(store, publisher).publish(app_id, publish_data, user.id)

    if not version:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="App not found"
        )

    return version


@router.get("/{version_id}", response_model=VersionResponse)
async def get_version(
    project_id: int,
    app_id: int,
    version_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
    publisher: VersionPublisher = Depends(get_publisher)
):
    """Получение версии"""
    await load_app(store, project_id, app_id, user)
    version = await VersionService(store, publisher).get_version(app_id, version_id)

    if not version:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Version not found"
        )

    return version
