from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from string_manager.core.auth import get_current_user
from string_manager.core.db import get_store
from string_manager.api.http.deps import load_project
from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Role
from string_manager.domains.projects.schemas import (
    MemberAdd, MemberResponse, ProjectCreate, ProjectResponse, ProjectUpdate
)
from string_manager.domains.projects.services import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=List[ProjectResponse])
async def get_projects(
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Проекты текущего пользователя"""
    return await ProjectService(store).get_user_projects(user.id)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Создание проекта"""
    return await ProjectService(store).create_project(project_data, user.id)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Получение проекта"""
    return await load_project(store, project_id, user)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    update_data: ProjectUpdate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Обновление проекта"""
    await load_project(store, project_id, user, Role.ADMIN)
    project = await ProjectService(store).update_project(project_id, update_data)

    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )

    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Удаление проекта"""
    await load_project(store, project_id, user, Role.OWNER)

    try:
        success = await ProjectService(store).delete_project(project_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )


@router.get("/{project_id}/members", response_model=List[MemberResponse])
async def get_members(
    project_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Участники проекта"""
    await load_project(store, project_id, user)
    return await ProjectService(store).list_members(project_id)


@router.post("/{project_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    project_id: int,
    member_data: MemberAdd,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Добавление участника или смена его роли"""
    await load_project(store, project_id, user, Role.ADMIN)

    try:
        return await ProjectService(store).add_member(project_id, member_data, user.id)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    project_id: int,
    user_id: int,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Удаление участника"""
    await load_project(store, project_id, user, Role.ADMIN)

    try:
        success = await ProjectService(store).remove_member(project_id, user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
