from fastapi import APIRouter, Depends, HTTPException, status

from string_manager.core.auth import get_current_user
from string_manager.core.db import get_store
from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.identity.schemas import UserResponse, UserUpdate
from string_manager.domains.identity.services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Текущий пользователь"""
    return user


@router.put("/me", response_model=UserResponse)
async def update_me(
    update_data: UserUpdate,
    user: User = Depends(get_current_user),
    store: RecordStore = Depends(get_store)
):
    """Обновление имени и аватара текущего пользователя"""
    updated = await IdentityService(store).update_user(user.id, update_data)

    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return updated
