from fastapi import Depends, Request

from string_manager.core.db import get_store
from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.identity.services import IdentityService


async def get_current_user(request: Request, store: RecordStore = Depends(get_store)) -> User:
    """Текущий пользователь; пока без аутентификации, всегда учетная запись по умолчанию"""
    settings = request.app.state.settings
    return await IdentityService(store).ensure_user(settings.default_user_email, settings.default_user_name)
