import logging
from datetime import datetime
from typing import Optional

from string_manager.db.store import RecordStore
from string_manager.domains.identity.entities import User
from string_manager.domains.identity.schemas import UserUpdate
from string_manager.domains.strings.entities import StringStatus

logger = logging.getLogger(__name__)


class IdentityService:
    """Сервис для работы с пользователями"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def ensure_user(self, email: str, name: str) -> User:
        """Пользователь по email; создается при первом обращении"""
        user = await self.store.get_user_by_email(email)
        if user:
            return user

        try:
            user = await self.store.create_user(email, name)
        except ValueError:
            # Пользователь успел появиться параллельно
            user = await self.store.get_user_by_email(email)
            if not user:
                raise
        else:
            logger.info("Created user %s", email)
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        """Получение пользователя по id"""
        return await self.store.get_user(user_id)

    async def update_user(self, user_id: int, data: UserUpdate) -> Optional[User]:
        """Обновление имени и аватара"""
        values = data.model_dump(exclude_unset=True)
        if values.get("name") is None:
            values.pop("name", None)
        return await self.store.update_user(user_id, values)

    async def bootstrap_sample_data(self, email: str, name: str) -> bool:
        """Демонстрационные данные для пустого хранилища"""
        if await self.store.count_users() > 0:
            return False

        user = await self.ensure_user(email, name)
        project = await self.store.create_project("Sample Project", user.id, "A sample localization project")
        app = await self.store.create_app(project.id, "Sample App")
        for key, value in (("1", "Hello"), ("2", "Welcome to String Manager")):
            await self.store.create_string(app.id, {
                "key": key,
                "value": value,
                "status": StringStatus.NEW,
                "modified_at": datetime.utcnow(),
                "modified_by": user.id,
            })

        logger.info("Sample data created for %s", email)
        return True
