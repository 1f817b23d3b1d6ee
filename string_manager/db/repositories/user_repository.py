from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from string_manager.db.models.user import User as UserModel
from string_manager.domains.identity.entities import User


class UserRepository:
    """Репозиторий для работы с пользователями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, email: str, name: str, avatar_url: Optional[str] = None) -> User:
        """Создание нового пользователя"""
        db_user = UserModel(email=email, name=name, avatar_url=avatar_url)

        self.session.add(db_user)
        try:
            await self.session.flush()
        except IntegrityError:
            raise ValueError("User with this email already exists")
        await self.session.refresh(db_user)
        return self._to_domain(db_user)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Получение пользователя по id"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def update(self, user_id: int, values: Dict[str, Any]) -> Optional[User]:
        """Обновление имени и аватара"""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(user_id)

    async def count(self) -> int:
        """Количество пользователей"""
        result = await self.session.execute(select(func.count(UserModel.id)))
        return result.scalar()

    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            id=db_user.id,
            email=db_user.email,
            name=db_user.name,
            avatar_url=db_user.avatar_url,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
