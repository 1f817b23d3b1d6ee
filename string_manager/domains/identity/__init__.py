from string_manager.domains.identity.entities import User
from string_manager.domains.identity.schemas import UserBase, UserUpdate, UserResponse

__all__ = [
    "User",
    "UserBase", "UserUpdate", "UserResponse"
]
