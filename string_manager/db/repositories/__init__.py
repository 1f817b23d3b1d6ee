from string_manager.db.repositories.user_repository import UserRepository
from string_manager.db.repositories.project_repository import ProjectMemberRepository, ProjectRepository
from string_manager.db.repositories.app_repository import AppRepository
from string_manager.db.repositories.string_repository import StringRepository
from string_manager.db.repositories.version_repository import VersionRepository

__all__ = [
    "UserRepository",
    "ProjectRepository",
    "ProjectMemberRepository",
    "AppRepository",
    "StringRepository",
    "VersionRepository"
]
