from string_manager.db.base import Base
from string_manager.db.models.user import User
from string_manager.db.models.project import Project, ProjectMember
from string_manager.db.models.app import App
from string_manager.db.models.string_item import StringItem
from string_manager.db.models.version import Version

__all__ = [
    "Base",
    "User",
    "Project",
    "ProjectMember",
    "App",
    "StringItem",
    "Version"
]
