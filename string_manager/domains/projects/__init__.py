from string_manager.domains.projects.entities import Project, ProjectMember, Role, role_allows
from string_manager.domains.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, MemberAdd, MemberResponse
)

__all__ = [
    "Project", "ProjectMember", "Role", "role_allows",
    "ProjectCreate", "ProjectUpdate", "ProjectResponse", "MemberAdd", "MemberResponse"
]
