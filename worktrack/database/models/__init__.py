from .user import User, Role
from .project import Project, ProjectStatus
from .module import Module
from .task import Task, TaskStatus
from .association import ProjectMember, TeamMember

__all__ = [
    "User", "Role",
    "Project", "ProjectStatus",
    "Module",
    "Task", "TaskStatus",
    "ProjectMember", "TeamMember",
]
