from .user import IUserRepository
from .project import IProjectRepository
from .module import IModuleRepository
from .task import ITaskRepository
from .membership import IProjectMemberRepository, ITeamMemberRepository
