from .sqlalchemy_user_repository import SqlalchemyUserRepository
from .sqlalchemy_project_repository import SqlalchemyProjectRepository
from .sqlalchemy_module_repository import SqlalchemyModuleRepository
from .sqlalchemy_task_repository import SqlalchemyTaskRepository
from .sqlalchemy_membership_repository import SqlalchemyProjectMemberRepository, SqlalchemyTeamMemberRepository
