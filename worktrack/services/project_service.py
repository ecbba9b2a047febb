import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from worktrack.database import models
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.repositories.interfaces import (
    IModuleRepository, IProjectMemberRepository, IProjectRepository, ITaskRepository, IUserRepository
)
from worktrack.services.access_resolver import AccessResolver, Operation, ResourceKind, ResourceRef
from worktrack.services.actor import Actor
from worktrack.services.exceptions import (
    MembershipAlreadyExistsError, ProjectModuleNotFoundError, NoFieldsToUpdateError,
    ProjectNotFoundError, TaskNotFoundError, UserNotFoundError
)
from worktrack.services.membership_index import MembershipIndex
from worktrack.services.progress_aggregator import ProgressAggregator
from worktrack.services.serializers import module_to_dict, project_to_dict, task_to_dict

logger = logging.getLogger(__name__)

PROJECT_UPDATABLE_FIELDS = ('title', 'description', 'start_date', 'end_date', 'status')
MODULE_UPDATABLE_FIELDS = ('module_name',)
TASK_UPDATABLE_FIELDS = ('task_name', 'description', 'assigned_to', 'status')


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD.")
    return date.fromisoformat(value)


def _require_name(value, label: str) -> str:
    if not isinstance(value, str) or len(value.strip()) < 2:
        raise ValueError(f"'{label}' must be at least 2 characters long.")
    return value.strip()


def _pick_fields(fields: Dict[str, Any], allowed: Tuple[str, ...]) -> Dict[str, Any]:
    # 허용되지 않은 키(progress 등)는 조용히 무시합니다.
    return {key: value for key, value in fields.items() if key in allowed}


class ProjectService:
    """
    프로젝트, 모듈, 태스크, 프로젝트 멤버십에 대한 작업을 제공합니다.

    모든 작업은 (1) 리소스와 상위 리소스 존재 확인(NotFound) → (2) 접근 판정(Forbidden)
    → (3) 변경 순서로 진행되며, 태스크/모듈 변경은 같은 작업 단위 안에서
    진행률 재계산까지 마친 뒤에만 커밋됩니다.
    """

    def __init__(
        self,
        project_repo: IProjectRepository,
        module_repo: IModuleRepository,
        task_repo: ITaskRepository,
        member_repo: IProjectMemberRepository,
        user_repo: IUserRepository,
        membership_index: MembershipIndex,
        resolver: AccessResolver,
        aggregator: ProgressAggregator,
        uow: UnitOfWork,
    ):
        self.project_repo = project_repo
        self.module_repo = module_repo
        self.task_repo = task_repo
        self.member_repo = member_repo
        self.user_repo = user_repo
        self.membership_index = membership_index
        self.resolver = resolver
        self.aggregator = aggregator
        self.uow = uow

    # ------------------------------------------------------------------
    # 조회 헬퍼 (NotFound 우선)
    # ------------------------------------------------------------------

    def _get_project(self, project_id: int) -> models.Project:
        project = self.project_repo.find_by_id(project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{project_id}' not found.")
        return project

    def _get_module(self, module_id: int) -> Tuple[models.Module, models.Project]:
        module = self.module_repo.find_by_id(module_id)
        if not module:
            raise ProjectModuleNotFoundError(f"Module with id '{module_id}' not found.")
        project = self.project_repo.find_by_id(module.project_id)
        if not project:
            raise ProjectNotFoundError(f"Project with id '{module.project_id}' not found.")
        return module, project

    def _get_task(self, task_id: int) -> Tuple[models.Task, models.Project]:
        task = self.task_repo.find_by_id(task_id)
        if not task:
            raise TaskNotFoundError(f"Task with id '{task_id}' not found.")
        _, project = self._get_module(task.module_id)
        return task, project

    def _check_assignee(self, user_id: Optional[int]):
        if user_id is not None and not self.user_repo.find_by_id(user_id):
            raise UserNotFoundError(f"User with id '{user_id}' not found.")

    # ------------------------------------------------------------------
    # 프로젝트
    # ------------------------------------------------------------------

    def create_project(self, actor: Actor, title: str, description: Optional[str] = None,
                       start_date=None, end_date=None, status: str = "active") -> Dict[str, Any]:
        """
        새로운 프로젝트를 생성합니다. 요청한 사용자가 프로젝트의 영구 소유자가 됩니다.

        Raises:
            ForbiddenError: 관리자나 리더가 아닐 때.
            ValueError: 제목이나 상태 값이 올바르지 않을 때.
        """
        self.resolver.ensure(actor, ResourceRef.new_project(), Operation.CREATE)
        new_project = models.Project(
            title=_require_name(title, 'title'),
            description=description or '',
            start_date=_parse_date(start_date),
            end_date=_parse_date(end_date),
            status=models.ProjectStatus(status or "active"),
            progress=0,
            created_by=actor.id,
        )
        with self.uow:
            project = self.project_repo.create(new_project)
            self.aggregator.refresh(project.id)
        logger.info("Project %s created by user %s", project.id, actor.id)
        return project_to_dict(project)

    def list_projects(self, actor: Actor) -> List[Dict[str, Any]]:
        """
        요청한 사용자가 볼 수 있는 프로젝트 목록을 조회합니다.

        관리자는 전체, 리더는 자신이 생성한 프로젝트, 멤버는 프로젝트 멤버로 등록된
        프로젝트만 조회합니다. 볼 수 있는 프로젝트가 없으면 빈 목록을 반환합니다.
        """
        if actor.is_admin:
            projects = self.project_repo.list_all()
        elif actor.is_leader:
            projects = self.membership_index.projects_owned_by(actor.id)
        else:
            projects = self.project_repo.list_for_member(actor.id)
        return [project_to_dict(p) for p in projects]

    def get_project(self, actor: Actor, project_id: int) -> Dict[str, Any]:
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_project(project), Operation.READ)
        return project_to_dict(project)

    def update_project(self, actor: Actor, project_id: int, **fields) -> Dict[str, Any]:
        """
        프로젝트 정보를 수정합니다. progress는 파생 값이므로 수정할 수 없습니다.

        Raises:
            ProjectNotFoundError: 프로젝트를 찾을 수 없을 때.
            ForbiddenError: 수정 권한이 없을 때.
            NoFieldsToUpdateError: 수정할 필드가 없을 때.
        """
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_project(project), Operation.UPDATE)

        changes = _pick_fields(fields, PROJECT_UPDATABLE_FIELDS)
        if not changes:
            raise NoFieldsToUpdateError("No fields to update.")
        if 'title' in changes:
            changes['title'] = _require_name(changes['title'], 'title')
        if 'status' in changes:
            changes['status'] = models.ProjectStatus(changes['status'])
        for key in ('start_date', 'end_date'):
            if key in changes:
                changes[key] = _parse_date(changes[key])

        with self.uow:
            project = self.project_repo.update(project, changes)
        return project_to_dict(project)

    def delete_project(self, actor: Actor, project_id: int) -> bool:
        """프로젝트를 삭제합니다. 모듈, 태스크, 멤버십이 하나의 트랜잭션으로 함께 삭제됩니다."""
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_project(project), Operation.DELETE)
        with self.uow:
            self.project_repo.delete(project)
        logger.info("Project %s deleted by user %s", project_id, actor.id)
        return True

    # ------------------------------------------------------------------
    # 모듈
    # ------------------------------------------------------------------

    def list_modules(self, actor: Actor, project_id: int) -> List[Dict[str, Any]]:
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_module(project), Operation.READ)
        return [module_to_dict(m) for m in self.module_repo.list_by_project_id(project_id)]

    def get_module(self, actor: Actor, module_id: int) -> Dict[str, Any]:
        module, project = self._get_module(module_id)
        self.resolver.ensure(actor, ResourceRef.of_module(project), Operation.READ)
        return module_to_dict(module)

    def create_module(self, actor: Actor, project_id: int, module_name: str) -> Dict[str, Any]:
        """
        프로젝트에 새 모듈을 추가하고 프로젝트 진행률을 다시 계산합니다.

        Raises:
            ProjectNotFoundError: 프로젝트를 찾을 수 없을 때.
            ForbiddenError: 관리자 또는 프로젝트 소유 리더가 아닐 때.
        """
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_module(project), Operation.CREATE)
        new_module = models.Module(project_id=project_id, module_name=_require_name(module_name, 'module_name'), progress=0)
        with self.uow:
            module = self.module_repo.create(new_module)
            self.aggregator.refresh(project_id)
        return module_to_dict(module)

    def update_module(self, actor: Actor, module_id: int, **fields) -> Dict[str, Any]:
        module, project = self._get_module(module_id)
        self.resolver.ensure(actor, ResourceRef.of_module(project), Operation.UPDATE)
        changes = _pick_fields(fields, MODULE_UPDATABLE_FIELDS)
        if not changes:
            raise NoFieldsToUpdateError("No fields to update.")
        changes['module_name'] = _require_name(changes['module_name'], 'module_name')
        with self.uow:
            module = self.module_repo.update(module, changes)
        return module_to_dict(module)

    def delete_module(self, actor: Actor, module_id: int) -> bool:
        """모듈과 소속 태스크를 삭제하고, 남은 프로젝트의 진행률을 다시 계산합니다."""
        module, project = self._get_module(module_id)
        self.resolver.ensure(actor, ResourceRef.of_module(project), Operation.DELETE)
        with self.uow:
            self.module_repo.delete(module)
            self.aggregator.refresh(project.id)
        return True

    # ------------------------------------------------------------------
    # 태스크
    # ------------------------------------------------------------------

    def list_tasks(self, actor: Actor, module_id: int) -> List[Dict[str, Any]]:
        """
        모듈에 속한 태스크 목록을 조회합니다.

        Raises:
            ProjectModuleNotFoundError: 모듈을 찾을 수 없을 때. (권한 확인보다 먼저)
            ForbiddenError: 상위 프로젝트에 접근할 수 없을 때.
        """
        _, project = self._get_module(module_id)
        self.resolver.ensure(actor, ResourceRef.of_task(project), Operation.READ)
        return [task_to_dict(t) for t in self.task_repo.list_by_module_id(module_id)]

    def get_task(self, actor: Actor, task_id: int) -> Dict[str, Any]:
        task, project = self._get_task(task_id)
        self.resolver.ensure(actor, ResourceRef.of_task(project, task), Operation.READ)
        return task_to_dict(task)

    def create_task(self, actor: Actor, module_id: int, task_name: str, description: Optional[str] = None,
                    assigned_to: Optional[int] = None, status: str = "pending") -> Dict[str, Any]:
        """
        모듈에 새 태스크를 추가하고 진행률을 다시 계산합니다.

        담당자는 프로젝트 멤버가 아니어도 지정할 수 있습니다.

        Raises:
            ProjectModuleNotFoundError: 모듈을 찾을 수 없을 때.
            ForbiddenError: 관리자 또는 프로젝트 소유 리더가 아닐 때.
            UserNotFoundError: 담당자로 지정한 사용자가 없을 때.
        """
        _, project = self._get_module(module_id)
        self.resolver.ensure(actor, ResourceRef.of_task(project), Operation.CREATE)
        self._check_assignee(assigned_to)
        new_task = models.Task(
            module_id=module_id,
            task_name=_require_name(task_name, 'task_name'),
            description=description or '',
            assigned_to=assigned_to,
            status=models.TaskStatus(status or "pending"),
        )
        with self.uow:
            task = self.task_repo.create(new_task)
            self.aggregator.refresh(project.id)
        return task_to_dict(task)

    def update_task(self, actor: Actor, task_id: int, **fields) -> Dict[str, Any]:
        """
        태스크를 수정하고, 같은 작업 단위 안에서 진행률을 다시 계산합니다.

        멤버는 자신에게 할당된 태스크만 수정할 수 있습니다. (프로젝트 멤버십 불필요)

        Raises:
            TaskNotFoundError: 태스크를 찾을 수 없을 때.
            ForbiddenError: 수정 권한이 없을 때.
            NoFieldsToUpdateError: 수정할 필드가 없을 때.
        """
        task, project = self._get_task(task_id)
        self.resolver.ensure(actor, ResourceRef.of_task(project, task), Operation.UPDATE)

        changes = _pick_fields(fields, TASK_UPDATABLE_FIELDS)
        if not changes:
            raise NoFieldsToUpdateError("No fields to update.")
        if 'task_name' in changes:
            changes['task_name'] = _require_name(changes['task_name'], 'task_name')
        if 'status' in changes:
            changes['status'] = models.TaskStatus(changes['status'])
        if 'assigned_to' in changes:
            self._check_assignee(changes['assigned_to'])

        with self.uow:
            task = self.task_repo.update(task, changes)
            self.aggregator.refresh(project.id)
        return task_to_dict(task)

    def delete_task(self, actor: Actor, task_id: int) -> bool:
        task, project = self._get_task(task_id)
        self.resolver.ensure(actor, ResourceRef.of_task(project, task), Operation.DELETE)
        with self.uow:
            self.task_repo.delete(task)
            self.aggregator.refresh(project.id)
        return True

    def list_my_tasks(self, actor: Actor) -> List[Dict[str, Any]]:
        """요청한 사용자에게 할당된 모든 태스크를 모듈/프로젝트 정보와 함께 조회합니다."""
        return self.task_repo.list_assigned_to(actor.id)

    # ------------------------------------------------------------------
    # 프로젝트 멤버십
    # ------------------------------------------------------------------

    def _ensure_manage_members(self, actor: Actor, project_id: int, operation: Operation) -> models.Project:
        project = self._get_project(project_id)
        self.resolver.ensure(actor, ResourceRef.of_project(project, ResourceKind.PROJECT_MEMBER), operation)
        return project

    def add_member(self, actor: Actor, project_id: int, user_id: int, role_in_project: Optional[str] = None) -> bool:
        """
        사용자를 프로젝트 멤버로 추가합니다.

        Raises:
            ProjectNotFoundError: 프로젝트를 찾을 수 없을 때.
            ForbiddenError: 관리자 또는 프로젝트 소유 리더가 아닐 때.
            UserNotFoundError: 추가할 사용자를 찾을 수 없을 때.
            MembershipAlreadyExistsError: 이미 프로젝트 멤버일 때.
        """
        self._ensure_manage_members(actor, project_id, Operation.CREATE)
        if not self.user_repo.find_by_id(user_id):
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        if self.member_repo.find(project_id, user_id):
            raise MembershipAlreadyExistsError(f"User '{user_id}' is already a member of project '{project_id}'.")

        membership = models.ProjectMember(project_id=project_id, user_id=user_id, role_in_project=role_in_project)
        try:
            with self.uow:
                self.member_repo.create(membership)
        except IntegrityError as e:
            # 동시에 같은 멤버를 추가한 경우: 저장소의 기본 키 제약이 막아줍니다.
            raise MembershipAlreadyExistsError(
                f"User '{user_id}' is already a member of project '{project_id}'."
            ) from e
        return True

    def remove_member(self, actor: Actor, project_id: int, user_id: int) -> bool:
        """프로젝트 멤버십을 제거합니다. 팀 멤버십에는 영향을 주지 않습니다."""
        self._ensure_manage_members(actor, project_id, Operation.DELETE)
        with self.uow:
            self.member_repo.delete(self.member_repo.find(project_id, user_id))
        return True

    def list_members(self, actor: Actor, project_id: int) -> List[Dict[str, Any]]:
        self._ensure_manage_members(actor, project_id, Operation.READ)
        return self.member_repo.list_members(project_id)

    def list_available_members(self, actor: Actor, project_id: int) -> List[Dict[str, Any]]:
        """아직 프로젝트에 속하지 않은 활성 사용자 목록을 조회합니다. (요청자 본인 제외)"""
        self._ensure_manage_members(actor, project_id, Operation.READ)
        users = self.user_repo.list_active_not_in_project(project_id, actor.id)
        return [{"id": u.id, "name": u.name, "email": u.email, "role": u.role.value} for u in users]

    def list_member_tasks(self, actor: Actor, project_id: int, user_id: int) -> List[Dict[str, Any]]:
        """프로젝트 안에서 특정 사용자에게 할당된 태스크 목록을 조회합니다."""
        self._ensure_manage_members(actor, project_id, Operation.READ)
        return self.task_repo.list_assigned_in_project(project_id, user_id)
