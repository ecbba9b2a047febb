# tests/services/test_project_service.py
import pytest
from unittest.mock import MagicMock, ANY

from sqlalchemy.exc import IntegrityError

from worktrack.database import models
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.repositories.interfaces import (
    IModuleRepository, IProjectMemberRepository, IProjectRepository, ITaskRepository, IUserRepository
)
from worktrack.services.access_resolver import AccessResolver
from worktrack.services.actor import Actor
from worktrack.services.exceptions import *
from worktrack.services.membership_index import MembershipIndex
from worktrack.services.progress_aggregator import ProgressAggregator
from worktrack.services.project_service import ProjectService

ADMIN = Actor(id=1, role="admin")
LEADER = Actor(id=2, role="leader")
OTHER_LEADER = Actor(id=3, role="leader")
MEMBER = Actor(id=4, role="member")

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_project_repo() -> MagicMock:
    """IProjectRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IProjectRepository)

@pytest.fixture
def mock_module_repo() -> MagicMock:
    return MagicMock(spec=IModuleRepository)

@pytest.fixture
def mock_task_repo() -> MagicMock:
    return MagicMock(spec=ITaskRepository)

@pytest.fixture
def mock_member_repo() -> MagicMock:
    """IProjectMemberRepository 모의 객체. 기본값은 '멤버십 없음'."""
    repo = MagicMock(spec=IProjectMemberRepository)
    repo.find.return_value = None
    return repo

@pytest.fixture
def mock_user_repo() -> MagicMock:
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def mock_aggregator() -> MagicMock:
    return MagicMock(spec=ProgressAggregator)

@pytest.fixture
def mock_uow() -> MagicMock:
    """with 블록 안의 예외를 삼키지 않도록 __exit__가 False를 반환하게 합니다."""
    uow = MagicMock(spec=UnitOfWork)
    uow.__exit__.return_value = False
    return uow

@pytest.fixture
def project_service(
    mock_project_repo, mock_module_repo, mock_task_repo, mock_member_repo,
    mock_user_repo, mock_aggregator, mock_uow
) -> ProjectService:
    """실제 AccessResolver와 모의 리포지토리로 ProjectService를 조립합니다."""
    membership_index = MembershipIndex(mock_project_repo, mock_member_repo, MagicMock())
    resolver = AccessResolver(membership_index)
    return ProjectService(
        mock_project_repo, mock_module_repo, mock_task_repo, mock_member_repo,
        mock_user_repo, membership_index, resolver, mock_aggregator, mock_uow
    )

@pytest.fixture
def project(mock_project_repo) -> models.Project:
    """LEADER가 소유한 프로젝트가 조회되도록 설정합니다."""
    project = models.Project(
        id=10, title="Website", description="", status=models.ProjectStatus.ACTIVE,
        progress=0, created_by=LEADER.id
    )
    mock_project_repo.find_by_id.return_value = project
    return project

@pytest.fixture
def module(mock_module_repo, project) -> models.Module:
    module = models.Module(id=20, project_id=project.id, module_name="Dev", progress=0)
    mock_module_repo.find_by_id.return_value = module
    return module

@pytest.fixture
def task(mock_task_repo, module) -> models.Task:
    task = models.Task(
        id=30, module_id=module.id, task_name="Build API", description="",
        status=models.TaskStatus.PENDING, assigned_to=MEMBER.id
    )
    mock_task_repo.find_by_id.return_value = task
    return task

# ===================================================================
#  프로젝트 테스트
# ===================================================================
class TestProjects:
    def test_create_project_records_owner_and_refreshes_progress(self, project_service, mock_project_repo, mock_aggregator):
        """리더가 프로젝트를 생성하면 소유자로 기록되고 진행률이 계산되는지 테스트합니다."""
        # === Arrange ===
        # 시나리오: 리포지토리가 전달받은 모델에 ID를 부여하여 반환
        def fake_create(project_model):
            project_model.id = 11
            return project_model
        mock_project_repo.create.side_effect = fake_create

        # === Act ===
        result = project_service.create_project(LEADER, title="Website", start_date="2026-01-05")

        # === Assert ===
        assert result["id"] == 11
        assert result["created_by"] == LEADER.id
        assert result["start_date"] == "2026-01-05"
        assert result["progress"] == 0
        mock_aggregator.refresh.assert_called_once_with(11)

    def test_member_cannot_create_project(self, project_service, mock_project_repo):
        with pytest.raises(ForbiddenError):
            project_service.create_project(MEMBER, title="Website")
        mock_project_repo.create.assert_not_called()

    def test_create_project_rejects_short_title(self, project_service, mock_project_repo):
        with pytest.raises(ValueError):
            project_service.create_project(LEADER, title="W")
        mock_project_repo.create.assert_not_called()

    @pytest.mark.parametrize("actor, repo_method", [
        (ADMIN, "list_all"),
        (LEADER, "list_by_creator"),
        (MEMBER, "list_for_member"),
    ])
    def test_list_projects_scoped_by_role(self, project_service, mock_project_repo, actor, repo_method):
        getattr(mock_project_repo, repo_method).return_value = []

        assert project_service.list_projects(actor) == []
        getattr(mock_project_repo, repo_method).assert_called_once()

    def test_leader_listing_goes_through_membership_index(self, project_service, project):
        """리더의 목록 조회는 MembershipIndex의 소유 프로젝트 질의를 사용해야 합니다."""
        # === Arrange ===
        owned = MagicMock(return_value=[project])
        project_service.membership_index.projects_owned_by = owned

        # === Act ===
        result = project_service.list_projects(LEADER)

        # === Assert ===
        assert [p["id"] for p in result] == [project.id]
        owned.assert_called_once_with(LEADER.id)

    def test_create_project_rejects_non_string_date(self, project_service, mock_project_repo):
        """문자열이 아닌 날짜 값(예: 20240101)은 ValueError로 거절되어야 합니다."""
        with pytest.raises(ValueError):
            project_service.create_project(LEADER, title="Website", start_date=20240101)
        mock_project_repo.create.assert_not_called()

    def test_get_missing_project_is_not_found_even_for_stranger(self, project_service, mock_project_repo):
        """존재하지 않는 프로젝트는 권한과 무관하게 NotFound여야 합니다."""
        mock_project_repo.find_by_id.return_value = None

        with pytest.raises(ProjectNotFoundError):
            project_service.get_project(MEMBER, 999)

    def test_other_leader_is_forbidden(self, project_service, project):
        with pytest.raises(ForbiddenError):
            project_service.get_project(OTHER_LEADER, project.id)

    def test_update_project_ignores_progress_and_requires_fields(self, project_service, project, mock_project_repo):
        """progress는 파생 값이므로 직접 수정할 수 없습니다."""
        with pytest.raises(NoFieldsToUpdateError):
            project_service.update_project(LEADER, project.id, progress=90)
        mock_project_repo.update.assert_not_called()

    def test_update_project_coerces_status(self, project_service, project, mock_project_repo):
        mock_project_repo.update.side_effect = lambda p, changes: p

        project_service.update_project(LEADER, project.id, status="inactive", progress=90)

        mock_project_repo.update.assert_called_once_with(project, {"status": models.ProjectStatus.INACTIVE})

    def test_member_cannot_update_project_even_as_member(self, project_service, project, mock_member_repo):
        # 시나리오: 멤버가 프로젝트 멤버로 등록되어 있음
        mock_member_repo.find.return_value = models.ProjectMember(project_id=project.id, user_id=MEMBER.id)

        with pytest.raises(ForbiddenError):
            project_service.update_project(MEMBER, project.id, title="Renamed")

    def test_delete_project(self, project_service, project, mock_project_repo):
        assert project_service.delete_project(ADMIN, project.id) is True
        mock_project_repo.delete.assert_called_once_with(project)

# ===================================================================
#  모듈 / 태스크 테스트
# ===================================================================
class TestModulesAndTasks:
    def test_list_tasks_of_missing_module_is_not_found_before_forbidden(self, project_service, mock_module_repo):
        mock_module_repo.find_by_id.return_value = None

        with pytest.raises(ProjectModuleNotFoundError):
            project_service.list_tasks(MEMBER, 999)

    def test_list_tasks_forbidden_for_non_member(self, project_service, module, mock_task_repo):
        with pytest.raises(ForbiddenError):
            project_service.list_tasks(MEMBER, module.id)
        mock_task_repo.list_by_module_id.assert_not_called()

    def test_create_module_refreshes_project(self, project_service, project, mock_module_repo, mock_aggregator):
        mock_module_repo.create.side_effect = lambda m: m

        result = project_service.create_module(LEADER, project.id, "QA")

        assert result["module_name"] == "QA"
        mock_aggregator.refresh.assert_called_once_with(project.id)

    def test_delete_module_refreshes_project(self, project_service, module, project, mock_module_repo, mock_aggregator):
        project_service.delete_module(LEADER, module.id)

        mock_module_repo.delete.assert_called_once_with(module)
        mock_aggregator.refresh.assert_called_once_with(project.id)

    def test_create_task_allows_non_member_assignee(self, project_service, module, mock_user_repo, mock_task_repo, mock_aggregator):
        """담당자는 프로젝트 멤버가 아니어도 지정할 수 있습니다."""
        # === Arrange ===
        mock_user_repo.find_by_id.return_value = models.User(id=MEMBER.id, name="Mia", role=models.Role.MEMBER)
        mock_task_repo.create.side_effect = lambda t: t

        # === Act ===
        result = project_service.create_task(LEADER, module.id, "Build UI", assigned_to=MEMBER.id, status="completed")

        # === Assert ===
        assert result["assigned_to"] == MEMBER.id
        assert result["status"] == "completed"
        mock_aggregator.refresh.assert_called_once_with(module.project_id)

    def test_create_task_with_unknown_assignee(self, project_service, module, mock_user_repo, mock_task_repo):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            project_service.create_task(LEADER, module.id, "Build UI", assigned_to=77)
        mock_task_repo.create.assert_not_called()

    def test_assigned_member_updates_status_and_progress_is_refreshed(self, project_service, task, project, mock_task_repo, mock_aggregator):
        """할당받은 멤버는 멤버십 없이도 자신의 태스크를 수정할 수 있습니다."""
        mock_task_repo.update.side_effect = lambda t, changes: t

        project_service.update_task(MEMBER, task.id, status="completed")

        mock_task_repo.update.assert_called_once_with(task, {"status": models.TaskStatus.COMPLETED})
        mock_aggregator.refresh.assert_called_once_with(project.id)

    def test_member_cannot_update_someone_elses_task(self, project_service, task, mock_task_repo, mock_aggregator):
        task.assigned_to = 99

        with pytest.raises(ForbiddenError):
            project_service.update_task(MEMBER, task.id, status="completed")
        mock_task_repo.update.assert_not_called()
        mock_aggregator.refresh.assert_not_called()

    def test_update_task_with_invalid_status(self, project_service, task, mock_task_repo):
        with pytest.raises(ValueError):
            project_service.update_task(LEADER, task.id, status="done")
        mock_task_repo.update.assert_not_called()

    def test_refresh_failure_propagates_from_update_task(self, project_service, task, mock_task_repo, mock_aggregator, mock_uow):
        """진행률 저장 실패 시 예외가 전파되고, 작업 단위가 예외와 함께 종료되어야 합니다."""
        mock_task_repo.update.side_effect = lambda t, changes: t
        mock_aggregator.refresh.side_effect = RuntimeError("write failed")

        with pytest.raises(RuntimeError):
            project_service.update_task(LEADER, task.id, status="completed")
        mock_uow.__exit__.assert_called_once_with(RuntimeError, ANY, ANY)

    def test_delete_task_refreshes_project(self, project_service, task, project, mock_task_repo, mock_aggregator):
        project_service.delete_task(LEADER, task.id)

        mock_task_repo.delete.assert_called_once_with(task)
        mock_aggregator.refresh.assert_called_once_with(project.id)

# ===================================================================
#  프로젝트 멤버십 테스트
# ===================================================================
class TestProjectMembers:
    def test_add_member_success(self, project_service, project, mock_user_repo, mock_member_repo):
        mock_user_repo.find_by_id.return_value = models.User(id=MEMBER.id)

        assert project_service.add_member(LEADER, project.id, MEMBER.id) is True
        mock_member_repo.create.assert_called_once_with(ANY)

    def test_add_existing_member_is_conflict(self, project_service, project, mock_user_repo, mock_member_repo):
        # === Arrange ===
        mock_user_repo.find_by_id.return_value = models.User(id=MEMBER.id)
        mock_member_repo.find.return_value = models.ProjectMember(project_id=project.id, user_id=MEMBER.id)

        # === Act & Assert ===
        with pytest.raises(MembershipAlreadyExistsError):
            project_service.add_member(LEADER, project.id, MEMBER.id)
        mock_member_repo.create.assert_not_called()

    def test_concurrent_duplicate_insert_is_conflict(self, project_service, project, mock_user_repo, mock_member_repo):
        """선행 확인 이후 동시에 추가된 경우, 저장소의 유일 제약 위반을 Conflict로 바꿉니다."""
        mock_user_repo.find_by_id.return_value = models.User(id=MEMBER.id)
        mock_member_repo.create.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE"))

        with pytest.raises(ConflictError):
            project_service.add_member(LEADER, project.id, MEMBER.id)

    def test_add_unknown_user(self, project_service, project, mock_user_repo):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            project_service.add_member(LEADER, project.id, 404)

    def test_other_leader_cannot_manage_members(self, project_service, project, mock_member_repo):
        with pytest.raises(ForbiddenError):
            project_service.add_member(OTHER_LEADER, project.id, MEMBER.id)
        with pytest.raises(ForbiddenError):
            project_service.list_members(OTHER_LEADER, project.id)
        mock_member_repo.create.assert_not_called()

    def test_list_member_tasks(self, project_service, project, mock_task_repo):
        mock_task_repo.list_assigned_in_project.return_value = [{"id": 30}]

        assert project_service.list_member_tasks(LEADER, project.id, MEMBER.id) == [{"id": 30}]
        mock_task_repo.list_assigned_in_project.assert_called_once_with(project.id, MEMBER.id)
