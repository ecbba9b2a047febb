# tests/services/test_progress_aggregator.py
import pytest
from unittest.mock import MagicMock

from worktrack.database import models
from worktrack.repositories.interfaces import IModuleRepository, IProjectRepository, ITaskRepository
from worktrack.services.progress_aggregator import (
    ProgressAggregator, module_percentage, project_percentage, recompute
)

PENDING = models.TaskStatus.PENDING
IN_PROGRESS = models.TaskStatus.IN_PROGRESS
COMPLETED = models.TaskStatus.COMPLETED

# ===================================================================
#  순수 계산 함수
# ===================================================================
class TestModulePercentage:
    @pytest.mark.parametrize("statuses, expected", [
        ([], 0),
        ([COMPLETED, PENDING, PENDING], 33),
        ([COMPLETED, COMPLETED, IN_PROGRESS], 67),
        ([COMPLETED, COMPLETED, COMPLETED], 100),
        ([COMPLETED, PENDING], 50),
        ([IN_PROGRESS, IN_PROGRESS], 0),
    ])
    def test_module_percentage(self, statuses, expected):
        assert module_percentage(statuses) == expected

    def test_accepts_raw_status_strings(self):
        assert module_percentage(["completed", "in-progress"]) == 50

    def test_rounds_half_up(self):
        # 1/8 = 12.5% → 13
        assert module_percentage([COMPLETED] + [PENDING] * 7) == 13

class TestProjectPercentage:
    def test_mean_of_module_percentages(self):
        assert project_percentage([0, 50, 100]) == 50

    def test_no_modules_is_zero(self):
        assert project_percentage([]) == 0

    def test_modules_without_tasks_is_zero(self):
        assert project_percentage([0, 0]) == 0

    def test_rounds_half_up(self):
        assert project_percentage([50, 0]) == 25
        assert project_percentage([33, 0]) == 17  # 16.5 → 17

class TestRecompute:
    def test_recompute_reports_modules_and_project(self):
        report = recompute(1, {10: [COMPLETED, PENDING], 11: []})

        assert report.project_id == 1
        assert report.module_progress == {10: 50, 11: 0}
        assert report.project_progress == 25

    def test_recompute_is_idempotent(self):
        snapshot = {10: [COMPLETED, PENDING, PENDING], 11: [COMPLETED]}
        assert recompute(1, snapshot) == recompute(1, snapshot)

    def test_all_values_are_bounded_integers(self):
        report = recompute(1, {i: [COMPLETED] * i + [PENDING] * (7 - i) for i in range(8)})
        values = list(report.module_progress.values()) + [report.project_progress]
        assert all(isinstance(v, int) and 0 <= v <= 100 for v in values)

# ===================================================================
#  ProgressAggregator (리포지토리 연동)
# ===================================================================

@pytest.fixture
def mock_project_repo() -> MagicMock:
    return MagicMock(spec=IProjectRepository)

@pytest.fixture
def mock_module_repo() -> MagicMock:
    return MagicMock(spec=IModuleRepository)

@pytest.fixture
def mock_task_repo() -> MagicMock:
    return MagicMock(spec=ITaskRepository)

@pytest.fixture
def aggregator(mock_project_repo, mock_module_repo, mock_task_repo) -> ProgressAggregator:
    return ProgressAggregator(mock_project_repo, mock_module_repo, mock_task_repo)

class TestProgressAggregator:
    def test_refresh_persists_all_values_in_one_call(self, aggregator, mock_project_repo, mock_module_repo, mock_task_repo):
        """스냅샷을 계산한 뒤, 모든 진행률을 save_progress 한 번으로 저장하는지 테스트합니다."""
        # === Arrange ===
        # 시나리오: 모듈 Dev(태스크 2개, 1개 완료), QA(태스크 없음)
        mock_module_repo.list_by_project_id.return_value = [
            models.Module(id=1, project_id=5, module_name="Dev"),
            models.Module(id=2, project_id=5, module_name="QA"),
        ]
        mock_task_repo.list_by_project_id.return_value = [
            models.Task(id=1, module_id=1, status=COMPLETED),
            models.Task(id=2, module_id=1, status=PENDING),
        ]

        # === Act ===
        report = aggregator.refresh(5)

        # === Assert ===
        assert report.module_progress == {1: 50, 2: 0}
        assert report.project_progress == 25
        mock_project_repo.save_progress.assert_called_once_with(5, 25, {1: 50, 2: 0})

    def test_refresh_without_modules_sets_zero(self, aggregator, mock_project_repo, mock_module_repo, mock_task_repo):
        mock_module_repo.list_by_project_id.return_value = []
        mock_task_repo.list_by_project_id.return_value = []

        report = aggregator.refresh(5)

        assert report.project_progress == 0
        mock_project_repo.save_progress.assert_called_once_with(5, 0, {})

    def test_refresh_propagates_persistence_failure(self, aggregator, mock_project_repo, mock_module_repo, mock_task_repo):
        """저장 실패는 잡지 않고 그대로 전파되어야 합니다. (재시도 없음)"""
        mock_module_repo.list_by_project_id.return_value = [models.Module(id=1, project_id=5)]
        mock_task_repo.list_by_project_id.return_value = []
        mock_project_repo.save_progress.side_effect = RuntimeError("disk full")

        with pytest.raises(RuntimeError):
            aggregator.refresh(5)
        mock_project_repo.save_progress.assert_called_once()
