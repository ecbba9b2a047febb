import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Sequence

from worktrack.database import models
from worktrack.repositories.interfaces import IModuleRepository, IProjectRepository, ITaskRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressReport:
    """한 번의 재계산 결과. 모든 값은 0~100 사이의 정수입니다."""
    project_id: int
    project_progress: int
    module_progress: Dict[int, int] = field(default_factory=dict)


def _round_half_up(numerator: int, denominator: int) -> int:
    # 정수 연산으로 반올림(0.5는 올림)하여 부동소수점 오차를 피합니다.
    return (2 * numerator + denominator) // (2 * denominator)


def module_percentage(statuses: Sequence[models.TaskStatus]) -> int:
    """
    모듈의 진행률을 계산합니다.

    완료된 태스크 비율을 백분율로 반올림합니다. 태스크가 없으면 0입니다.
    (예: 3개 중 1개 완료 → 33, 3개 중 2개 완료 → 67)
    """
    total = len(statuses)
    if total == 0:
        return 0
    completed = sum(1 for status in statuses if models.TaskStatus(status) is models.TaskStatus.COMPLETED)
    return _round_half_up(100 * completed, total)


def project_percentage(module_percentages: Iterable[int]) -> int:
    """
    프로젝트의 진행률을 계산합니다.

    모듈 진행률의 산술 평균을 반올림합니다. 모듈이 없으면 0이며,
    태스크가 없는 모듈만 있는 경우에도 0(0들의 평균)입니다.
    """
    values = list(module_percentages)
    if not values:
        return 0
    return _round_half_up(sum(values), len(values))


def recompute(project_id: int, snapshot: Mapping[int, Sequence[models.TaskStatus]]) -> ProgressReport:
    """
    프로젝트 태스크 트리의 메모리 스냅샷으로부터 모든 파생 진행률을 계산합니다.

    Args:
        project_id: 대상 프로젝트의 ID.
        snapshot: 모듈 ID를 키로, 그 모듈에 속한 태스크 상태 목록을 값으로 하는 매핑.
                  태스크가 없는 모듈도 빈 목록으로 포함되어야 합니다.

    Returns:
        모듈별 진행률과 프로젝트 진행률을 담은 ProgressReport.
        같은 스냅샷에 대해 항상 같은 결과를 반환합니다.
    """
    module_progress = {module_id: module_percentage(statuses) for module_id, statuses in snapshot.items()}
    return ProgressReport(
        project_id=project_id,
        project_progress=project_percentage(module_progress.values()),
        module_progress=module_progress,
    )


class ProgressAggregator:
    """태스크/모듈 변경 후 프로젝트의 진행률을 다시 계산하고 저장합니다."""

    def __init__(self, project_repo: IProjectRepository, module_repo: IModuleRepository, task_repo: ITaskRepository):
        self.project_repo = project_repo
        self.module_repo = module_repo
        self.task_repo = task_repo

    def snapshot(self, project_id: int) -> Dict[int, list]:
        """프로젝트의 모듈별 태스크 상태 목록을 메모리로 읽어옵니다."""
        tree = {module.id: [] for module in self.module_repo.list_by_project_id(project_id)}
        for task in self.task_repo.list_by_project_id(project_id):
            if task.module_id in tree:
                tree[task.module_id].append(task.status)
        return tree

    def refresh(self, project_id: int) -> ProgressReport:
        """
        프로젝트의 진행률을 재계산하고, 모든 값을 한 번의 저장 호출로 기록합니다.

        반드시 변경 작업과 같은 작업 단위(UnitOfWork) 안에서 호출해야 합니다.
        저장 중 발생한 예외는 잡지 않고 그대로 전파하여 작업 전체가 롤백되도록 합니다.
        """
        report = recompute(project_id, self.snapshot(project_id))
        self.project_repo.save_progress(project_id, report.project_progress, report.module_progress)
        logger.debug(
            "Progress for project %s: %s%% (modules: %s)",
            project_id, report.project_progress, report.module_progress
        )
        return report
