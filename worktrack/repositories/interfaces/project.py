from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from worktrack.database import models

class IProjectRepository(ABC):
    @abstractmethod
    def create(self, project_model: models.Project) -> models.Project:
        """새로운 프로젝트를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        """고유 ID로 특정 프로젝트를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Project]:
        """모든 프로젝트의 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_by_creator(self, user_id: int) -> List[models.Project]:
        """특정 사용자가 생성한(소유한) 프로젝트 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_for_member(self, user_id: int) -> List[models.Project]:
        """특정 사용자가 프로젝트 멤버로 등록된 프로젝트 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_visible_to_team(self, leader_id: int) -> List[models.Project]:
        """
        리더의 팀에 연관된 프로젝트 목록을 조회합니다.

        리더가 생성한 프로젝트와, 리더의 팀 멤버 중 누구라도 프로젝트 멤버로
        등록된 프로젝트의 합집합입니다. (중복 제거, 최신순)
        """
        pass

    @abstractmethod
    def count_by_creator(self, user_id: int) -> int:
        """특정 사용자가 생성한 프로젝트의 개수를 조회합니다."""
        pass

    @abstractmethod
    def update(self, project: models.Project, fields: Dict[str, Any]) -> models.Project:
        """주어진 필드들로 프로젝트 정보를 갱신합니다."""
        pass

    @abstractmethod
    def save_progress(self, project_id: int, project_progress: int, module_progress: Dict[int, int]):
        """
        프로젝트와 소속 모듈들의 진행률을 한 번에 저장합니다.

        Args:
            project_id: 진행률을 저장할 프로젝트의 ID.
            project_progress: 프로젝트 전체 진행률 (0~100).
            module_progress: 모듈 ID를 키로 하는 모듈별 진행률 (0~100).
        """
        pass

    @abstractmethod
    def delete(self, project: models.Project) -> bool:
        """특정 프로젝트를 데이터베이스에서 삭제합니다. 모듈, 태스크, 멤버십도 함께 삭제됩니다."""
        pass
