from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from worktrack.database import models

class ITaskRepository(ABC):
    @abstractmethod
    def create(self, task_model: models.Task) -> models.Task:
        """새로운 태스크를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, task_id: int) -> Optional[models.Task]:
        """고유 ID로 특정 태스크를 조회합니다."""
        pass

    @abstractmethod
    def list_by_module_id(self, module_id: int) -> List[models.Task]:
        """특정 모듈에 속한 모든 태스크의 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_by_project_id(self, project_id: int) -> List[models.Task]:
        """특정 프로젝트의 모든 모듈에 속한 태스크 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_assigned_to(self, user_id: int) -> List[Dict[str, Any]]:
        """
        특정 사용자에게 할당된 모든 태스크를 모듈/프로젝트 정보와 함께 조회합니다.

        Returns:
            태스크 정보와 module_id, module_name, project_id, project_title이
            포함된 딕셔너리의 리스트.
        """
        pass

    @abstractmethod
    def list_assigned_in_project(self, project_id: int, user_id: int) -> List[Dict[str, Any]]:
        """특정 프로젝트 안에서 특정 사용자에게 할당된 태스크 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_assigned_in_projects_created_by(self, creator_id: int, user_id: int) -> List[Dict[str, Any]]:
        """creator_id가 생성한 프로젝트들에서 특정 사용자에게 할당된 태스크 목록을 조회합니다."""
        pass

    @abstractmethod
    def update(self, task: models.Task, fields: Dict[str, Any]) -> models.Task:
        """주어진 필드들로 태스크 정보를 갱신합니다."""
        pass

    @abstractmethod
    def unassign_user(self, user_id: int) -> int:
        """특정 사용자에게 할당된 모든 태스크의 담당자를 비웁니다. 변경된 행 수를 반환합니다."""
        pass

    @abstractmethod
    def delete(self, task: models.Task) -> bool:
        """특정 태스크를 데이터베이스에서 삭제합니다."""
        pass
