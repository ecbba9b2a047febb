from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from worktrack.database import models

class IModuleRepository(ABC):
    @abstractmethod
    def create(self, module_model: models.Module) -> models.Module:
        """새로운 모듈을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, module_id: int) -> Optional[models.Module]:
        """고유 ID로 특정 모듈을 조회합니다."""
        pass

    @abstractmethod
    def list_by_project_id(self, project_id: int) -> List[models.Module]:
        """특정 프로젝트에 속한 모든 모듈의 목록을 조회합니다."""
        pass

    @abstractmethod
    def update(self, module: models.Module, fields: Dict[str, Any]) -> models.Module:
        """주어진 필드들로 모듈 정보를 갱신합니다."""
        pass

    @abstractmethod
    def delete(self, module: models.Module) -> bool:
        """특정 모듈을 데이터베이스에서 삭제합니다. 소속 태스크도 함께 삭제됩니다."""
        pass
