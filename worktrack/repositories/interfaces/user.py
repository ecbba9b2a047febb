from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from worktrack.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새로운 사용자를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[models.User]:
        """이메일로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.User]:
        """모든 사용자의 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_active_by_role(self, role: models.Role) -> List[models.User]:
        """특정 역할을 가진 활성 사용자 목록을 이름순으로 조회합니다."""
        pass

    @abstractmethod
    def list_active_not_in_project(self, project_id: int, exclude_user_id: int) -> List[models.User]:
        """프로젝트에 아직 속하지 않은 활성 사용자 목록을 조회합니다. (exclude_user_id 제외)"""
        pass

    @abstractmethod
    def list_active_not_in_team(self, leader_id: int) -> List[models.User]:
        """리더의 팀에 아직 속하지 않은 활성 사용자 목록을 조회합니다. (리더 본인 제외)"""
        pass

    @abstractmethod
    def update(self, user: models.User, fields: Dict[str, Any]) -> models.User:
        """주어진 필드들로 사용자 정보를 갱신합니다."""
        pass

    @abstractmethod
    def delete(self, user: models.User) -> bool:
        """특정 사용자를 데이터베이스에서 삭제합니다."""
        pass
