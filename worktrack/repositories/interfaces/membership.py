from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from worktrack.database import models

class IProjectMemberRepository(ABC):
    @abstractmethod
    def find(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        """(프로젝트, 사용자) 쌍의 프로젝트 멤버십을 조회합니다."""
        pass

    @abstractmethod
    def create(self, membership_model: models.ProjectMember) -> models.ProjectMember:
        """
        새로운 프로젝트 멤버십을 생성합니다.

        Raises:
            sqlalchemy.exc.IntegrityError: 동일한 멤버십이 이미 존재할 때.
        """
        pass

    @abstractmethod
    def delete(self, membership: models.ProjectMember) -> bool:
        """특정 프로젝트 멤버십을 삭제합니다."""
        pass

    @abstractmethod
    def list_members(self, project_id: int) -> List[Dict[str, Any]]:
        """
        특정 프로젝트에 속한 모든 사용자와 프로젝트 내 역할을 조회합니다.

        Returns:
            사용자 정보(id, name, email, role)와 role_in_project가 포함된 딕셔너리의 리스트.
        """
        pass


class ITeamMemberRepository(ABC):
    @abstractmethod
    def find(self, leader_id: int, user_id: int) -> Optional[models.TeamMember]:
        """(리더, 사용자) 쌍의 팀 멤버십을 조회합니다."""
        pass

    @abstractmethod
    def create(self, membership_model: models.TeamMember) -> models.TeamMember:
        """
        새로운 팀 멤버십을 생성합니다.

        Raises:
            sqlalchemy.exc.IntegrityError: 동일한 멤버십이 이미 존재할 때.
        """
        pass

    @abstractmethod
    def delete(self, membership: models.TeamMember) -> bool:
        """특정 팀 멤버십을 삭제합니다. 프로젝트 멤버십에는 영향을 주지 않습니다."""
        pass

    @abstractmethod
    def list_members(self, leader_id: int) -> List[Dict[str, Any]]:
        """
        리더의 팀에 속한 활성 사용자 목록을 이름순으로 조회합니다.

        Returns:
            사용자 정보(id, name, email, role)와 joined_at이 포함된 딕셔너리의 리스트.
        """
        pass

    @abstractmethod
    def list_leaders_with_teams(self) -> List[models.User]:
        """팀 멤버가 한 명 이상 있는 활성 리더 목록을 조회합니다."""
        pass
