from typing import List

from worktrack.database import models
from worktrack.repositories.interfaces import (
    IProjectMemberRepository, IProjectRepository, ITeamMemberRepository
)


class MembershipIndex:
    """
    프로젝트 멤버십과 팀 멤버십에 대한 소속 여부 질의를 제공합니다.

    두 관계는 서로 독립적이며 절대 섞지 않습니다. 캐시를 두지 않으므로
    같은 세션에서 방금 기록한 멤버십은 다음 질의에 바로 반영됩니다.
    """

    def __init__(self, project_repo: IProjectRepository, member_repo: IProjectMemberRepository, team_repo: ITeamMemberRepository):
        self.project_repo = project_repo
        self.member_repo = member_repo
        self.team_repo = team_repo

    def is_project_member(self, project_id: int, user_id: int) -> bool:
        return self.member_repo.find(project_id, user_id) is not None

    def projects_owned_by(self, leader_id: int) -> List[models.Project]:
        return self.project_repo.list_by_creator(leader_id)

    def is_team_member(self, leader_id: int, user_id: int) -> bool:
        return self.team_repo.find(leader_id, user_id) is not None

    def projects_visible_to_team(self, leader_id: int) -> List[models.Project]:
        """리더가 소유한 프로젝트와, 리더의 팀 멤버가 프로젝트 멤버로 속한 프로젝트의 합집합."""
        return self.project_repo.list_visible_to_team(leader_id)
