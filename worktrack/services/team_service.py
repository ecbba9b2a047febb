import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from worktrack.database import models
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.repositories.interfaces import ITaskRepository, ITeamMemberRepository, IUserRepository
from worktrack.services.access_resolver import AccessResolver, Operation, ResourceRef
from worktrack.services.actor import Actor
from worktrack.services.exceptions import LeaderNotFoundError, MembershipAlreadyExistsError, UserNotFoundError
from worktrack.services.membership_index import MembershipIndex
from worktrack.services.serializers import project_to_dict

logger = logging.getLogger(__name__)


def _brief(user: models.User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role.value}


class TeamService:
    """
    리더의 팀 로스터를 관리합니다.

    리더는 자신의 팀만 다룰 수 있고, 관리자는 leader_id를 지정하여 임의의 리더의 팀을
    다룰 수 있습니다. 팀 멤버십은 프로젝트 멤버십과 독립적이며, 팀 멤버에게 프로젝트
    접근 권한을 주지 않습니다.
    """

    def __init__(
        self,
        team_repo: ITeamMemberRepository,
        user_repo: IUserRepository,
        task_repo: ITaskRepository,
        membership_index: MembershipIndex,
        resolver: AccessResolver,
        uow: UnitOfWork,
    ):
        self.team_repo = team_repo
        self.user_repo = user_repo
        self.task_repo = task_repo
        self.membership_index = membership_index
        self.resolver = resolver
        self.uow = uow

    def _target_leader(self, actor: Actor, leader_id: Optional[int], operation: Operation) -> int:
        # 관리자만 다른 리더의 팀을 지정할 수 있습니다. 리더가 넘긴 leader_id는 무시합니다.
        target = (leader_id or actor.id) if actor.is_admin else actor.id
        self.resolver.ensure(actor, ResourceRef.of_team(target), operation)
        return target

    def list_members(self, actor: Actor, leader_id: Optional[int] = None) -> List[Dict[str, Any]]:
        target = self._target_leader(actor, leader_id, Operation.READ)
        return self.team_repo.list_members(target)

    def list_available_users(self, actor: Actor, leader_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """팀에 아직 속하지 않은 활성 사용자 목록을 조회합니다. (리더 본인 제외)"""
        target = self._target_leader(actor, leader_id, Operation.READ)
        return [_brief(u) for u in self.user_repo.list_active_not_in_team(target)]

    def add_member(self, actor: Actor, user_id: int, leader_id: Optional[int] = None) -> bool:
        """
        사용자를 리더의 팀에 추가합니다.

        Raises:
            ForbiddenError: 관리자나 리더가 아닐 때.
            UserNotFoundError: 추가할 사용자를 찾을 수 없을 때.
            MembershipAlreadyExistsError: 이미 팀 멤버일 때.
        """
        target = self._target_leader(actor, leader_id, Operation.CREATE)
        if not self.user_repo.find_by_id(user_id):
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        if self.membership_index.is_team_member(target, user_id):
            raise MembershipAlreadyExistsError("User already in team.")
        try:
            with self.uow:
                self.team_repo.create(models.TeamMember(leader_id=target, user_id=user_id))
        except IntegrityError as e:
            raise MembershipAlreadyExistsError("User already in team.") from e
        logger.info("User %s added to team of leader %s", user_id, target)
        return True

    def remove_member(self, actor: Actor, user_id: int, leader_id: Optional[int] = None) -> bool:
        """팀 멤버십만 제거합니다. 해당 사용자의 프로젝트 멤버십은 그대로 유지됩니다."""
        target = self._target_leader(actor, leader_id, Operation.DELETE)
        with self.uow:
            self.team_repo.delete(self.team_repo.find(target, user_id))
        return True

    def list_member_tasks(self, actor: Actor, user_id: int, leader_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """리더가 생성한 프로젝트들에서 특정 사용자에게 할당된 태스크 목록을 조회합니다."""
        target = self._target_leader(actor, leader_id, Operation.READ)
        return self.task_repo.list_assigned_in_projects_created_by(target, user_id)

    def list_team_projects(self, actor: Actor, leader_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        리더의 팀과 연관된 프로젝트 목록을 조회합니다. (조회 전용)

        리더가 생성한 프로젝트와, 팀 멤버가 프로젝트 멤버로 속한 프로젝트를 포함합니다.
        이 목록에 보인다고 해서 해당 프로젝트의 수정 권한이 생기지는 않습니다.
        """
        target = self._target_leader(actor, leader_id, Operation.READ)
        return [project_to_dict(p) for p in self.membership_index.projects_visible_to_team(target)]

    # ------------------------------------------------------------------
    # 관리자 전용
    # ------------------------------------------------------------------

    def list_all_teams(self, actor: Actor) -> List[Dict[str, Any]]:
        """팀 멤버가 있는 모든 리더와 각 팀의 멤버 목록을 조회합니다."""
        self.resolver.ensure(actor, ResourceRef.of_team(None), Operation.READ)
        teams = []
        for leader in self.team_repo.list_leaders_with_teams():
            members = self.team_repo.list_members(leader.id)
            teams.append({
                "leader": {"id": leader.id, "name": leader.name, "email": leader.email},
                "members": members,
                "member_count": len(members),
            })
        return teams

    def get_team_details(self, actor: Actor, leader_id: int) -> Dict[str, Any]:
        """
        특정 리더의 팀 멤버와 팀 관련 프로젝트를 조회합니다.

        Raises:
            ForbiddenError: 관리자가 아닐 때.
            LeaderNotFoundError: 해당 ID의 리더를 찾을 수 없을 때.
        """
        self.resolver.ensure(actor, ResourceRef.of_team(None), Operation.READ)
        leader = self.user_repo.find_by_id(leader_id)
        if not leader or leader.role is not models.Role.LEADER:
            raise LeaderNotFoundError(f"Leader with id '{leader_id}' not found.")

        members = self.team_repo.list_members(leader_id)
        projects = [project_to_dict(p) for p in self.membership_index.projects_visible_to_team(leader_id)]
        return {
            "leader": {**_brief(leader), "active": bool(leader.active)},
            "members": members,
            "member_count": len(members),
            "projects": projects,
            "project_count": len(projects),
        }

    def list_leaders(self, actor: Actor) -> List[Dict[str, Any]]:
        """팀 배정에 사용할 수 있는 활성 리더 목록을 조회합니다."""
        self.resolver.ensure(actor, ResourceRef.of_team(None), Operation.READ)
        return [_brief(u) for u in self.user_repo.list_active_by_role(models.Role.LEADER)]
