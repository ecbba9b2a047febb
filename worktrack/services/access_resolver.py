import enum
import logging
from dataclasses import dataclass
from typing import Optional

from worktrack.database import models
from worktrack.services.actor import Actor
from worktrack.services.exceptions import ForbiddenError
from worktrack.services.membership_index import MembershipIndex

logger = logging.getLogger(__name__)


class ResourceKind(str, enum.Enum):
    PROJECT = "project"
    MODULE = "module"
    TASK = "task"
    PROJECT_MEMBER = "project_member"
    TEAM = "team"
    USER = "user"


class Operation(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


@dataclass(frozen=True)
class ResourceRef:
    """
    판정 대상 리소스에 대해 접근 판정에 필요한 최소한의 정보만 담습니다.

    Attributes:
        kind: 리소스 종류.
        project_id: 리소스가 속한(또는 리소스 자체인) 프로젝트 ID. 새 프로젝트 생성 시 None.
        project_owner_id: 해당 프로젝트를 생성한 사용자 ID.
        task_assignee_id: TASK인 경우 담당자 ID.
        leader_id: TEAM인 경우 대상 팀의 리더 ID. None이면 전체 팀 관리(관리자 전용).
    """
    kind: ResourceKind
    project_id: Optional[int] = None
    project_owner_id: Optional[int] = None
    task_assignee_id: Optional[int] = None
    leader_id: Optional[int] = None

    @classmethod
    def new_project(cls) -> "ResourceRef":
        return cls(ResourceKind.PROJECT)

    @classmethod
    def of_project(cls, project: models.Project, kind: ResourceKind = ResourceKind.PROJECT) -> "ResourceRef":
        return cls(kind, project_id=project.id, project_owner_id=project.created_by)

    @classmethod
    def of_module(cls, project: models.Project) -> "ResourceRef":
        return cls.of_project(project, ResourceKind.MODULE)

    @classmethod
    def of_task(cls, project: models.Project, task: Optional[models.Task] = None) -> "ResourceRef":
        return cls(
            ResourceKind.TASK,
            project_id=project.id,
            project_owner_id=project.created_by,
            task_assignee_id=task.assigned_to if task is not None else None,
        )

    @classmethod
    def of_team(cls, leader_id: Optional[int]) -> "ResourceRef":
        return cls(ResourceKind.TEAM, leader_id=leader_id)

    @classmethod
    def users(cls) -> "ResourceRef":
        return cls(ResourceKind.USER)


_PROJECT_TREE = (ResourceKind.PROJECT, ResourceKind.MODULE, ResourceKind.TASK)


class AccessResolver:
    """
    (요청 주체, 리소스, 요청 동작)에 대해 허용/거부를 판정하는 단일 결정 테이블입니다.

    decide()는 부수 효과가 없고, 올바른 형태의 입력에 대해 예외를 던지지 않습니다.
    리소스 존재 여부(NotFound) 확인은 호출하는 서비스가 판정 전에 먼저 수행합니다.
    """

    def __init__(self, membership_index: MembershipIndex):
        self.membership_index = membership_index

    def decide(self, actor: Actor, resource: ResourceRef, operation: Operation) -> Decision:
        decision = self._decide(actor, resource, operation)
        if not decision.allowed:
            logger.debug(
                "Denied %s %s on %s for user %s (%s)",
                operation.value, resource.kind.value, resource.project_id, actor.id, actor.role.value
            )
        return decision

    def ensure(self, actor: Actor, resource: ResourceRef, operation: Operation):
        """
        판정 결과가 거부이면 ForbiddenError로 바꿔 올립니다.

        Raises:
            ForbiddenError: 판정 결과가 DENY일 때.
        """
        if not self.decide(actor, resource, operation).allowed:
            raise ForbiddenError("Forbidden")

    def _decide(self, actor: Actor, resource: ResourceRef, operation: Operation) -> Decision:
        # 1. 관리자는 모든 리소스에 접근 가능
        if actor.is_admin:
            return Decision.ALLOW

        # 2. 사용자 관리는 관리자 전용
        if resource.kind is ResourceKind.USER:
            return Decision.DENY

        # 3. 팀 로스터: 리더는 자기 팀만 관리 가능
        if resource.kind is ResourceKind.TEAM:
            return _allow_if(actor.is_leader and resource.leader_id == actor.id)

        # 4. 프로젝트 생성: 관리자 또는 리더
        if resource.kind is ResourceKind.PROJECT and operation is Operation.CREATE:
            return _allow_if(actor.is_leader)

        # 5. 리더: 자신이 생성한 프로젝트와 그 하위 리소스만 (멤버십으로는 절대 부여되지 않음)
        if actor.is_leader:
            return _allow_if(resource.project_owner_id is not None and resource.project_owner_id == actor.id)

        # 6. 멤버: 프로젝트 멤버십이 있으면 조회 가능, 태스크 수정은 본인에게 할당된 경우만
        if actor.is_member and resource.kind in _PROJECT_TREE:
            if operation is Operation.READ:
                return _allow_if(
                    resource.project_id is not None
                    and self.membership_index.is_project_member(resource.project_id, actor.id)
                )
            if resource.kind is ResourceKind.TASK and operation is Operation.UPDATE:
                # 할당 자체가 프로젝트 멤버십과 독립적인 충분한 권한입니다.
                return _allow_if(resource.task_assignee_id is not None and resource.task_assignee_id == actor.id)

        return Decision.DENY


def _allow_if(condition: bool) -> Decision:
    return Decision.ALLOW if condition else Decision.DENY
