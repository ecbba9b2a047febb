import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from worktrack.database import models
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.repositories.interfaces import IProjectRepository, ITaskRepository, IUserRepository
from worktrack.services.access_resolver import AccessResolver, Operation, ResourceRef
from worktrack.services.actor import Actor
from worktrack.services.exceptions import (
    AccountDeactivatedError, AuthenticationError, NoFieldsToUpdateError, TokenInvalidError,
    UserAlreadyExistsError, UserHasProjectsError, UserNotFoundError
)
from worktrack.services.serializers import user_to_dict
from worktrack.utils.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

USER_UPDATABLE_FIELDS = ('name', 'email', 'role', 'active')


class IdentityService:
    """사용자 관리(관리자 전용)와 인증 토큰 발급/검증을 제공합니다."""
    _token_cache = {}

    def __init__(
        self,
        user_repo: IUserRepository,
        project_repo: IProjectRepository,
        task_repo: ITaskRepository,
        resolver: AccessResolver,
        uow: UnitOfWork,
        token_ttl_hours: int = 24,
    ):
        """
        IdentityService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            project_repo: 프로젝트 데이터에 접근하기 위한 리포지토리 (사용자 삭제 시 검증용).
            task_repo: 태스크 데이터에 접근하기 위한 리포지토리 (사용자 삭제 시 담당자 해제용).
            resolver: 접근 판정기.
            uow: 작업 단위(트랜잭션) 관리자.
            token_ttl_hours: 발급하는 토큰의 유효 시간.
        """
        self.user_repo = user_repo
        self.project_repo = project_repo
        self.task_repo = task_repo
        self.resolver = resolver
        self.uow = uow
        self.token_ttl = timedelta(hours=token_ttl_hours)

    def _get_user(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user

    def _ensure_email_available(self, email: str, current_user_id: Optional[int] = None):
        existing = self.user_repo.find_by_email(email)
        if existing and existing.id != current_user_id:
            raise UserAlreadyExistsError(f"Email '{email}' is already registered.")

    # ------------------------------------------------------------------
    # 사용자 관리 (관리자 전용)
    # ------------------------------------------------------------------

    def create_user(self, actor: Actor, name: str, email: str, password: str, role: str = "member") -> Dict[str, Any]:
        """
        새로운 사용자를 생성합니다. 비밀번호는 해시하여 저장합니다.

        Raises:
            ForbiddenError: 관리자가 아닐 때.
            UserAlreadyExistsError: 동일한 이메일의 사용자가 이미 존재할 때.
            ValueError: 역할 값이 올바르지 않을 때.
        """
        self.resolver.ensure(actor, ResourceRef.users(), Operation.CREATE)
        if not name or not email or not password:
            raise ValueError("'name', 'email' and 'password' are required.")
        self._ensure_email_available(email)

        new_user = models.User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=models.Role(role),
            active=True,
        )
        with self.uow:
            created_user = self.user_repo.create(new_user)
        logger.info("User %s created with role '%s'", created_user.id, created_user.role.value)
        return user_to_dict(created_user)

    def list_users(self, actor: Actor) -> List[Dict[str, Any]]:
        """모든 사용자의 목록을 조회합니다. (비밀번호 제외)"""
        self.resolver.ensure(actor, ResourceRef.users(), Operation.READ)
        return [user_to_dict(u) for u in self.user_repo.list_all()]

    def get_user(self, actor: Actor, user_id: int) -> Dict[str, Any]:
        self.resolver.ensure(actor, ResourceRef.users(), Operation.READ)
        return user_to_dict(self._get_user(user_id))

    def update_user(self, actor: Actor, user_id: int, **fields) -> Dict[str, Any]:
        """
        사용자의 이름, 이메일, 역할, 활성 여부를 수정합니다.

        Raises:
            ForbiddenError: 관리자가 아닐 때.
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            NoFieldsToUpdateError: 수정할 필드가 없을 때.
            ValueError: 역할 값이 올바르지 않거나 active가 불리언이 아닐 때.
        """
        self.resolver.ensure(actor, ResourceRef.users(), Operation.UPDATE)
        user = self._get_user(user_id)

        changes = {key: value for key, value in fields.items() if key in USER_UPDATABLE_FIELDS}
        if not changes:
            raise NoFieldsToUpdateError("No fields to update.")
        if 'role' in changes:
            changes['role'] = models.Role(changes['role'])
        if 'active' in changes and not isinstance(changes['active'], bool):
            raise ValueError("'active' must be a boolean.")
        if 'email' in changes:
            self._ensure_email_available(changes['email'], user.id)

        with self.uow:
            user = self.user_repo.update(user, changes)
        return user_to_dict(user)

    def delete_user(self, actor: Actor, user_id: int) -> bool:
        """
        사용자를 삭제합니다. 할당된 태스크의 담당자는 비워지고, 프로젝트/팀 멤버십은 함께 삭제됩니다.

        Raises:
            ForbiddenError: 관리자가 아닐 때.
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            UserHasProjectsError: 사용자가 생성한 프로젝트가 남아 있을 때.
        """
        self.resolver.ensure(actor, ResourceRef.users(), Operation.DELETE)
        user = self._get_user(user_id)
        if self.project_repo.count_by_creator(user_id) > 0:
            raise UserHasProjectsError(f"User '{user_id}' still owns projects.")

        with self.uow:
            self.task_repo.unassign_user(user_id)
            self.user_repo.delete(user)
        return True

    # ------------------------------------------------------------------
    # 인증 및 프로필
    # ------------------------------------------------------------------

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        자격증명을 검증하고, 성공 시 인증 토큰을 발급합니다.

        Raises:
            AuthenticationError: 이메일 또는 비밀번호가 올바르지 않을 때.
            AccountDeactivatedError: 비활성화된 계정일 때.
        """
        user = self.user_repo.find_by_email(email)
        if not user:
            raise AuthenticationError("Invalid credentials.")
        if not user.active:
            raise AccountDeactivatedError("Account deactivated.")
        if not verify_password(password or '', user.password_hash):
            raise AuthenticationError("Invalid credentials.")

        token = str(uuid.uuid4())
        expires_at = datetime.now() + self.token_ttl
        self._token_cache[token] = {
            'user_id': user.id,
            'expires_at': expires_at
        }
        return {"token": token, "expires_at": expires_at.isoformat(), "user": user_to_dict(user)}

    def validate_token(self, token: str) -> Actor:
        """
        인증 토큰의 유효성을 검증하고, 요청 주체(Actor)를 반환합니다.

        역할과 활성 여부는 매 요청마다 DB에서 다시 읽으므로, 관리자가 변경한 내용이
        다음 요청부터 바로 반영됩니다.

        Raises:
            TokenInvalidError: 토큰을 찾을 수 없거나 만료되었을 때, 또는 사용자가 삭제되었을 때.
            AccountDeactivatedError: 계정이 비활성화되었을 때.
        """
        token_data = self._token_cache.get(token)
        if not token_data:
            raise TokenInvalidError("Token not found or invalid.")

        if datetime.now() > token_data['expires_at']:
            del self._token_cache[token]
            raise TokenInvalidError("Token has expired.")

        user = self.user_repo.find_by_id(token_data['user_id'])
        if not user:
            del self._token_cache[token]
            raise TokenInvalidError("Token not found or invalid.")
        if not user.active:
            raise AccountDeactivatedError("Account deactivated.")
        return Actor.from_user(user)

    def revoke_token(self, token: str) -> bool:
        return self._token_cache.pop(token, None) is not None

    def get_profile(self, actor: Actor) -> Dict[str, Any]:
        user = self._get_user(actor.id)
        if not user.active:
            raise AccountDeactivatedError("Account deactivated.")
        return user_to_dict(user)

    def update_profile(self, actor: Actor, name: Optional[str] = None, email: Optional[str] = None,
                       password: Optional[str] = None) -> Dict[str, Any]:
        """
        본인의 이름, 이메일, 비밀번호를 수정합니다. 역할과 활성 여부는 바꿀 수 없습니다.

        Raises:
            NoFieldsToUpdateError: 수정할 값이 하나도 없을 때.
            UserAlreadyExistsError: 다른 사용자가 이미 사용 중인 이메일일 때.
        """
        user = self._get_user(actor.id)
        changes = {}
        if name is not None:
            changes['name'] = name
        if email is not None:
            self._ensure_email_available(email, user.id)
            changes['email'] = email
        if password is not None:
            changes['password_hash'] = hash_password(password)
        if not changes:
            raise NoFieldsToUpdateError("No changes.")

        with self.uow:
            user = self.user_repo.update(user, changes)
        return user_to_dict(user)
