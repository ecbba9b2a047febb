from dataclasses import dataclass

from worktrack.database import models


@dataclass(frozen=True)
class Actor:
    """
    인증 계층이 검증을 마친 뒤 서비스에 넘겨주는 요청 주체입니다.
    한 요청 안에서는 역할이 바뀌지 않습니다.
    """
    id: int
    role: models.Role
    active: bool = True

    def __post_init__(self):
        # 알 수 없는 역할 문자열은 여기서 ValueError로 거부됩니다.
        object.__setattr__(self, "role", models.Role(self.role))

    @classmethod
    def from_user(cls, user: models.User) -> "Actor":
        return cls(id=user.id, role=user.role, active=bool(user.active))

    @property
    def is_admin(self) -> bool:
        return self.role is models.Role.ADMIN

    @property
    def is_leader(self) -> bool:
        return self.role is models.Role.LEADER

    @property
    def is_member(self) -> bool:
        return self.role is models.Role.MEMBER
