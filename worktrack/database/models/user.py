import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import relationship
from ..database import Base


class Role(str, enum.Enum):
    """시스템 전역에서 사용자가 가질 수 있는 고정된 역할의 닫힌 집합입니다."""
    ADMIN = "admin"
    LEADER = "leader"
    MEMBER = "member"


class User(Base):
    """
    시스템에 로그인하고 프로젝트, 모듈, 태스크에 접근하는 사용자를 나타냅니다.
    사용자는 정확히 하나의 역할(Role)을 가지며, 역할은 관리자만 변경할 수 있습니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(
        Enum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.MEMBER,
    )
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    project_memberships = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")
    team_memberships = relationship(
        "TeamMember", foreign_keys="TeamMember.user_id", back_populates="user", cascade="all, delete-orphan"
    )
    team_roster = relationship(
        "TeamMember", foreign_keys="TeamMember.leader_id", back_populates="leader", cascade="all, delete-orphan"
    )
