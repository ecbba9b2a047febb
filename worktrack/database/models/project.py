import enum

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from ..database import Base


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Project(Base):
    """
    작업 항목 트리(프로젝트 → 모듈 → 태스크)의 최상위 노드입니다.
    프로젝트를 생성한 리더(또는 관리자)가 영구적인 소유자가 되며,
    progress는 하위 태스크 상태로부터 계산되는 파생 값입니다.
    """
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(
        Enum(ProjectStatus, name="project_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    progress = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    creator = relationship("User")
    modules = relationship("Module", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan", passive_deletes=True)
