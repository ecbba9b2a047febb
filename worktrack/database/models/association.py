from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from ..database import Base

class ProjectMember(Base):
    """
    사용자(User)와 프로젝트(Project) 사이의 다대다(many-to-many) 관계를 연결하는 연관 테이블입니다.
    멤버에게 해당 프로젝트 하나에 대한 조회 권한을 부여하며, 팀 멤버십과는 독립적입니다.
    """
    __tablename__ = 'project_members'
    project_id = Column(Integer, ForeignKey('projects.id', ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), primary_key=True)
    role_in_project = Column(String, nullable=True)

    project = relationship("Project", back_populates="members")
    user = relationship("User", back_populates="project_memberships")

class TeamMember(Base):
    """
    리더(leader)와 사용자 사이의 팀 로스터 관계입니다.
    어떤 프로젝트와도 무관하며, 리더의 프로젝트 가시성을 넓히는 용도로만 사용됩니다.
    (leader_id, user_id) 쌍은 유일해야 합니다.
    """
    __tablename__ = 'team_members'
    __table_args__ = (UniqueConstraint('leader_id', 'user_id', name='uniq_team_member'),)
    id = Column(Integer, primary_key=True, index=True)
    leader_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    leader = relationship("User", foreign_keys=[leader_id], back_populates="team_roster")
    user = relationship("User", foreign_keys=[user_id], back_populates="team_memberships")
