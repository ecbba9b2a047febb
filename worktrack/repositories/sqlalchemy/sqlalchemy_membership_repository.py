from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from worktrack.database import models
from worktrack.repositories.interfaces import IProjectMemberRepository, ITeamMemberRepository

class SqlalchemyProjectMemberRepository(IProjectMemberRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find(self, project_id: int, user_id: int) -> Optional[models.ProjectMember]:
        return self.db.query(models.ProjectMember).filter(
            models.ProjectMember.project_id == project_id,
            models.ProjectMember.user_id == user_id
        ).first()

    def create(self, membership_model: models.ProjectMember) -> models.ProjectMember:
        # 중복이면 기본 키 제약 위반(IntegrityError)이 그대로 올라갑니다.
        self.db.add(membership_model)
        self.db.flush()
        return membership_model

    def delete(self, membership: models.ProjectMember) -> bool:
        if membership:
            self.db.delete(membership)
            self.db.flush()
            return True
        return False

    def list_members(self, project_id: int) -> List[Dict[str, Any]]:
        rows = self.db.query(models.ProjectMember, models.User).join(
            models.User, models.ProjectMember.user_id == models.User.id
        ).filter(models.ProjectMember.project_id == project_id).order_by(models.User.name.asc()).all()

        members = []
        for membership, user in rows:
            members.append({
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "role": user.role.value,
                "role_in_project": membership.role_in_project
            })
        return members

class SqlalchemyTeamMemberRepository(ITeamMemberRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find(self, leader_id: int, user_id: int) -> Optional[models.TeamMember]:
        return self.db.query(models.TeamMember).filter(
            models.TeamMember.leader_id == leader_id,
            models.TeamMember.user_id == user_id
        ).first()

    def create(self, membership_model: models.TeamMember) -> models.TeamMember:
        # (leader_id, user_id) 유일 제약이 동시 추가 경쟁을 막아줍니다.
        self.db.add(membership_model)
        self.db.flush()
        self.db.refresh(membership_model)
        return membership_model

    def delete(self, membership: models.TeamMember) -> bool:
        if membership:
            self.db.delete(membership)
            self.db.flush()
            return True
        return False

    def list_members(self, leader_id: int) -> List[Dict[str, Any]]:
        rows = self.db.query(models.TeamMember, models.User).join(
            models.User, models.TeamMember.user_id == models.User.id
        ).filter(
            models.TeamMember.leader_id == leader_id,
            models.User.active.is_(True)
        ).order_by(models.User.name.asc()).all()

        return [{
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
            "joined_at": membership.created_at.isoformat() if membership.created_at else None
        } for membership, user in rows]

    def list_leaders_with_teams(self) -> List[models.User]:
        return self.db.query(models.User).join(
            models.TeamMember, models.TeamMember.leader_id == models.User.id
        ).filter(
            models.User.role == models.Role.LEADER,
            models.User.active.is_(True)
        ).distinct().order_by(models.User.name.asc()).all()
