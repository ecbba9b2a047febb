from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from worktrack.database import models
from worktrack.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.flush()
        self.db.refresh(user_model)
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def list_all(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.name.asc()).all()

    def list_active_by_role(self, role: models.Role) -> List[models.User]:
        return self.db.query(models.User).filter(
            models.User.role == role,
            models.User.active.is_(True)
        ).order_by(models.User.name.asc()).all()

    def list_active_not_in_project(self, project_id: int, exclude_user_id: int) -> List[models.User]:
        member_ids = select(models.ProjectMember.user_id).where(models.ProjectMember.project_id == project_id)
        return self.db.query(models.User).filter(
            models.User.active.is_(True),
            models.User.id != exclude_user_id,
            models.User.id.not_in(member_ids)
        ).order_by(models.User.name.asc()).all()

    def list_active_not_in_team(self, leader_id: int) -> List[models.User]:
        team_ids = select(models.TeamMember.user_id).where(models.TeamMember.leader_id == leader_id)
        return self.db.query(models.User).filter(
            models.User.active.is_(True),
            models.User.id != leader_id,
            models.User.id.not_in(team_ids)
        ).order_by(models.User.name.asc()).all()

    def update(self, user: models.User, fields: Dict[str, Any]) -> models.User:
        for key, value in fields.items():
            setattr(user, key, value)
        self.db.flush()
        return user

    def delete(self, user: models.User) -> bool:
        if user:
            self.db.delete(user)
            self.db.flush()
            return True
        return False
