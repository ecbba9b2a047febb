from typing import Any, Dict, List, Optional
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from worktrack.database import models
from worktrack.repositories.interfaces import IProjectRepository

class SqlalchemyProjectRepository(IProjectRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, project_model: models.Project) -> models.Project:
        self.db.add(project_model)
        self.db.flush()
        self.db.refresh(project_model)
        return project_model

    def find_by_id(self, project_id: int) -> Optional[models.Project]:
        return self.db.query(models.Project).filter(models.Project.id == project_id).first()

    def _newest_first(self, query):
        return query.order_by(models.Project.created_at.desc(), models.Project.id.desc())

    def list_all(self) -> List[models.Project]:
        return self._newest_first(self.db.query(models.Project)).all()

    def list_by_creator(self, user_id: int) -> List[models.Project]:
        query = self.db.query(models.Project).filter(models.Project.created_by == user_id)
        return self._newest_first(query).all()

    def list_for_member(self, user_id: int) -> List[models.Project]:
        query = self.db.query(models.Project).join(
            models.ProjectMember, models.ProjectMember.project_id == models.Project.id
        ).filter(models.ProjectMember.user_id == user_id)
        return self._newest_first(query).all()

    def list_visible_to_team(self, leader_id: int) -> List[models.Project]:
        team_user_ids = select(models.TeamMember.user_id).where(models.TeamMember.leader_id == leader_id)
        team_project_ids = select(models.ProjectMember.project_id).where(
            models.ProjectMember.user_id.in_(team_user_ids)
        )
        query = self.db.query(models.Project).filter(or_(
            models.Project.created_by == leader_id,
            models.Project.id.in_(team_project_ids)
        ))
        return self._newest_first(query).all()

    def count_by_creator(self, user_id: int) -> int:
        return self.db.query(models.Project).filter(models.Project.created_by == user_id).count()

    def update(self, project: models.Project, fields: Dict[str, Any]) -> models.Project:
        for key, value in fields.items():
            setattr(project, key, value)
        self.db.flush()
        return project

    def save_progress(self, project_id: int, project_progress: int, module_progress: Dict[int, int]):
        # 세션에 이미 로드된 객체들도 새 값을 보도록 ORM 객체를 통해 갱신하고, flush 한 번으로 내보냅니다.
        modules = self.db.query(models.Module).filter(models.Module.project_id == project_id).all()
        for module in modules:
            if module.id in module_progress:
                module.progress = module_progress[module.id]
        project = self.find_by_id(project_id)
        if project:
            project.progress = project_progress
        self.db.flush()

    def delete(self, project: models.Project) -> bool:
        if project:
            self.db.delete(project)
            self.db.flush()
            return True
        return False
