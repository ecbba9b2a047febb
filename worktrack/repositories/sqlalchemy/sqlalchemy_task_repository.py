from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from worktrack.database import models
from worktrack.repositories.interfaces import ITaskRepository

def _assigned_task_row(task: models.Task, module: models.Module, project: models.Project) -> Dict[str, Any]:
    return {
        "id": task.id,
        "task_name": task.task_name,
        "description": task.description,
        "status": task.status.value,
        "module_id": module.id,
        "module_name": module.module_name,
        "project_id": project.id,
        "project_title": project.title,
    }

class SqlalchemyTaskRepository(ITaskRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, task_model: models.Task) -> models.Task:
        self.db.add(task_model)
        self.db.flush()
        self.db.refresh(task_model)
        return task_model

    def find_by_id(self, task_id: int) -> Optional[models.Task]:
        return self.db.query(models.Task).filter(models.Task.id == task_id).first()

    def list_by_module_id(self, module_id: int) -> List[models.Task]:
        return self.db.query(models.Task).filter(
            models.Task.module_id == module_id
        ).order_by(models.Task.id.asc()).all()

    def list_by_project_id(self, project_id: int) -> List[models.Task]:
        return self.db.query(models.Task).join(
            models.Module, models.Task.module_id == models.Module.id
        ).filter(models.Module.project_id == project_id).order_by(models.Task.id.asc()).all()

    def _assigned_query(self, user_id: int):
        return self.db.query(models.Task, models.Module, models.Project).join(
            models.Module, models.Task.module_id == models.Module.id
        ).join(
            models.Project, models.Module.project_id == models.Project.id
        ).filter(models.Task.assigned_to == user_id)

    def list_assigned_to(self, user_id: int) -> List[Dict[str, Any]]:
        rows = self._assigned_query(user_id).order_by(models.Task.id.desc()).all()
        return [_assigned_task_row(*row) for row in rows]

    def list_assigned_in_project(self, project_id: int, user_id: int) -> List[Dict[str, Any]]:
        rows = self._assigned_query(user_id).filter(
            models.Project.id == project_id
        ).order_by(models.Task.id.desc()).all()
        return [_assigned_task_row(*row) for row in rows]

    def list_assigned_in_projects_created_by(self, creator_id: int, user_id: int) -> List[Dict[str, Any]]:
        rows = self._assigned_query(user_id).filter(
            models.Project.created_by == creator_id
        ).order_by(models.Task.id.desc()).all()
        return [_assigned_task_row(*row) for row in rows]

    def update(self, task: models.Task, fields: Dict[str, Any]) -> models.Task:
        for key, value in fields.items():
            setattr(task, key, value)
        self.db.flush()
        return task

    def unassign_user(self, user_id: int) -> int:
        return self.db.query(models.Task).filter(
            models.Task.assigned_to == user_id
        ).update({models.Task.assigned_to: None}, synchronize_session="fetch")

    def delete(self, task: models.Task) -> bool:
        if task:
            self.db.delete(task)
            self.db.flush()
            return True
        return False
