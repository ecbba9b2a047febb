from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from worktrack.database import models
from worktrack.repositories.interfaces import IModuleRepository

class SqlalchemyModuleRepository(IModuleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, module_model: models.Module) -> models.Module:
        self.db.add(module_model)
        self.db.flush()
        self.db.refresh(module_model)
        return module_model

    def find_by_id(self, module_id: int) -> Optional[models.Module]:
        return self.db.query(models.Module).filter(models.Module.id == module_id).first()

    def list_by_project_id(self, project_id: int) -> List[models.Module]:
        return self.db.query(models.Module).filter(
            models.Module.project_id == project_id
        ).order_by(models.Module.id.asc()).all()

    def update(self, module: models.Module, fields: Dict[str, Any]) -> models.Module:
        for key, value in fields.items():
            setattr(module, key, value)
        self.db.flush()
        return module

    def delete(self, module: models.Module) -> bool:
        if module:
            self.db.delete(module)
            self.db.flush()
            return True
        return False
