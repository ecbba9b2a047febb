from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship
from ..database import Base

class Module(Base):
    """
    프로젝트 안에서 태스크를 묶는 중간 단계의 작업 단위입니다.
    프로젝트 없이는 존재할 수 없으며, 프로젝트 삭제 시 함께 삭제됩니다.
    """
    __tablename__ = "modules"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    module_name = Column(String, nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    project = relationship("Project", back_populates="modules")
    tasks = relationship("Task", back_populates="module", cascade="all, delete-orphan", passive_deletes=True)
