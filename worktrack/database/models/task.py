import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship
from ..database import Base

class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

class Task(Base):
    """
    작업 트리의 말단 단위입니다. status가 진행률 집계를 결정하는 유일한 입력이며,
    assigned_to는 사용자에 대한 약한 참조(사용자 삭제 시 NULL)입니다.
    """
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    task_name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    assigned_to = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    module = relationship("Module", back_populates="tasks")
    assignee = relationship("User")
