from typing import Any, Dict

from worktrack.database import models


def _isoformat(value):
    return value.isoformat() if value is not None else None


def user_to_dict(user: models.User) -> Dict[str, Any]:
    """사용자 정보를 딕셔너리로 변환합니다. (비밀번호 제외)"""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": models.Role(user.role).value,
        "active": bool(user.active),
    }


def project_to_dict(project: models.Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "start_date": _isoformat(project.start_date),
        "end_date": _isoformat(project.end_date),
        "status": models.ProjectStatus(project.status).value,
        "progress": project.progress,
        "created_by": project.created_by,
        "created_at": _isoformat(project.created_at),
    }


def module_to_dict(module: models.Module) -> Dict[str, Any]:
    return {
        "id": module.id,
        "project_id": module.project_id,
        "module_name": module.module_name,
        "progress": module.progress,
    }


def task_to_dict(task: models.Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "module_id": task.module_id,
        "task_name": task.task_name,
        "description": task.description,
        "status": models.TaskStatus(task.status).value,
        "assigned_to": task.assigned_to,
    }
