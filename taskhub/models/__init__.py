"""TaskHub Database Models"""
from taskhub.models.user import User
from taskhub.models.project import Project
from taskhub.models.project_member import MemberRole, ProjectMember
from taskhub.models.task import Task, TaskStatus

__all__ = [
    "User",
    "Project",
    "ProjectMember",
    "MemberRole",
    "Task",
    "TaskStatus",
]
