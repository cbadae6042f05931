"""
Pydantic schemas for request/response validation
"""
from taskhub.schemas.user import UserCreate, UserLogin, UserResponse, UserSummary, Token
from taskhub.schemas.project_member import ProjectMemberAdd, ProjectMemberResponse
from taskhub.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from taskhub.schemas.task import (
    TaskCreate,
    TaskProjectSummary,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)
from taskhub.schemas.common import Message, Page

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserSummary",
    "Token",
    "ProjectMemberAdd",
    "ProjectMemberResponse",
    "ProjectCreate",
    "ProjectResponse",
    "ProjectUpdate",
    "TaskCreate",
    "TaskProjectSummary",
    "TaskResponse",
    "TaskStatusUpdate",
    "TaskUpdate",
    "Message",
    "Page",
]
