"""Schemas for tasks"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from taskhub.models import TaskStatus
from taskhub.schemas.user import UserSummary


class TaskCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    project_id: int
    assign_to_email: EmailStr


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    assign_to_email: Optional[EmailStr] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskProjectSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: TaskStatus
    project: TaskProjectSummary
    assigned_to: UserSummary
    created_by: UserSummary
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
