"""Schemas for projects"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from taskhub.schemas.project_member import ProjectMemberResponse
from taskhub.schemas.user import UserSummary


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    created_by: UserSummary
    members: List[ProjectMemberResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
