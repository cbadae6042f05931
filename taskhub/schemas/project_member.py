"""Schemas for project members"""
from datetime import datetime

from pydantic import BaseModel, EmailStr

from taskhub.models import MemberRole
from taskhub.schemas.user import UserSummary


class ProjectMemberAdd(BaseModel):
    email: EmailStr


class ProjectMemberResponse(BaseModel):
    user: UserSummary
    role: MemberRole
    added_at: datetime

    class Config:
        from_attributes = True
