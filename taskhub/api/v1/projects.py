"""Project and membership endpoints"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, selectinload

from taskhub.config import settings
from taskhub.database import commit, get_db
from taskhub.dependencies import get_current_user
from taskhub.exceptions import ValidationError
from taskhub.models import MemberRole, Project, ProjectMember, Task, TaskStatus, User
from taskhub.schemas import (
    Message,
    Page,
    ProjectCreate,
    ProjectMemberAdd,
    ProjectMemberResponse,
    ProjectResponse,
    ProjectUpdate,
    UserSummary,
)
from taskhub.services import access_control as access
from taskhub.services.user_store import UserStore
from taskhub.utils.pagination import paginate

router = APIRouter()

logger = logging.getLogger("taskhub.api.projects")


def _serialize_member(member: ProjectMember) -> ProjectMemberResponse:
    return ProjectMemberResponse(
        user=UserSummary.model_validate(member.user),
        role=member.role,
        added_at=member.added_at,
    )


def _serialize_project(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        created_by=UserSummary.model_validate(project.creator),
        members=[_serialize_member(member) for member in project.members],
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _member_projects_query(db: Session, user: User):
    return (
        db.query(Project)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .filter(ProjectMember.user_id == user.id)
        .options(
            selectinload(Project.creator),
            selectinload(Project.members).selectinload(ProjectMember.user),
        )
        .order_by(Project.created_at.desc(), Project.id.desc())
    )


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a project with the caller as its first admin member."""
    name = project_data.name.strip()
    if not name:
        raise ValidationError("Please provide a project name")

    project = Project(
        name=name,
        description=_clean(project_data.description),
        created_by_id=current_user.id,
    )
    project.members.append(ProjectMember(user_id=current_user.id, role=MemberRole.ADMIN))
    db.add(project)
    commit(db, "project creation")
    db.refresh(project)

    logger.info("User %s created project %s", current_user.id, project.id)
    return _serialize_project(project)


@router.get("", response_model=Page[ProjectResponse])
def list_projects(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the projects the caller is a member of, newest first."""
    query = _member_projects_query(db, current_user)
    return paginate(query, page, limit, _serialize_project)


@router.get("/search", response_model=Page[ProjectResponse])
def search_projects(
    q: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Case-insensitive name search restricted to the caller's projects."""
    if not q or not q.strip():
        raise ValidationError("Please provide search query (q parameter)")

    query = _member_projects_query(db, current_user).filter(
        Project.name.icontains(q.strip(), autoescape=True)
    )
    return paginate(query, page, limit, _serialize_project)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = access.get_project_or_404(db, project_id)
    access.ensure_member(project, current_user)
    return _serialize_project(project)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update name/description; admins only. A blank name leaves the name unchanged."""
    project = access.get_project_or_404(db, project_id)
    access.ensure_admin(project, current_user)

    name = _clean(project_data.name)
    if name:
        project.name = name
    if "description" in project_data.model_fields_set:
        project.description = _clean(project_data.description)

    commit(db, "project update")
    db.refresh(project)
    return _serialize_project(project)


@router.delete("/{project_id}", response_model=Message)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a project and every task in it, in one transaction; creator only."""
    project = access.get_project_or_404(db, project_id)
    access.ensure_can_delete_project(project, current_user)

    task_count = len(project.tasks)
    db.delete(project)
    commit(db, "project deletion")

    logger.info("User %s deleted project %s with %d task(s)", current_user.id, project_id, task_count)
    return Message(message="Project and all associated tasks deleted successfully")


@router.post("/{project_id}/members", response_model=ProjectResponse)
def add_member(
    project_id: int,
    member_data: ProjectMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = access.get_project_or_404(db, project_id)
    access.ensure_admin(project, current_user)

    user_to_add = UserStore(db).get_by_email(member_data.email)
    access.ensure_can_add_member(project, user_to_add)

    project.members.append(ProjectMember(user_id=user_to_add.id, role=MemberRole.MEMBER))
    commit(db, "adding member", conflict_message="User is already a member of this project")
    db.refresh(project)

    logger.info("User %s added %s to project %s", current_user.id, user_to_add.id, project.id)
    return _serialize_project(project)


@router.patch("/{project_id}/members/{user_id}/promote", response_model=ProjectResponse)
def promote_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = access.get_project_or_404(db, project_id)
    member = access.ensure_can_promote_member(project, current_user, user_id)

    member.role = MemberRole.ADMIN
    commit(db, "member promotion")
    db.refresh(project)

    logger.info("User %s promoted %s to admin in project %s", current_user.id, user_id, project.id)
    return _serialize_project(project)


@router.delete("/{project_id}/members/{user_id}", response_model=ProjectResponse)
def remove_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = access.get_project_or_404(db, project_id)
    access.ensure_admin(project, current_user)

    open_task_count = 0
    if settings.BLOCK_MEMBER_REMOVAL_WITH_OPEN_TASKS and access.is_member(project, user_id):
        open_task_count = (
            db.query(Task)
            .filter(
                Task.project_id == project.id,
                Task.assigned_to_id == user_id,
                Task.status != TaskStatus.DONE,
            )
            .count()
        )
    member = access.ensure_can_remove_member(
        project,
        current_user,
        user_id,
        open_task_count=open_task_count,
        block_open_tasks=settings.BLOCK_MEMBER_REMOVAL_WITH_OPEN_TASKS,
    )

    project.members.remove(member)
    commit(db, "member removal")
    db.refresh(project)

    logger.info("User %s removed %s from project %s", current_user.id, user_id, project.id)
    return _serialize_project(project)
