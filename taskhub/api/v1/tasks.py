"""Task endpoints"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, selectinload

from taskhub.database import commit, get_db
from taskhub.dependencies import get_current_user
from taskhub.exceptions import ValidationError
from taskhub.models import Project, Task, User
from taskhub.schemas import (
    Message,
    Page,
    TaskCreate,
    TaskProjectSummary,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
    UserSummary,
)
from taskhub.services import access_control as access
from taskhub.services.user_store import UserStore
from taskhub.utils.pagination import paginate

router = APIRouter()

logger = logging.getLogger("taskhub.api.tasks")


def _serialize_task(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        project=TaskProjectSummary.model_validate(task.project),
        assigned_to=UserSummary.model_validate(task.assignee),
        created_by=UserSummary.model_validate(task.creator),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _visible_tasks_query(db: Session, project: Project, user: User):
    """Tasks of ``project`` the caller may see: all for admins, own for members."""
    query = (
        db.query(Task)
        .options(
            selectinload(Task.project),
            selectinload(Task.assignee),
            selectinload(Task.creator),
        )
        .filter(Task.project_id == project.id)
    )
    assignee_id = access.visible_assignee_id(project, user)
    if assignee_id is not None:
        query = query.filter(Task.assigned_to_id == assignee_id)
    return query.order_by(Task.created_at.desc(), Task.id.desc())


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a task in a project; project admins only, assignee must be a member."""
    title = task_data.title.strip()
    if not title:
        raise ValidationError("Please provide title, project, and user email to assign")

    project = access.get_project_or_404(db, task_data.project_id)
    access.ensure_admin(project, current_user)

    assignee = UserStore(db).get_by_email(task_data.assign_to_email)
    access.ensure_assignable(project, assignee)

    task = Task(
        title=title,
        description=task_data.description.strip() if task_data.description is not None else None,
        project=project,
        assigned_to_id=assignee.id,
        created_by_id=current_user.id,
    )
    db.add(task)
    commit(db, "task creation")
    db.refresh(task)

    logger.info("User %s created task %s in project %s", current_user.id, task.id, project.id)
    return _serialize_task(task)


@router.get("", response_model=Page[TaskResponse])
def list_tasks(
    project_id: Optional[int] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List a project's tasks, newest first, filtered by the caller's role."""
    project = access.get_project_or_404(db, project_id)
    access.ensure_member(project, current_user)
    return paginate(_visible_tasks_query(db, project, current_user), page, limit, _serialize_task)


@router.get("/search", response_model=Page[TaskResponse])
def search_tasks(
    q: Optional[str] = None,
    project_id: Optional[int] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not q or not q.strip():
        raise ValidationError("Please provide search query (q parameter)")

    project = access.get_project_or_404(db, project_id)
    access.ensure_member(project, current_user)

    query = _visible_tasks_query(db, project, current_user).filter(
        Task.title.icontains(q.strip(), autoescape=True)
    )
    return paginate(query, page, limit, _serialize_task)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = access.get_task_or_404(db, task_id)
    access.ensure_can_view_task(task.project, task, current_user)
    return _serialize_task(task)


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    task_data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Edit title/description (admin or assignee) and reassign (admin only)."""
    task = access.get_task_or_404(db, task_id)
    project = task.project
    access.ensure_can_edit_task(project, task, current_user)

    new_assignee = None
    if task_data.assign_to_email is not None:
        access.ensure_can_reassign(project, current_user)
        new_assignee = UserStore(db).get_by_email(task_data.assign_to_email)
        access.ensure_assignable(project, new_assignee)

    title = task_data.title.strip() if task_data.title is not None else None
    if title:
        task.title = title
    if "description" in task_data.model_fields_set:
        task.description = task_data.description.strip() if task_data.description is not None else None
    if new_assignee is not None:
        task.assigned_to_id = new_assignee.id

    commit(db, "task update")
    db.refresh(task)
    return _serialize_task(task)


@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    status_data: TaskStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Move a task through todo / in-progress / done; assignee only."""
    task = access.get_task_or_404(db, task_id)
    access.ensure_can_change_status(task, current_user)

    task.status = status_data.status
    commit(db, "task status update")
    db.refresh(task)

    logger.info("User %s set task %s to %s", current_user.id, task.id, task.status.value)
    return _serialize_task(task)


@router.delete("/{task_id}", response_model=Message)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = access.get_task_or_404(db, task_id)
    access.ensure_can_delete_task(task.project, task, current_user)

    db.delete(task)
    commit(db, "task deletion")

    logger.info("User %s deleted task %s", current_user.id, task_id)
    return Message(message="Task deleted successfully")
