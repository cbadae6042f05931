"""
Project-scoped access control.

Every task belongs to exactly one project, and every project or task action is
gated by the caller's membership and role in that project. The predicates here
work on a project's loaded ``members`` rows; the ``ensure_*`` policies raise a
typed error from ``taskhub.exceptions`` and never return silently on a
violation. Route handlers call the relevant policy before mutating anything.

The caller is always passed in explicitly (a ``User``, a membership row or a
bare id); there is no ambient "current user".
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from taskhub.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskhub.models import MemberRole, Project, ProjectMember, Task

logger = logging.getLogger("taskhub.access")

# Largest value a 64-bit integer primary key can hold; larger ids cannot be bound.
MAX_ID = 2 ** 63 - 1


def normalize_user_id(ref: Any) -> int:
    """Reduce a possibly-populated user reference to its bare integer id.

    Accepts a ``User`` (``.id``), a membership row (``.user_id``), an int, or a
    numeric string. Comparing populated objects directly gives false negatives,
    so every predicate goes through this first.
    """
    if ref is None or isinstance(ref, bool):
        raise TypeError(f"Not a user reference: {ref!r}")
    if isinstance(ref, int):
        return ref
    if isinstance(ref, str):
        return int(ref.strip())
    for attr in ("user_id", "id"):
        value = getattr(ref, attr, None)
        if value is not None:
            return int(value)
    raise TypeError(f"Not a user reference: {ref!r}")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def find_member(project: Project, user: Any) -> Optional[ProjectMember]:
    user_id = normalize_user_id(user)
    for member in project.members:
        if member.user_id == user_id:
            return member
    return None


def is_member(project: Project, user: Any) -> bool:
    return find_member(project, user) is not None


def is_admin(project: Project, user: Any) -> bool:
    member = find_member(project, user)
    return member is not None and member.role == MemberRole.ADMIN


def is_creator(project: Project, user: Any) -> bool:
    return project.created_by_id == normalize_user_id(user)


def is_assignee(task: Task, user: Any) -> bool:
    return task.assigned_to_id == normalize_user_id(user)


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def get_project_or_404(db: Session, project_id: Optional[int]) -> Project:
    if project_id is None:
        raise ValidationError("Project ID is required")
    project = db.get(Project, project_id) if abs(project_id) <= MAX_ID else None
    if project is None:
        raise NotFoundError("Project not found")
    return project


def get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id) if abs(task_id) <= MAX_ID else None
    if task is None:
        raise NotFoundError("Task not found")
    return task


# ---------------------------------------------------------------------------
# Project policies
# ---------------------------------------------------------------------------

def ensure_member(project: Project, user: Any) -> None:
    if not is_member(project, user):
        logger.info("Denied non-member %s on project %s", normalize_user_id(user), project.id)
        raise ForbiddenError("Access denied. You are not a member of this project.")


def ensure_admin(project: Project, user: Any) -> None:
    if not is_admin(project, user):
        logger.info("Denied non-admin %s on project %s", normalize_user_id(user), project.id)
        raise ForbiddenError("Access denied. Only project admins can perform this action.")


def ensure_can_delete_project(project: Project, user: Any) -> None:
    # Admin is not enough; only the creator may delete.
    if not is_creator(project, user):
        raise ForbiddenError("Only the project creator can delete this project")


def ensure_can_add_member(project: Project, target: Any) -> None:
    """Duplicate check for a member add; the caller has already passed ``ensure_admin``."""
    if is_member(project, target):
        raise ConflictError("User is already a member of this project")


def ensure_can_promote_member(project: Project, actor: Any, target: Any) -> ProjectMember:
    ensure_admin(project, actor)
    member = find_member(project, target)
    if member is None:
        raise NotFoundError("User is not a member of this project")
    if member.role == MemberRole.ADMIN:
        raise ConflictError("User is already an admin")
    return member


def ensure_can_remove_member(
    project: Project,
    actor: Any,
    target: Any,
    open_task_count: int = 0,
    block_open_tasks: bool = False,
) -> ProjectMember:
    """Check a member removal.

    With ``block_open_tasks`` set, a member still assigned ``open_task_count``
    unfinished tasks cannot be removed; otherwise those tasks stay assigned to
    a user who is no longer a member.
    """
    ensure_admin(project, actor)
    member = find_member(project, target)
    if member is None:
        raise NotFoundError("User is not a member of this project")
    if is_creator(project, target):
        raise ForbiddenError("Cannot remove the project creator")
    if block_open_tasks and open_task_count > 0:
        raise ConflictError(
            f"User still has {open_task_count} unfinished task(s) in this project; reassign them first"
        )
    return member


# ---------------------------------------------------------------------------
# Task policies
# ---------------------------------------------------------------------------

def ensure_assignable(project: Project, assignee: Any) -> None:
    if not is_member(project, assignee):
        raise ValidationError("Cannot assign task to user who is not a project member")


def visible_assignee_id(project: Project, user: Any) -> Optional[int]:
    """Assignee filter for task listings: ``None`` (all tasks) for admins.

    The caller must already have passed ``ensure_member``.
    """
    if is_admin(project, user):
        return None
    return normalize_user_id(user)


def ensure_can_view_task(project: Project, task: Task, user: Any) -> None:
    ensure_member(project, user)
    if not is_admin(project, user) and not is_assignee(task, user):
        raise ForbiddenError("You can only view your own tasks")


def ensure_can_change_status(task: Task, user: Any) -> None:
    # Exact assignee only; admins cannot force a status change.
    if not is_assignee(task, user):
        raise ForbiddenError("You can only update status of tasks assigned to you")


def ensure_can_edit_task(project: Project, task: Task, user: Any) -> bool:
    """Admin or assignee may edit; returns whether the caller is an admin."""
    admin = is_admin(project, user)
    if not admin and not is_assignee(task, user):
        raise ForbiddenError("You can only update tasks assigned to you or if you are a project admin")
    return admin


def ensure_can_reassign(project: Project, user: Any) -> None:
    """Only admins reassign; the new assignee is checked with ``ensure_assignable``."""
    if not is_admin(project, user):
        raise ForbiddenError("Only project admins can reassign tasks")


def ensure_can_delete_task(project: Project, task: Task, user: Any) -> None:
    if not is_admin(project, user) and not is_assignee(task, user):
        raise ForbiddenError(
            "You can only delete tasks that are assigned to you or if you are a project admin"
        )
