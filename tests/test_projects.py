import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

import taskhub.api.v1.projects as projects
import taskhub.api.v1.tasks as tasks
import taskhub.models as models
import taskhub.schemas as schemas
from taskhub.config import settings
from taskhub.exceptions import ConflictError, ForbiddenError, InternalError, NotFoundError, ValidationError
from taskhub.services import access_control as access
from taskhub.utils.pagination import MAX_OFFSET, resolve_page_params


def _create_project(session: Session, owner: models.User, name: str = "Demo Project", description: str = None):
    project_in = schemas.ProjectCreate(name=name, description=description)
    return projects.create_project(project_in, db=session, current_user=owner)


def _add_member(session: Session, admin: models.User, project_id: int, email: str):
    return projects.add_member(project_id, schemas.ProjectMemberAdd(email=email), db=session, current_user=admin)


def _create_task(session: Session, admin: models.User, project_id: int, assignee: models.User, title: str = "Task"):
    task_in = schemas.TaskCreate(title=title, project_id=project_id, assign_to_email=assignee.email)
    return tasks.create_task(task_in, db=session, current_user=admin)


def test_creator_is_first_member_and_admin(db_session: Session, make_user):
    alice = make_user("Alice")

    created = _create_project(db_session, alice, name="  Backend  ", description=" API work ")

    assert created.name == "Backend"
    assert created.description == "API work"
    assert created.created_by.id == alice.id
    assert [(m.user.id, m.role) for m in created.members] == [(alice.id, models.MemberRole.ADMIN)]

    project = db_session.get(models.Project, created.id)
    assert access.is_admin(project, alice)


def test_create_project_requires_a_name(db_session: Session, make_user):
    alice = make_user("Alice")

    with pytest.raises(ValidationError):
        _create_project(db_session, alice, name="   ")
    assert db_session.query(models.Project).count() == 0


def test_list_projects_only_returns_memberships(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    for name in ("One", "Two", "Three"):
        _create_project(db_session, alice, name=name)
    _create_project(db_session, bob, name="Bob's")

    first_page = projects.list_projects(page=1, limit=2, db=db_session, current_user=alice)
    assert first_page.total == 3
    assert first_page.total_pages == 2
    assert [p.name for p in first_page.items] == ["Three", "Two"]

    second_page = projects.list_projects(page=2, limit=2, db=db_session, current_user=alice)
    assert second_page.count == 1
    assert [p.name for p in second_page.items] == ["One"]

    bob_page = projects.list_projects(page=None, limit=None, db=db_session, current_user=bob)
    assert [p.name for p in bob_page.items] == ["Bob's"]
    assert bob_page.limit == settings.DEFAULT_PAGE_SIZE


def test_search_projects_is_case_insensitive_and_member_scoped(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    _create_project(db_session, alice, name="Website Redesign")
    _create_project(db_session, alice, name="Mobile App")
    _create_project(db_session, bob, name="Website for Bob")

    result = projects.search_projects(q="WEBSITE", page=None, limit=None, db=db_session, current_user=alice)
    assert [p.name for p in result.items] == ["Website Redesign"]

    no_wildcards = projects.search_projects(q="%", page=None, limit=None, db=db_session, current_user=alice)
    assert no_wildcards.total == 0

    with pytest.raises(ValidationError):
        projects.search_projects(q=" ", page=None, limit=None, db=db_session, current_user=alice)


def test_read_project_distinguishes_missing_from_forbidden(db_session: Session, make_user):
    alice = make_user("Alice")
    carol = make_user("Carol")
    created = _create_project(db_session, alice)

    with pytest.raises(ForbiddenError):
        projects.get_project(created.id, db=db_session, current_user=carol)
    with pytest.raises(NotFoundError):
        projects.get_project(created.id + 100, db=db_session, current_user=carol)

    assert projects.get_project(created.id, db=db_session, current_user=alice).id == created.id


def test_update_project_is_admin_only(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice, description="Old")
    _add_member(db_session, alice, created.id, bob.email)

    with pytest.raises(ForbiddenError):
        projects.update_project(created.id, schemas.ProjectUpdate(name="Hijacked"), db=db_session, current_user=bob)

    updated = projects.update_project(
        created.id, schemas.ProjectUpdate(name="Renamed"), db=db_session, current_user=alice
    )
    assert updated.name == "Renamed"
    assert updated.description == "Old"

    cleared = projects.update_project(
        created.id, schemas.ProjectUpdate(name="", description=None), db=db_session, current_user=alice
    )
    assert cleared.name == "Renamed"
    assert cleared.description is None


def test_add_member_validations(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    carol = make_user("Carol")
    created = _create_project(db_session, alice)

    with pytest.raises(NotFoundError):
        _add_member(db_session, alice, created.id, "ghost@example.com")

    result = _add_member(db_session, alice, created.id, "BOB@example.com")
    assert [(m.user.id, m.role) for m in result.members] == [
        (alice.id, models.MemberRole.ADMIN),
        (bob.id, models.MemberRole.MEMBER),
    ]

    with pytest.raises(ConflictError):
        _add_member(db_session, alice, created.id, bob.email)
    with pytest.raises(ForbiddenError):
        _add_member(db_session, bob, created.id, carol.email)
    with pytest.raises(ForbiddenError):
        _add_member(db_session, carol, created.id, carol.email)


def test_promote_then_remove_round_trip(db_session: Session, make_user):
    alice = make_user("Alice")
    mallory = make_user("Mallory")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, mallory.email)

    projects.promote_member(created.id, mallory.id, db=db_session, current_user=alice)
    project = db_session.get(models.Project, created.id)
    assert access.is_admin(project, mallory)

    with pytest.raises(ConflictError):
        projects.promote_member(created.id, mallory.id, db=db_session, current_user=alice)

    # An admin who is not the creator still cannot remove the creator.
    with pytest.raises(ForbiddenError):
        projects.remove_member(created.id, alice.id, db=db_session, current_user=mallory)

    result = projects.remove_member(created.id, mallory.id, db=db_session, current_user=alice)
    assert [m.user.id for m in result.members] == [alice.id]

    with pytest.raises(NotFoundError):
        projects.remove_member(created.id, mallory.id, db=db_session, current_user=alice)


def test_removed_member_keeps_stale_assignment_by_default(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, bob.email)
    task = _create_task(db_session, alice, created.id, bob)

    projects.remove_member(created.id, bob.id, db=db_session, current_user=alice)

    stored = db_session.get(models.Task, task.id)
    assert stored.assigned_to_id == bob.id
    assert not access.is_member(stored.project, bob)


def test_open_tasks_block_removal_when_configured(db_session: Session, make_user, monkeypatch):
    monkeypatch.setattr(settings, "BLOCK_MEMBER_REMOVAL_WITH_OPEN_TASKS", True)
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, bob.email)
    task = _create_task(db_session, alice, created.id, bob)

    with pytest.raises(ConflictError):
        projects.remove_member(created.id, bob.id, db=db_session, current_user=alice)

    tasks.update_task_status(
        task.id, schemas.TaskStatusUpdate(status="done"), db=db_session, current_user=bob
    )
    result = projects.remove_member(created.id, bob.id, db=db_session, current_user=alice)
    assert [m.user.id for m in result.members] == [alice.id]


def test_delete_project_is_creator_only_and_cascades(db_session: Session, make_user):
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, bob.email)
    projects.promote_member(created.id, bob.id, db=db_session, current_user=alice)
    first = _create_task(db_session, alice, created.id, bob, title="First")
    second = _create_task(db_session, alice, created.id, alice, title="Second")

    with pytest.raises(ForbiddenError):
        projects.delete_project(created.id, db=db_session, current_user=bob)

    projects.delete_project(created.id, db=db_session, current_user=alice)

    assert db_session.get(models.Project, created.id) is None
    assert db_session.query(models.Task).filter(models.Task.id.in_([first.id, second.id])).count() == 0
    assert db_session.query(models.ProjectMember).count() == 0
    with pytest.raises(NotFoundError):
        projects.delete_project(created.id, db=db_session, current_user=alice)


def test_failed_project_deletion_rolls_back(db_session: Session, make_user, monkeypatch):
    alice = make_user("Alice")
    created = _create_project(db_session, alice)
    task = _create_task(db_session, alice, created.id, alice)

    flush = db_session.flush

    def _failing_commit():
        flush()
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(InternalError):
        projects.delete_project(created.id, db=db_session, current_user=alice)
    monkeypatch.undo()

    assert db_session.get(models.Project, created.id) is not None
    assert db_session.get(models.Task, task.id) is not None
    assert db_session.query(models.ProjectMember).filter_by(project_id=created.id).count() == 1


def test_duplicate_member_row_becomes_conflict(db_session: Session, make_user, monkeypatch):
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, bob.email)

    # A concurrent add that already passed the in-memory duplicate check.
    monkeypatch.setattr(access, "ensure_can_add_member", lambda project, target: None)
    with pytest.raises(ConflictError):
        _add_member(db_session, alice, created.id, bob.email)

    assert db_session.query(models.ProjectMember).filter_by(project_id=created.id).count() == 2
    project = projects.get_project(created.id, db=db_session, current_user=alice)
    assert [m.user.id for m in project.members] == [alice.id, bob.id]


def test_remove_member_checks_admin_before_counting_tasks(db_session: Session, make_user, monkeypatch):
    monkeypatch.setattr(settings, "BLOCK_MEMBER_REMOVAL_WITH_OPEN_TASKS", True)
    alice = make_user("Alice")
    bob = make_user("Bob")
    created = _create_project(db_session, alice)
    _add_member(db_session, alice, created.id, bob.email)

    def _unexpected_count(self):
        raise AssertionError("open tasks counted before the admin check")

    monkeypatch.setattr(Query, "count", _unexpected_count)
    with pytest.raises(ForbiddenError):
        projects.remove_member(created.id, alice.id, db=db_session, current_user=bob)
    with pytest.raises(NotFoundError):
        projects.remove_member(created.id, 10 ** 30, db=db_session, current_user=alice)


def test_page_params_stay_within_bindable_offsets():
    page, limit = resolve_page_params(10 ** 30, 1000)

    assert limit == settings.MAX_PAGE_SIZE
    assert (page - 1) * limit <= MAX_OFFSET
    assert resolve_page_params(0, -5) == (1, settings.DEFAULT_PAGE_SIZE)
