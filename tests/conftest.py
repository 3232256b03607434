"""Shared test fixtures for the Laneboard test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: owner/admin/member/outsider users + a project on the default lanes
- make_task: helper to insert tasks directly with explicit sort keys
"""

from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.security import generate_password_hash

from laneboard import create_app
from laneboard.extensions import db as _db
from laneboard.models.project import Project, ProjectMember
from laneboard.models.task import Task
from laneboard.models.user import User
from laneboard.services.lane_registry import default_lanes

PASSWORD = "password123"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


def make_user(session, email, full_name=None):
    user = User(
        email=email,
        password_hash=generate_password_hash(PASSWORD),
        full_name=full_name,
    )
    session.add(user)
    session.flush()
    return user


@pytest.fixture
def seed_data(app, db_session):
    """Seed users with each role and one project on the default lanes.

    Returns a dict of plain IDs so tests can use them across contexts.
    """
    owner = make_user(db_session, "owner@example.com", "Olive Owner")
    admin = make_user(db_session, "admin@example.com", "Adam Admin")
    member = make_user(db_session, "member@example.com", "Mia Member")
    outsider = make_user(db_session, "outsider@example.com", "Oscar Outsider")

    project = Project(
        name="Launch Plan",
        description="Ship the thing",
        theme_color="#0f766e",
        lanes=default_lanes(),
        created_by_user_id=owner.id,
    )
    db_session.add(project)
    db_session.flush()

    for user, role in ((owner, "owner"), (admin, "admin"), (member, "member")):
        db_session.add(ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            added_by_user_id=owner.id,
        ))

    db_session.commit()

    return {
        "owner_id": owner.id,
        "admin_id": admin.id,
        "member_id": member.id,
        "outsider_id": outsider.id,
        "project_id": project.id,
    }


@pytest.fixture
def make_task(db_session, seed_data):
    """Insert a task directly, bypassing the services.

    Each call gets a later created_at so insertion order is stable.
    """
    counter = {"n": 0}
    base = datetime(2020, 1, 1, tzinfo=timezone.utc)

    def _make(status, sort_order, title=None, project_id=None):
        counter["n"] += 1
        stamp = base + timedelta(seconds=counter["n"])
        task = Task(
            project_id=project_id or seed_data["project_id"],
            title=title or f"Task {counter['n']}",
            description="",
            status=status,
            priority="medium",
            assignee_user_id=seed_data["owner_id"],
            tags=[],
            estimate_points=1,
            sort_order=sort_order,
            created_at=stamp,
            updated_at=stamp,
        )
        db_session.add(task)
        db_session.commit()
        return task

    return _make


def lane_state(project_id, lane_id):
    """[(title, sort_order), ...] for a lane in display order."""
    _db.session.expire_all()
    tasks = (
        Task.query
        .filter_by(project_id=project_id, status=lane_id)
        .order_by(Task.sort_order.asc(), Task.created_at.asc())
        .all()
    )
    return [(t.title, t.sort_order) for t in tasks]
