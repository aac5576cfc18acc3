"""
Shared pytest fixtures for the ProjectHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_project / add_member: entity factories
    - auth_headers: bearer-token headers for a user
    - principal: Principal for a user (service-level tests)
"""

import itertools

import pytest

from projecthub import create_app
from projecthub.auth import Principal
from projecthub.models import db as _db
from projecthub.models.auth import ProjectMember, User
from projecthub.models.project import Project
from projecthub.services.jwt_service import issue_access_token

_email_seq = itertools.count(1)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Tables are recreated per test; a cached maintenance flag from an
        # earlier test must not leak into the next one.
        app.extensions["maintenance_gate"].invalidate()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        app.extensions["maintenance_gate"].invalidate()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    def _make(role="COLLABORATOR", email=None, full_name=None, is_active=True):
        n = next(_email_seq)
        user = User(
            email=email or f"user{n}@projecthub.test",
            full_name=full_name or f"{role.title()} {n}",
            role=role,
            is_active=is_active,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def make_project():
    def _make(owner, name="Website Redesign", is_public=False, is_active=True, with_manager=True):
        project = Project(owner_id=owner.id, name=name, is_public=is_public, is_active=is_active)
        _db.session.add(project)
        _db.session.flush()
        if with_manager:
            _db.session.add(ProjectMember(project_id=project.id, user_id=owner.id, member_role="MANAGER"))
        _db.session.commit()
        return project
    return _make


@pytest.fixture()
def add_member():
    def _add(project, user, member_role="MEMBER", is_active=True, custom_permissions=None):
        member = ProjectMember(
            project_id=project.id,
            user_id=user.id,
            member_role=member_role,
            is_active=is_active,
            custom_permissions=custom_permissions or {},
        )
        _db.session.add(member)
        _db.session.commit()
        return member
    return _add


@pytest.fixture()
def auth_headers(app):
    def _headers(user, role=None):
        token = issue_access_token(user.id, role or user.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture()
def principal():
    def _principal(user):
        return Principal(id=user.id, role=user.role)
    return _principal


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def super_admin(make_user):
    return make_user("SUPER_ADMIN")


@pytest.fixture()
def admin(make_user):
    return make_user("ADMIN")


@pytest.fixture()
def collaborator(make_user):
    return make_user("COLLABORATOR")


@pytest.fixture()
def client_user(make_user):
    return make_user("CLIENT")


@pytest.fixture()
def project(admin, make_project):
    """Private project owned by ``admin`` (who is also its MANAGER)."""
    return make_project(admin)
