"""Project access resolver: view/manage decisions per principal and project."""

from projecthub.models import db
from projecthub.services.project_access import (
    ProjectAccess,
    can_access_project,
    get_accessible_project_ids,
)


def test_super_admin_has_full_access_everywhere(super_admin, project):
    assert can_access_project(project.id, super_admin.id, "SUPER_ADMIN") == ProjectAccess(True, True)


def test_super_admin_gets_no_access_to_missing_project(super_admin):
    assert can_access_project(9999, super_admin.id, "SUPER_ADMIN") == ProjectAccess(False, False)


def test_super_admin_gets_no_access_to_archived_project(super_admin, project):
    project.is_active = False
    db.session.commit()
    assert can_access_project(project.id, super_admin.id, "SUPER_ADMIN") == ProjectAccess(False, False)


def test_owner_can_view_and_manage(admin, project):
    assert can_access_project(project.id, admin.id, "ADMIN") == ProjectAccess(True, True)


def test_collaborator_member_can_view_but_not_manage(project, collaborator, add_member):
    add_member(project, collaborator)
    assert can_access_project(project.id, collaborator.id, "COLLABORATOR") == ProjectAccess(True, False)


def test_collaborator_non_member_cannot_view_private_project(project, collaborator):
    # Global role alone never opens a private project.
    assert can_access_project(project.id, collaborator.id, "COLLABORATOR") == ProjectAccess(False, False)


def test_admin_non_member_cannot_view_private_project(project, make_user):
    other_admin = make_user("ADMIN")
    assert can_access_project(project.id, other_admin.id, "ADMIN") == ProjectAccess(False, False)


def test_admin_member_can_manage(project, make_user, add_member):
    other_admin = make_user("ADMIN")
    add_member(project, other_admin, member_role="VIEWER")
    assert can_access_project(project.id, other_admin.id, "ADMIN") == ProjectAccess(True, True)


def test_public_project_is_viewable_by_anyone(admin, make_project, client_user):
    public = make_project(admin, name="Public Roadmap", is_public=True)
    assert can_access_project(public.id, client_user.id, "CLIENT") == ProjectAccess(True, False)


def test_inactive_membership_grants_nothing(project, collaborator, add_member):
    add_member(project, collaborator, is_active=False)
    assert can_access_project(project.id, collaborator.id, "COLLABORATOR") == ProjectAccess(False, False)


def test_missing_project_resolves_to_no_access(collaborator):
    assert can_access_project(424242, collaborator.id, "COLLABORATOR") == ProjectAccess(False, False)


def test_archived_project_resolves_to_no_access_even_for_owner(admin, project):
    project.is_active = False
    db.session.commit()
    assert can_access_project(project.id, admin.id, "ADMIN") == ProjectAccess(False, False)


def test_decision_follows_membership_changes(project, collaborator, add_member):
    member = add_member(project, collaborator)
    assert can_access_project(project.id, collaborator.id, "COLLABORATOR").can_view
    member.is_active = False
    db.session.commit()
    assert not can_access_project(project.id, collaborator.id, "COLLABORATOR").can_view


def test_accessible_ids(admin, make_project, collaborator, add_member):
    own = make_project(admin, name="Own")
    public = make_project(admin, name="Public", is_public=True)
    joined = make_project(admin, name="Joined")
    make_project(admin, name="Hidden")
    add_member(joined, collaborator)

    assert get_accessible_project_ids(collaborator.id, "COLLABORATOR") == sorted([public.id, joined.id])
    assert own.id in get_accessible_project_ids(admin.id, "ADMIN")
    assert get_accessible_project_ids(1, "SUPER_ADMIN") is None
