import uuid
from datetime import datetime, timedelta
import pytest
from sqlalchemy.orm import Session

from projecthub.core.exceptions import (
    ConflictError,
    LastOwnerError,
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)
from projecthub.core.memberships import MembershipStore
from projecthub.models import GlobalRole, ProjectMembership, ProjectRole


def roles_of(db_session: Session, project_id: str) -> dict:
    rows = db_session.query(ProjectMembership.user_id, ProjectMembership.role).filter(
        ProjectMembership.project_id == project_id
    ).all()
    return dict(rows)


@pytest.mark.unit
class TestMembershipAssign:

    def setup_method(self):
        self.role = ProjectRole.DEVELOPER

    def test_assign_same_tenant_user(self, db_session: Session, acme, acme_admin, acme_member, make_project):
        project = make_project(acme, owner=acme_admin)
        store = MembershipStore(db_session)

        membership = store.assign(project.id, acme_member.id, self.role)

        assert membership.project_id == project.id
        assert membership.user_id == acme_member.id
        assert membership.role == ProjectRole.DEVELOPER
        assert membership.assigned_at is not None
        assert roles_of(db_session, project.id)[acme_member.id] == ProjectRole.DEVELOPER

    def test_assign_duplicate_conflicts(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.VIEWER)

        with pytest.raises(ConflictError) as exc_info:
            MembershipStore(db_session).assign(project.id, acme_member.id, ProjectRole.OWNER)

        assert exc_info.value.status_code == 409
        assert exc_info.value.reason == "duplicate_membership"
        assert roles_of(db_session, project.id)[acme_member.id] == ProjectRole.VIEWER

    def test_assign_cross_tenant_user(self, db_session: Session, acme, acme_admin, globex_admin, make_project):
        project = make_project(acme, owner=acme_admin)

        with pytest.raises(TenantIsolationError) as exc_info:
            MembershipStore(db_session).assign(project.id, globex_admin.id, ProjectRole.VIEWER)

        assert exc_info.value.detail == "Access denied: Cannot assign users from different companies"
        assert globex_admin.id not in roles_of(db_session, project.id)

    def test_assign_unknown_user(self, db_session: Session, acme, acme_admin, make_project):
        project = make_project(acme, owner=acme_admin)

        with pytest.raises(NotFoundError) as exc_info:
            MembershipStore(db_session).assign(project.id, str(uuid.uuid4()), ProjectRole.VIEWER)

        assert exc_info.value.reason == "principal"

    def test_assign_unknown_project(self, db_session: Session, acme_member):
        with pytest.raises(NotFoundError) as exc_info:
            MembershipStore(db_session).assign(str(uuid.uuid4()), acme_member.id, ProjectRole.VIEWER)

        assert exc_info.value.reason == "project"

    def test_assign_malformed_user_id(self, db_session: Session, acme, make_project):
        project = make_project(acme)

        with pytest.raises(ValidationError):
            MembershipStore(db_session).assign(project.id, "user-1", ProjectRole.VIEWER)


@pytest.mark.unit
class TestMembershipRemove:

    def test_non_admin_cannot_remove_last_owner(self, db_session: Session, acme, acme_member, make_project):
        project = make_project(acme, owner=acme_member)

        with pytest.raises(LastOwnerError) as exc_info:
            MembershipStore(db_session).remove(project.id, acme_member.id, requester_is_admin=False)

        assert exc_info.value.status_code == 400
        assert exc_info.value.reason == "last_owner_violation"
        assert exc_info.value.detail == "Cannot remove the last owner. At least one owner must remain."
        assert roles_of(db_session, project.id) == {acme_member.id: ProjectRole.OWNER}

    def test_admin_may_remove_last_owner(self, db_session: Session, acme, acme_member, make_project):
        project = make_project(acme, owner=acme_member)

        MembershipStore(db_session).remove(project.id, acme_member.id, requester_is_admin=True)

        assert roles_of(db_session, project.id) == {}

    def test_remove_one_of_two_owners(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.OWNER)
        store = MembershipStore(db_session)

        store.remove(project.id, acme_member.id)

        assert store.count_owners(project.id) == 1
        with pytest.raises(LastOwnerError):
            store.remove(project.id, acme_admin.id)

    def test_remove_non_owner(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.VIEWER)

        MembershipStore(db_session).remove(project.id, acme_member.id)

        assert acme_member.id not in roles_of(db_session, project.id)

    def test_remove_missing_membership(self, db_session: Session, acme, acme_admin, acme_member, make_project):
        project = make_project(acme, owner=acme_admin)

        with pytest.raises(NotFoundError) as exc_info:
            MembershipStore(db_session).remove(project.id, acme_member.id)

        assert exc_info.value.reason == "membership"
        assert exc_info.value.detail == "User assignment not found"


@pytest.mark.unit
class TestMembershipChangeRole:

    def test_change_role(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.VIEWER)

        membership = MembershipStore(db_session).change_role(project.id, acme_member.id, ProjectRole.DEVELOPER)

        assert membership.role == ProjectRole.DEVELOPER

    def test_non_admin_cannot_downgrade_only_owner(self, db_session: Session, acme, acme_member, make_project):
        project = make_project(acme, owner=acme_member)

        with pytest.raises(LastOwnerError):
            MembershipStore(db_session).change_role(project.id, acme_member.id, ProjectRole.VIEWER)

        assert roles_of(db_session, project.id)[acme_member.id] == ProjectRole.OWNER

    def test_admin_may_downgrade_only_owner(self, db_session: Session, acme, acme_member, make_project):
        project = make_project(acme, owner=acme_member)

        MembershipStore(db_session).change_role(
            project.id, acme_member.id, ProjectRole.VIEWER, requester_is_admin=True
        )

        assert roles_of(db_session, project.id)[acme_member.id] == ProjectRole.VIEWER

    def test_promote_to_owner_always_allowed(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.DEVELOPER)
        store = MembershipStore(db_session)

        store.change_role(project.id, acme_member.id, ProjectRole.OWNER)

        assert store.count_owners(project.id) == 2

    def test_missing_membership(self, db_session: Session, acme, acme_admin, acme_member, make_project):
        project = make_project(acme, owner=acme_admin)

        with pytest.raises(NotFoundError):
            MembershipStore(db_session).change_role(project.id, acme_member.id, ProjectRole.VIEWER)


@pytest.mark.unit
class TestMembershipListing:

    def test_ordered_by_role_then_assignment(self, db_session: Session, acme, make_user, make_project, add_member):
        project = make_project(acme)
        start = datetime(2024, 1, 1, 12, 0, 0)
        viewer = make_user(acme, email="viewer@acme.com")
        late_owner = make_user(acme, email="late-owner@acme.com")
        developer = make_user(acme, email="dev@acme.com")
        early_owner = make_user(acme, role=GlobalRole.ADMIN, email="early-owner@acme.com")

        add_member(project, viewer, ProjectRole.VIEWER, assigned_at=start)
        add_member(project, late_owner, ProjectRole.OWNER, assigned_at=start + timedelta(minutes=3))
        add_member(project, developer, ProjectRole.DEVELOPER, assigned_at=start + timedelta(minutes=1))
        add_member(project, early_owner, ProjectRole.OWNER, assigned_at=start + timedelta(minutes=2))

        members = MembershipStore(db_session).list_members(project.id)

        assert [m.user_id for m in members] == [early_owner.id, late_owner.id, developer.id, viewer.id]
        assert members[0].user.email == "early-owner@acme.com"

    def test_empty_project(self, db_session: Session, acme, make_project):
        project = make_project(acme)

        assert MembershipStore(db_session).list_members(project.id) == []

    def test_purge_project(self, db_session: Session, acme, acme_admin, acme_member, make_project, add_member):
        project = make_project(acme, owner=acme_admin)
        add_member(project, acme_member, ProjectRole.VIEWER)
        store = MembershipStore(db_session)

        purged = store.purge_project(project.id)
        db_session.commit()

        assert purged == 2
        assert roles_of(db_session, project.id) == {}
