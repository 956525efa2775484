"""
Every project-scoped endpoint answers a caller from another company with
the same cross-tenant denial, whatever the body says, and changes nothing.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from projecthub.models import Project, ProjectMembership, ProjectRole

PROJECT = "/api/v1/projects/{project_id}"
MEMBERS = "/api/v1/projects/{project_id}/members"
MEMBER = "/api/v1/projects/{project_id}/members/{member_id}"

PROJECT_SCOPED_REQUESTS = [
    pytest.param("GET", PROJECT, None, id="get-project"),
    pytest.param("PATCH", PROJECT, {"name": "Hijacked"}, id="update-project"),
    pytest.param("PATCH", PROJECT, {"name": "   "}, id="update-project-blank-name"),
    pytest.param("PATCH", PROJECT, {}, id="update-project-empty-body"),
    pytest.param("DELETE", PROJECT, None, id="delete-project"),
    pytest.param("GET", MEMBERS, None, id="list-members"),
    pytest.param("POST", MEMBERS, {"user_id": "{member_id}", "role": "viewer"}, id="assign-member"),
    pytest.param("POST", MEMBERS, {"user_id": "{member_id}", "role": "boss"}, id="assign-member-bad-role"),
    pytest.param("POST", MEMBERS, {}, id="assign-member-empty-body"),
    pytest.param("PATCH", MEMBER, {"role": "owner"}, id="change-role"),
    pytest.param("PATCH", MEMBER, {"role": "boss"}, id="change-role-bad-role"),
    pytest.param("PATCH", MEMBER, {}, id="change-role-empty-body"),
    pytest.param("DELETE", MEMBER, None, id="remove-member"),
]


def security_events(caplog, event_type: str) -> list:
    return [record for record in caplog.records if getattr(record, "event_type", None) == event_type]


@pytest.fixture
def acme_project(make_project, add_member, acme, acme_admin, acme_member) -> Project:
    project = make_project(acme, owner=acme_admin, name="Acme Roadmap")
    add_member(project, acme_member, ProjectRole.DEVELOPER)
    return project


@pytest.mark.integration
class TestCrossTenantRequests:

    @pytest.mark.parametrize("method, path, payload", PROJECT_SCOPED_REQUESTS)
    def test_other_company_admin_denied(
        self, client: TestClient, db_session: Session, auth_headers, acme_project, acme_admin, acme_member, globex_admin,
        method, path, payload
    ):
        ids = {"project_id": acme_project.id, "member_id": acme_member.id}
        expected_roles = {acme_admin.id: ProjectRole.OWNER, acme_member.id: ProjectRole.DEVELOPER}
        body = {key: value.format(**ids) for key, value in payload.items()} if payload is not None else None

        response = client.request(method, path.format(**ids), json=body, headers=auth_headers(globex_admin))

        assert response.status_code == 403
        data = response.json()
        assert data["detail"] == "Access denied: This project belongs to a different company"
        assert data["type"] == "tenant_isolation_error"
        assert data["reason"] == "cross_tenant"

        db_session.expire_all()
        project = db_session.query(Project).filter(Project.id == ids["project_id"]).one()
        assert project.name == "Acme Roadmap"
        roles = dict(
            db_session.query(ProjectMembership.user_id, ProjectMembership.role)
            .filter(ProjectMembership.project_id == ids["project_id"])
            .all()
        )
        assert roles == expected_roles


@pytest.mark.integration
class TestSecurityEventLogging:

    def test_cross_tenant_request_logged_once(self, client: TestClient, auth_headers, acme_project, globex_admin, caplog):
        response = client.get(f"/api/v1/projects/{acme_project.id}", headers=auth_headers(globex_admin))

        assert response.status_code == 403
        events = security_events(caplog, "tenant_isolation_violation")
        assert len(events) == 1
        assert events[0].user_id == globex_admin.id
        assert events[0].tenant_id == globex_admin.tenant_id

    def test_cross_company_assignment_logged_once(self, client: TestClient, auth_headers, acme_project, acme_admin, globex_admin, caplog):
        response = client.post(
            f"/api/v1/projects/{acme_project.id}/members",
            json={"user_id": globex_admin.id, "role": "viewer"},
            headers=auth_headers(acme_admin),
        )

        assert response.status_code == 403
        events = security_events(caplog, "tenant_isolation_violation")
        assert len(events) == 1
        assert events[0].project_id == acme_project.id
