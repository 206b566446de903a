"""Company onboarding, member administration, policy and audit history."""
import pytest

from expensehub import db
from expensehub.models import (
    ApprovalPolicy,
    AuditLog,
    Company,
    Membership,
    MembershipRole,
    ProjectAssignment,
    User,
)
from expensehub.services import company_service
from expensehub.services.email_service import EmailService

from .conftest import PASSWORD, login

COMPANY = {
    "companyName": "Acme",
    "adminName": "Ada Admin",
    "adminEmail": "ada@acme.com",
    "adminPassword": "secret",
}


def test_create_company_with_admin_and_default_policy(app, client):
    response = client.post("/api/company/create", json=COMPANY)

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Company created successfully"
    assert body["data"]["company"]["base_currency"] == "USD"

    with app.app_context():
        company = db.session.get(Company, body["data"]["company_id"])
        membership = Membership.query.filter_by(company_id=company.id).one()
        assert membership.role == MembershipRole.ADMIN
        assert membership.user.email == "ada@acme.com"
        assert membership.user.check_password("secret")
        policy = ApprovalPolicy.query.filter_by(company_id=company.id).one()
        assert policy.max_per_employee_minor == 100000
        assert AuditLog.query.filter_by(action="CREATE_COMPANY", company_id=company.id).count() == 1


def test_duplicate_company_or_email_is_rejected(app, client):
    client.post("/api/company/create", json=COMPANY)

    same_name = client.post("/api/company/create", json=dict(COMPANY, adminEmail="bob@acme.com"))
    same_email = client.post("/api/company/create", json=dict(COMPANY, companyName="Other"))

    assert same_name.status_code == 400
    assert same_name.get_json()["error"] == "A company with this name already exists"
    assert same_email.status_code == 400
    assert same_email.get_json()["error"] == "A user with this email already exists"


def test_company_creation_is_atomic(app, client, monkeypatch):
    def fail(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(company_service, "_create_admin_user", fail)

    response = client.post("/api/company/create", json=COMPANY)

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "error": "Internal server error"}
    with app.app_context():
        assert Company.query.count() == 0
        assert User.query.count() == 0


def test_company_payload_is_validated(client):
    response = client.post("/api/company/create", json={"companyName": "Acme", "adminEmail": "not-an-email"})

    body = response.get_json()
    assert response.status_code == 400
    assert {"admin_name", "admin_email", "admin_password"} <= set(body["details"])


def test_admin_creates_member_with_company_email(app, acme):
    admin = login(app, acme.admin_email)

    response = admin.post(
        "/api/users",
        json={"name": "Dana Dev", "username": "dana", "role": "EMPLOYEE", "projectId": acme.project_id},
    )

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["user"]["email"] == "dana@acme.com"
    assert data["role"] == "EMPLOYEE"
    assert data["email_sent"] is True
    assert "password" not in data
    with app.app_context():
        user = User.query.filter_by(email="dana@acme.com").one()
        assert ProjectAssignment.query.filter_by(user_id=user.id, project_id=acme.project_id).count() == 1
        assert AuditLog.query.filter_by(action="CREATE_USER", entity_id=user.id).count() == 1


def test_password_is_returned_when_email_fails(app, acme, monkeypatch):
    monkeypatch.setattr(EmailService, "send_user_credentials", lambda self, credentials: False)
    admin = login(app, acme.admin_email)

    response = admin.post(
        "/api/users",
        json={"name": "Eve", "username": "eve", "role": "MANAGER", "projectId": acme.project_id},
    )

    data = response.get_json()["data"]
    assert data["email_sent"] is False
    assert len(data["password"]) == company_service.PASSWORD_LENGTH
    assert login(app, "eve@acme.com", data["password"]).get("/api/session").status_code == 200


def test_duplicate_member_email_is_rejected(app, acme):
    admin = login(app, acme.admin_email)
    payload = {"name": "Dana", "username": "dana", "role": "EMPLOYEE", "projectId": acme.project_id}
    admin.post("/api/users", json=payload)

    response = admin.post("/api/users", json=payload)

    assert response.status_code == 400
    assert response.get_json()["error"] == "A user with this email already exists"


def test_only_admins_manage_users(app, acme):
    manager = login(app, acme.manager_email)

    assert manager.get("/api/users").status_code == 403
    assert manager.post("/api/users", json={"name": "X", "username": "x", "role": "EMPLOYEE"}).status_code == 403


def test_list_users_is_scoped_to_company(app, acme, globex):
    response = login(app, acme.admin_email).get("/api/users")

    emails = {membership["user"]["email"] for membership in response.get_json()["data"]}
    assert emails == {acme.admin_email, acme.manager_email, acme.employee_email, acme.other_email}


def test_admin_changes_member_role(app, acme):
    with app.app_context():
        membership_id = Membership.query.filter_by(user_id=acme.employee_id).one().id

    response = login(app, acme.admin_email).patch(f"/api/users/{membership_id}/role", json={"role": "MANAGER"})

    assert response.status_code == 200
    assert response.get_json()["data"]["role"] == "MANAGER"
    with app.app_context():
        log = AuditLog.query.filter_by(action="UPDATE_USER_ROLE").one()
        assert log.meta["from"] == "EMPLOYEE"
        assert log.meta["to"] == "MANAGER"


def test_admin_cannot_demote_self(app, acme):
    with app.app_context():
        membership_id = Membership.query.filter_by(user_id=acme.admin_id).one().id

    response = login(app, acme.admin_email).patch(f"/api/users/{membership_id}/role", json={"role": "EMPLOYEE"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "You cannot remove your own admin role"


def test_reset_password_replaces_credentials(app, acme, monkeypatch):
    monkeypatch.setattr(EmailService, "send_user_credentials", lambda self, credentials: False)
    with app.app_context():
        membership_id = Membership.query.filter_by(user_id=acme.employee_id).one().id

    response = login(app, acme.admin_email).post(f"/api/users/{membership_id}/reset-password")

    new_password = response.get_json()["data"]["password"]
    assert new_password != PASSWORD
    assert app.test_client().post(
        "/api/auth/login", json={"email": acme.employee_email, "password": PASSWORD}
    ).status_code == 401
    login(app, acme.employee_email, new_password)


def test_policy_read_and_update(app, acme):
    assert login(app, acme.employee_email).get("/api/policy").get_json()["data"]["type"] == "PERCENTAGE"
    admin = login(app, acme.admin_email)

    response = admin.put("/api/policy", json={"type": "MAJORITY", "maxPerEmployeeMinor": 250000})

    data = response.get_json()["data"]
    assert response.status_code == 200
    assert data["type"] == "MAJORITY"
    assert data["max_per_employee_minor"] == 250000
    with app.app_context():
        log = AuditLog.query.filter_by(action="UPDATE_POLICY").one()
        assert log.meta["changes"]["type"] == {"from": "PERCENTAGE", "to": "MAJORITY"}


def test_percentage_policy_needs_a_threshold(app, acme):
    with app.app_context():
        policy = ApprovalPolicy.query.filter_by(company_id=acme.company_id).one()
        policy.threshold_percent = None
        db.session.commit()

    response = login(app, acme.admin_email).put("/api/policy", json={"type": "PERCENTAGE"})

    assert response.status_code == 400
    assert "threshold_percent" in response.get_json()["details"]


def test_policy_update_requires_admin(app, acme):
    response = login(app, acme.manager_email).put("/api/policy", json={"type": "MAJORITY"})

    assert response.status_code == 403


def test_audit_logs_are_paginated_and_filtered(app, acme, globex):
    admin = login(app, acme.admin_email)
    admin.post("/api/projects", json={"name": "One"})
    admin.post("/api/projects", json={"name": "Two"})

    everything = admin.get("/api/audit-logs").get_json()["data"]
    projects = admin.get("/api/audit-logs?action=CREATE_PROJECT&limit=1").get_json()["data"]

    assert {log["company_id"] for log in everything["audit_logs"]} == {acme.company_id}
    assert projects["pagination"] == {"total": 2, "limit": 1, "offset": 0, "has_more": True}
    assert projects["audit_logs"][0]["action"] == "CREATE_PROJECT"


def test_audit_logs_require_admin(app, acme):
    assert login(app, acme.manager_email).get("/api/audit-logs").status_code == 403


@pytest.mark.parametrize("payload", [{"role": "OWNER"}, {}])
def test_role_update_validates_role(app, acme, payload):
    with app.app_context():
        membership_id = Membership.query.filter_by(user_id=acme.employee_id).one().id

    response = login(app, acme.admin_email).patch(f"/api/users/{membership_id}/role", json=payload)

    assert response.status_code == 400
