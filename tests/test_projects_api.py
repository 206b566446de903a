"""Project management over the JSON API."""
from expensehub import db
from expensehub.models import AuditLog, Project

from .conftest import login, submit_expense


def test_list_projects_includes_expense_counts(app, acme, globex):
    submit_expense(login(app, acme.employee_email), acme.project_id)

    response = login(app, acme.employee_email).get("/api/projects")

    projects = response.get_json()["data"]
    assert [project["name"] for project in projects] == ["Website"]
    assert projects[0]["expense_count"] == 1


def test_admin_creates_project(app, acme):
    response = login(app, acme.admin_email).post(
        "/api/projects", json={"name": "  Mobile App ", "description": "iOS and Android"}
    )

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["name"] == "Mobile App"
    assert data["active"] is True
    assert data["company_id"] == acme.company_id
    with app.app_context():
        assert AuditLog.query.filter_by(action="CREATE_PROJECT", entity_id=data["id"]).count() == 1


def test_project_name_is_required(app, acme):
    response = login(app, acme.admin_email).post("/api/projects", json={"description": "No name"})

    assert response.status_code == 400
    assert "name" in response.get_json()["details"]


def test_only_admins_create_projects(app, acme):
    for email in (acme.manager_email, acme.employee_email):
        response = login(app, email).post("/api/projects", json={"name": "Nope"})
        assert response.status_code == 403


def test_manager_updates_project(app, acme):
    response = login(app, acme.manager_email).patch(
        f"/api/projects/{acme.project_id}", json={"description": "Marketing site"}
    )

    assert response.status_code == 200
    assert response.get_json()["data"]["description"] == "Marketing site"
    with app.app_context():
        log = AuditLog.query.filter_by(action="UPDATE_PROJECT").one()
        assert log.meta["changes"]["description"] == {"from": None, "to": "Marketing site"}


def test_toggle_flips_or_sets_active(app, acme):
    admin = login(app, acme.admin_email)

    flipped = admin.post(f"/api/projects/{acme.project_id}/toggle")
    explicit = admin.post(f"/api/projects/{acme.project_id}/toggle", json={"active": True})

    assert flipped.get_json()["data"]["active"] is False
    assert flipped.get_json()["message"] == "Project deactivated successfully"
    assert explicit.get_json()["data"]["active"] is True
    with app.app_context():
        assert AuditLog.query.filter_by(action="TOGGLE_PROJECT_STATUS").count() == 2


def test_project_with_expenses_cannot_be_deleted(app, acme):
    submit_expense(login(app, acme.employee_email), acme.project_id)

    response = login(app, acme.admin_email).delete(f"/api/projects/{acme.project_id}")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Cannot delete project with existing expenses"
    with app.app_context():
        assert db.session.get(Project, acme.project_id) is not None


def test_empty_project_is_deleted(app, acme):
    response = login(app, acme.admin_email).delete(f"/api/projects/{acme.project_id}")

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Project, acme.project_id) is None
        assert AuditLog.query.filter_by(action="DELETE_PROJECT").count() == 1


def test_foreign_project_cannot_be_changed(app, acme, globex):
    admin = login(app, acme.admin_email)

    assert admin.patch(f"/api/projects/{globex.project_id}", json={"name": "Ours"}).status_code == 404
    assert admin.delete(f"/api/projects/{globex.project_id}").status_code == 404
