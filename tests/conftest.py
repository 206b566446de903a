"""
Shared fixtures for ExpenseHub tests.

Each test gets a fresh application bound to an in-memory SQLite database and a
temporary receipt store. Fixtures hand out ids rather than ORM objects because
requests made through the test client run in their own app context.
"""
from datetime import date
from types import SimpleNamespace

import pytest

from expensehub import create_app, db
from expensehub.models import Membership, MembershipRole, User
from expensehub.services import company_service
from expensehub.tenant import TenantScope

PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_company(name="Acme", admin_email="admin@acme.com"):
    return company_service.create_company(
        company_name=name,
        admin_name=f"{name} Admin",
        admin_email=admin_email,
        admin_password=PASSWORD,
    )


def make_member(company_id, email, role=MembershipRole.EMPLOYEE):
    user = User(email=email, name=email.split("@")[0].title())
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.flush()
    db.session.add(Membership(user_id=user.id, company_id=company_id, role=role))
    db.session.commit()
    return user


def make_project(company_id, user_id, name="Website", active=True):
    project = TenantScope(company_id, user_id).projects.create(name=name, active=active)
    db.session.commit()
    return project


def expense_payload(project_id, **overrides):
    payload = {
        "projectId": project_id,
        "amountMinor": 4500,
        "currency": "USD",
        "description": "Team lunch",
        "category": "Meals",
        "paidBy": "Personal Card",
        "expenseDate": date(2026, 3, 2).isoformat(),
    }
    payload.update(overrides)
    return payload


def login(app, email, password=PASSWORD):
    """A fresh test client logged in through the JSON API."""
    client = app.test_client()
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return client


def submit_expense(client, project_id, **overrides):
    response = client.post("/api/expenses", json=expense_payload(project_id, **overrides))
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


@pytest.fixture
def acme(app):
    """Acme with an admin, a manager, two employees and an active project."""
    with app.app_context():
        company, admin = make_company()
        manager = make_member(company.id, "manager@acme.com", MembershipRole.MANAGER)
        employee = make_member(company.id, "employee@acme.com")
        other = make_member(company.id, "other@acme.com")
        project = make_project(company.id, admin.id)
        return SimpleNamespace(
            company_id=company.id,
            admin_id=admin.id,
            manager_id=manager.id,
            employee_id=employee.id,
            other_id=other.id,
            project_id=project.id,
            admin_email="admin@acme.com",
            manager_email="manager@acme.com",
            employee_email="employee@acme.com",
            other_email="other@acme.com",
        )


@pytest.fixture
def globex(app):
    with app.app_context():
        company, admin = make_company(name="Globex", admin_email="admin@globex.com")
        employee = make_member(company.id, "employee@globex.com")
        project = make_project(company.id, admin.id, name="Globex Internal")
        return SimpleNamespace(
            company_id=company.id,
            admin_id=admin.id,
            employee_id=employee.id,
            project_id=project.id,
            admin_email="admin@globex.com",
            employee_email="employee@globex.com",
        )
