"""Manager decisions on pending expenses."""
from expensehub.models import Approval, AuditLog

from .conftest import login, submit_expense


def test_manager_approves_pending_expense(app, acme):
    expense = submit_expense(login(app, acme.employee_email), acme.project_id)
    manager = login(app, acme.manager_email)

    response = manager.post(
        f"/api/expenses/{expense['id']}/approve",
        json={"decision": "APPROVE", "note": "Looks good"},
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Expense approved successfully"
    assert body["data"]["status"] == "APPROVED"
    assert body["data"]["approvals"][0]["decision"] == "APPROVE"
    assert body["data"]["approvals"][0]["note"] == "Looks good"

    with app.app_context():
        approval = Approval.query.one()
        assert approval.manager_id == acme.manager_id
        log = AuditLog.query.filter_by(action="EXPENSE_APPROVE").one()
        assert log.entity_id == expense["id"]
        assert log.meta["decision"] == "APPROVE"


def test_manager_rejects_pending_expense(app, acme):
    expense = submit_expense(login(app, acme.employee_email), acme.project_id)

    response = login(app, acme.admin_email).post(
        f"/api/expenses/{expense['id']}/approve", json={"decision": "REJECT"}
    )

    assert response.status_code == 200
    assert response.get_json()["message"] == "Expense rejected successfully"
    assert response.get_json()["data"]["status"] == "REJECTED"


def test_expense_cannot_be_decided_twice(app, acme):
    expense = submit_expense(login(app, acme.employee_email), acme.project_id)
    manager = login(app, acme.manager_email)
    manager.post(f"/api/expenses/{expense['id']}/approve", json={"decision": "APPROVE"})

    response = manager.post(f"/api/expenses/{expense['id']}/approve", json={"decision": "REJECT"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "Expense is not pending approval"
    with app.app_context():
        assert Approval.query.count() == 1


def test_employee_cannot_decide(app, acme):
    employee = login(app, acme.employee_email)
    expense = submit_expense(employee, acme.project_id)

    response = employee.post(f"/api/expenses/{expense['id']}/approve", json={"decision": "APPROVE"})

    assert response.status_code == 403
    assert response.get_json()["error"] == "Insufficient permissions"


def test_unknown_decision_is_invalid(app, acme):
    expense = submit_expense(login(app, acme.employee_email), acme.project_id)

    response = login(app, acme.manager_email).post(
        f"/api/expenses/{expense['id']}/approve", json={"decision": "MAYBE"}
    )

    assert response.status_code == 400
    assert "decision" in response.get_json()["details"]


def test_manager_cannot_decide_another_companys_expense(app, acme, globex):
    expense = submit_expense(login(app, globex.employee_email), globex.project_id)

    response = login(app, acme.manager_email).post(
        f"/api/expenses/{expense['id']}/approve", json={"decision": "APPROVE"}
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "Expense not found"
    with app.app_context():
        assert Approval.query.count() == 0
