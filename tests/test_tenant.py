"""Tenant isolation of the scoped repositories."""
from datetime import date

import pytest

from expensehub import db
from expensehub.errors import BusinessRuleViolation, Forbidden, NotFound
from expensehub.models import AuditLog, Expense, ExpenseStatus, Project
from expensehub.tenant import TenantScope


def _expense(tenant, project_id, employee_id, **overrides):
    data = {
        "project_id": project_id,
        "employee_id": employee_id,
        "amount_minor": 1200,
        "currency": "USD",
        "description": "Taxi",
        "category": "Travel",
        "paid_by": "Cash",
        "expense_date": date(2026, 3, 1),
        "status": ExpenseStatus.PENDING,
    }
    data.update(overrides)
    expense = tenant.expenses.create(**data)
    db.session.commit()
    return expense


def test_projects_are_limited_to_the_scope_company(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)
        names = [project.name for project in acme_scope.projects.find_many()]

        assert names == ["Website"]
        assert acme_scope.projects.find_unique(globex.project_id) is None
        assert acme_scope.projects.count() == 1


def test_conflicting_company_id_filter_is_ignored(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        projects = acme_scope.projects.find_many(company_id=globex.company_id)

        assert [project.id for project in projects] == [acme.project_id]


def test_create_forces_the_scope_company(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        project = acme_scope.projects.create(name="Sneaky", company_id=globex.company_id)
        db.session.commit()

        assert db.session.get(Project, project.id).company_id == acme.company_id


def test_update_cannot_move_a_row_to_another_company(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        acme_scope.projects.update(acme.project_id, name="Renamed", company_id=globex.company_id)
        db.session.commit()

        project = db.session.get(Project, acme.project_id)
        assert project.name == "Renamed"
        assert project.company_id == acme.company_id


def test_update_and_delete_of_foreign_rows_are_not_found(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        with pytest.raises(NotFound):
            acme_scope.projects.update(globex.project_id, name="Hijacked")
        with pytest.raises(NotFound):
            acme_scope.projects.delete(globex.project_id)

        assert db.session.get(Project, globex.project_id).name == "Globex Internal"


def test_expenses_are_scoped_through_their_project(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.employee_id)
        globex_scope = TenantScope(globex.company_id, globex.employee_id)
        mine = _expense(acme_scope, acme.project_id, acme.employee_id)
        theirs = _expense(globex_scope, globex.project_id, globex.employee_id)

        assert [expense.id for expense in acme_scope.expenses.find_many()] == [mine.id]
        assert acme_scope.expenses.find_unique(theirs.id) is None
        assert globex_scope.expenses.count() == 1


def test_expense_against_foreign_project_is_rejected(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.employee_id)

        with pytest.raises(NotFound) as excinfo:
            _expense(acme_scope, globex.project_id, acme.employee_id)

        assert excinfo.value.message == "Project not found"
        db.session.rollback()
        assert Expense.query.count() == 0


def test_expense_cannot_be_moved_to_a_foreign_project(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.employee_id)
        expense = _expense(acme_scope, acme.project_id, acme.employee_id)

        with pytest.raises(NotFound):
            acme_scope.expenses.update(expense.id, project_id=globex.project_id)


def test_approvals_and_receipts_follow_the_expense_scope(app, acme, globex):
    with app.app_context():
        globex_scope = TenantScope(globex.company_id, globex.admin_id)
        acme_scope = TenantScope(acme.company_id, acme.manager_id)
        theirs = _expense(globex_scope, globex.project_id, globex.employee_id)

        with pytest.raises(NotFound):
            acme_scope.approvals.create(expense_id=theirs.id, manager_id=acme.manager_id, decision="APPROVE")
        with pytest.raises(NotFound):
            acme_scope.receipt_files.create(expense_id=theirs.id, url="receipts/x/y.png", mime="image/png", size=1)

        globex_scope.receipt_files.create(expense_id=theirs.id, url="receipts/a/b.png", mime="image/png", size=3)
        db.session.commit()
        assert acme_scope.receipt_files.count() == 0
        assert globex_scope.receipt_files.count() == 1


def test_company_repository_only_sees_own_company(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        assert acme_scope.get_company().name == "Acme"
        assert acme_scope.company.find_unique(globex.company_id) is None
        with pytest.raises(Forbidden):
            acme_scope.company.create(name="Another")
        with pytest.raises(Forbidden):
            acme_scope.company.delete(acme.company_id)


def test_project_assignment_requires_a_member_of_the_company(app, acme, globex):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)

        with pytest.raises(NotFound):
            acme_scope.project_assignments.create(user_id=globex.employee_id, project_id=acme.project_id)

        assignment = acme_scope.project_assignments.create(user_id=acme.employee_id, project_id=acme.project_id)
        db.session.commit()
        assert acme_scope.project_assignments.find_unique(assignment.id) is not None


def test_audit_log_is_append_only(app, acme):
    with app.app_context():
        acme_scope = TenantScope(acme.company_id, acme.admin_id)
        entry = acme_scope.create_audit_log("TEST_ACTION", "Project", acme.project_id, {"note": "x"})
        db.session.commit()

        assert entry.actor_user_id == acme.admin_id
        assert entry.company_id == acme.company_id
        with pytest.raises(BusinessRuleViolation):
            acme_scope.audit_logs.update(entry.id, action="EDITED")
        with pytest.raises(BusinessRuleViolation):
            acme_scope.audit_logs.delete(entry.id)
        assert db.session.get(AuditLog, entry.id).action == "TEST_ACTION"


def test_every_repository_is_bound_to_the_scope(app, acme):
    with app.app_context():
        scope = TenantScope(acme.company_id, acme.admin_id)

        repositories = list(scope.iter_repositories())

        assert len(repositories) == 10
        assert all(repository.scope is scope for repository in repositories)
        assert repr(scope) == f"<TenantScope company_id={acme.company_id} user_id={acme.admin_id}>"
