"""Demo data for local development.

Creates one company with an admin, a manager and an employee, an active
project, a rate snapshot and a pending expense. Safe to run twice: an existing
demo company is left untouched.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict

from expensehub import db
from expensehub.models import (
    Company,
    ExchangeRateSnapshot,
    ExpenseStatus,
    Membership,
    MembershipRole,
    ProjectAssignment,
    User,
)
from expensehub.services import audit_service, company_service
from expensehub.tenant import TenantScope

logger = logging.getLogger(__name__)

DEMO_COMPANY = "TechCorp Inc."
DEMO_USERS = (
    ("Alice Admin", "admin@techcorp.com", "admin123", MembershipRole.ADMIN),
    ("Bob Manager", "manager@techcorp.com", "manager123", MembershipRole.MANAGER),
    ("Charlie Employee", "employee@techcorp.com", "employee123", MembershipRole.EMPLOYEE),
)
DEMO_RATES = {"EUR": 0.85, "GBP": 0.73, "JPY": 110.25, "CAD": 1.25, "AUD": 1.35}


def seed_demo_data() -> Dict[str, Any]:
    """Insert the demo tenant. Must run inside an application context."""
    existing = Company.query.filter_by(name=DEMO_COMPANY).first()
    if existing is not None:
        logger.info("Demo company already present (id=%s)", existing.id)
        return {"company": existing, "created": False}

    admin_name, admin_email, admin_password, _ = DEMO_USERS[0]
    company, admin = company_service.create_company(
        company_name=DEMO_COMPANY,
        admin_name=admin_name,
        admin_email=admin_email,
        admin_password=admin_password,
        base_currency="USD",
    )
    tenant = TenantScope(company.id, admin.id)

    project = tenant.projects.create(
        name="Website Redesign",
        description="Complete overhaul of company website with modern UI/UX",
        active=True,
    )

    users = {MembershipRole.ADMIN: admin}
    for name, email, password, role in DEMO_USERS[1:]:
        user = User(name=name, email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        db.session.add(Membership(user_id=user.id, company_id=company.id, role=role))
        db.session.add(ProjectAssignment(user_id=user.id, project_id=project.id))
        users[role] = user

    db.session.add(ExchangeRateSnapshot(company_id=company.id, base_currency="USD", rates=DEMO_RATES))

    employee = users[MembershipRole.EMPLOYEE]
    expense = tenant.expenses.create(
        project_id=project.id,
        employee_id=employee.id,
        amount_minor=4500,
        currency="USD",
        description="Team lunch meeting",
        category="Meals",
        paid_by="Personal Card",
        expense_date=date.today(),
        status=ExpenseStatus.PENDING,
    )
    audit_service.record(
        TenantScope(company.id, employee.id),
        "CREATE_EXPENSE",
        "Expense",
        expense.id,
        {"project_id": project.id, "amount_minor": expense.amount_minor, "currency": expense.currency},
    )
    db.session.commit()

    logger.info("Seeded demo company %s with %s users", company.id, len(users))
    return {"company": company, "project": project, "users": users, "expense": expense, "created": True}
