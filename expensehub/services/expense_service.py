"""Expense submission and approval workflow.

An expense starts PENDING and moves once to APPROVED or REJECTED. Only the
submitting employee may change or withdraw it, and only while it is pending.
Every mutation writes an audit entry in the same transaction.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from expensehub import db
from expensehub.errors import BusinessRuleViolation, Forbidden, InvalidRequest, NotFound
from expensehub.models import (
    ApprovalDecision,
    ApprovalPolicy,
    Expense,
    ExpenseStatus,
    MembershipRole,
    Project,
)
from expensehub.services import audit_service, currency_service, storage_service
from expensehub.tenant import TenantScope

if TYPE_CHECKING:
    from expensehub.auth.session import AuthSession

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
RECENT_LIMIT = 5

UPDATABLE_FIELDS = (
    "project_id",
    "amount_minor",
    "currency",
    "description",
    "category",
    "paid_by",
    "expense_date",
)


def _validate_amount(amount_minor: Any) -> int:
    if isinstance(amount_minor, bool) or not isinstance(amount_minor, int) or amount_minor <= 0:
        raise InvalidRequest("Invalid amount", details={"amount_minor": ["Must be a positive integer in minor units."]})
    return amount_minor


def _active_project(tenant: TenantScope, project_id: int) -> Project:
    project = tenant.projects.find_unique_or_raise(project_id)
    if not project.active:
        raise BusinessRuleViolation("Project is inactive")
    return project


def _company_policy(tenant: TenantScope) -> Optional[ApprovalPolicy]:
    return tenant.approval_policies.find_first(order_by=ApprovalPolicy.id)


def _check_cap(tenant: TenantScope, amount_minor: int) -> None:
    policy = _company_policy(tenant)
    if policy and policy.max_per_employee_minor and amount_minor > policy.max_per_employee_minor:
        limit = currency_service.format_minor(policy.max_per_employee_minor)
        raise BusinessRuleViolation(f"Amount exceeds maximum per employee limit of {limit}")


def _audit_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, ExpenseStatus):
        return value.value
    return value


def _owned_pending_expense(tenant: TenantScope, session: AuthSession, expense_id: int) -> Expense:
    expense = tenant.expenses.find_unique(expense_id)
    if expense is None or expense.employee_id != session.user_id:
        raise NotFound("Expense not found")
    if not expense.is_pending:
        raise BusinessRuleViolation("Only pending expenses can be changed")
    return expense


def _attach_receipts(tenant: TenantScope, expense: Expense, keys: Iterable[str]) -> None:
    for key in keys:
        stored = storage_service.object_metadata(key)
        if stored is None:
            logger.warning("Receipt %s referenced by expense %s was never uploaded", key, expense.id)
            mime, size = storage_service.DEFAULT_MIME, 0
        else:
            mime, size = stored.mime, stored.size
        tenant.receipt_files.create(expense_id=expense.id, url=key, mime=mime, size=size)


def create_expense(tenant: TenantScope, session: AuthSession, data: Dict[str, Any]) -> Expense:
    amount_minor = _validate_amount(data.get("amount_minor"))
    project = _active_project(tenant, data.get("project_id"))
    _check_cap(tenant, amount_minor)

    expense = tenant.expenses.create(
        project_id=project.id,
        employee_id=session.user_id,
        amount_minor=amount_minor,
        currency=(data.get("currency") or "USD").upper(),
        description=data["description"],
        category=data["category"],
        paid_by=data["paid_by"],
        expense_date=data["expense_date"],
        status=ExpenseStatus.PENDING,
    )
    _attach_receipts(tenant, expense, data.get("receipt_file_keys") or [])

    audit_service.record(
        tenant,
        "CREATE_EXPENSE",
        "Expense",
        expense.id,
        {
            "project_id": project.id,
            "amount_minor": amount_minor,
            "currency": expense.currency,
            "description": expense.description,
        },
    )
    db.session.commit()
    logger.info("Expense %s submitted by user %s", expense.id, session.user_id)
    return expense


def list_expenses(
    tenant: TenantScope,
    session: AuthSession,
    filters: Optional[Dict[str, Any]] = None,
) -> Tuple[List[Expense], Dict[str, Any]]:
    """Expenses visible to the caller, newest first, with pagination info."""
    filters = filters or {}
    criteria = []
    filter_by: Dict[str, Any] = {}

    if session.role == MembershipRole.EMPLOYEE or filters.get("mine"):
        filter_by["employee_id"] = session.user_id

    status = filters.get("status")
    if status:
        filter_by["status"] = status if isinstance(status, ExpenseStatus) else ExpenseStatus(status)
    if filters.get("project_id"):
        filter_by["project_id"] = filters["project_id"]
    if filters.get("start_date"):
        criteria.append(Expense.expense_date >= filters["start_date"])
    if filters.get("end_date"):
        criteria.append(Expense.expense_date <= filters["end_date"])

    limit = filters.get("limit") or DEFAULT_PAGE_SIZE
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    offset = max(0, int(filters.get("offset") or 0))

    total = tenant.expenses.count(*criteria, **filter_by)
    expenses = tenant.expenses.find_many(
        *criteria,
        order_by=(Expense.created_at.desc(), Expense.id.desc()),
        limit=limit,
        offset=offset,
        **filter_by,
    )
    pagination = {
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(expenses) < total,
    }
    return expenses, pagination


def get_expense(tenant: TenantScope, session: AuthSession, expense_id: int) -> Expense:
    expense = tenant.expenses.find_unique_or_raise(expense_id)
    if session.role == MembershipRole.EMPLOYEE and expense.employee_id != session.user_id:
        raise NotFound("Expense not found")
    return expense


def update_expense(
    tenant: TenantScope,
    session: AuthSession,
    expense_id: int,
    data: Dict[str, Any],
) -> Expense:
    expense = _owned_pending_expense(tenant, session, expense_id)

    updates = {field: data[field] for field in UPDATABLE_FIELDS if data.get(field) is not None}
    if "amount_minor" in updates:
        _check_cap(tenant, _validate_amount(updates["amount_minor"]))
    if "project_id" in updates and updates["project_id"] != expense.project_id:
        _active_project(tenant, updates["project_id"])
    if "currency" in updates:
        updates["currency"] = updates["currency"].upper()

    changes = {
        field: {"from": _audit_value(getattr(expense, field)), "to": _audit_value(value)}
        for field, value in updates.items()
        if getattr(expense, field) != value
    }
    if not changes:
        return expense

    tenant.expenses.update(expense.id, **{field: updates[field] for field in changes})
    audit_service.record(tenant, "UPDATE_EXPENSE", "Expense", expense.id, {"changes": changes})
    db.session.commit()
    logger.info("Expense %s updated by user %s", expense.id, session.user_id)
    return expense


def delete_expense(tenant: TenantScope, session: AuthSession, expense_id: int) -> None:
    expense = _owned_pending_expense(tenant, session, expense_id)
    meta = {
        "description": expense.description,
        "amount_minor": expense.amount_minor,
        "currency": expense.currency,
    }
    tenant.expenses.delete(expense.id)
    audit_service.record(tenant, "DELETE_EXPENSE", "Expense", expense_id, meta)
    db.session.commit()
    logger.info("Expense %s deleted by user %s", expense_id, session.user_id)


def decide_expense(
    tenant: TenantScope,
    session: AuthSession,
    expense_id: int,
    decision: ApprovalDecision,
    note: Optional[str] = None,
) -> Expense:
    """Record a manager's decision on a pending expense."""
    if session.role not in (MembershipRole.MANAGER, MembershipRole.ADMIN):
        raise Forbidden("Only managers and admins can decide expenses")

    expense = tenant.expenses.find_unique_or_raise(expense_id)
    if not expense.is_pending:
        raise BusinessRuleViolation("Expense is not pending approval")

    new_status = ExpenseStatus.APPROVED if decision == ApprovalDecision.APPROVE else ExpenseStatus.REJECTED
    tenant.expenses.update(expense.id, status=new_status)
    tenant.approvals.create(
        expense_id=expense.id,
        manager_id=session.user_id,
        decision=decision,
        note=note or None,
    )
    audit_service.record(
        tenant,
        f"EXPENSE_{decision.value}",
        "Expense",
        expense.id,
        {
            "description": expense.description,
            "amount_minor": expense.amount_minor,
            "currency": expense.currency,
            "decision": decision.value,
            "note": note or None,
        },
    )
    db.session.commit()
    db.session.refresh(expense)
    logger.info("Expense %s %s by user %s", expense.id, new_status.value, session.user_id)
    return expense


DECISION_VERBS = {
    ApprovalDecision.APPROVE: "approved",
    ApprovalDecision.REJECT: "rejected",
}


def decision_message(decision: ApprovalDecision) -> str:
    return f"Expense {DECISION_VERBS[decision]} successfully"


def expense_stats(tenant: TenantScope, session: AuthSession) -> Dict[str, Any]:
    """Counts by status, recent expenses and the pending total for dashboards."""
    scope: Dict[str, Any] = {}
    if session.role == MembershipRole.EMPLOYEE:
        scope["employee_id"] = session.user_id

    counts = {
        status.value: tenant.expenses.count(status=status, **scope)
        for status in ExpenseStatus
    }
    recent = tenant.expenses.find_many(
        order_by=(Expense.created_at.desc(), Expense.id.desc()),
        limit=RECENT_LIMIT,
        **scope,
    )
    pending = tenant.expenses.find_many(status=ExpenseStatus.PENDING, **scope)
    company = tenant.get_company()
    snapshot = currency_service.latest_snapshot(tenant)

    return {
        "counts": counts,
        "total": sum(counts.values()),
        "recent": recent,
        "pending_total": currency_service.total_in_base(pending, company.base_currency, snapshot),
    }
