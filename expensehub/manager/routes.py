"""Manager approval routes."""
from __future__ import annotations

from math import ceil
from typing import Any

from flask import flash, redirect, render_template, request, url_for

from expensehub.auth.session import current_tenant, get_session, role_required
from expensehub.errors import ExpenseHubError
from expensehub.models import ApprovalDecision, ExpenseStatus, MembershipRole
from expensehub.services import expense_service, storage_service

from . import manager_bp
from .forms import DecisionForm

PER_PAGE = 20


@manager_bp.route("/expenses", methods=["GET"])
@role_required(MembershipRole.MANAGER, MembershipRole.ADMIN)
def queue() -> Any:
    """Company expenses awaiting a decision; other statuses through ``?status=``."""
    status = request.args.get("status", ExpenseStatus.PENDING.value)
    if status not in {member.value for member in ExpenseStatus}:
        status = None
    page = max(1, request.args.get("page", 1, type=int))

    expenses, pagination = expense_service.list_expenses(
        current_tenant(),
        get_session(),
        {"status": status, "limit": PER_PAGE, "offset": (page - 1) * PER_PAGE},
    )
    pagination["page"] = page
    pagination["pages"] = max(1, ceil(pagination["total"] / PER_PAGE))

    return render_template(
        "manager/queue.html",
        expenses=expenses,
        pagination=pagination,
        status=status,
        statuses=[member.value for member in ExpenseStatus],
    )


@manager_bp.route("/expenses/<int:expense_id>", methods=["GET", "POST"])
@role_required(MembershipRole.MANAGER, MembershipRole.ADMIN)
def expense_detail(expense_id: int) -> Any:
    tenant = current_tenant()
    auth_session = get_session()

    expense = tenant.expenses.find_unique(expense_id)
    if expense is None:
        flash("Expense not found.", "error")
        return redirect(url_for("manager.queue"))

    form = DecisionForm()
    if form.validate_on_submit():
        decision = ApprovalDecision(form.decision.data)
        try:
            expense_service.decide_expense(tenant, auth_session, expense.id, decision, form.note.data)
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash(expense_service.decision_message(decision), "success")
            return redirect(url_for("manager.queue"))

    receipts = [
        {"receipt": receipt, "url": storage_service.download_url(receipt.url)}
        for receipt in expense.receipt_files
        if receipt.url.startswith(storage_service.KEY_PREFIX)
    ]
    return render_template("manager/expense_detail.html", expense=expense, form=form, receipts=receipts)
