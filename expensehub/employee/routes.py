"""Employee-facing routes: submit, list, edit and withdraw own expenses."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from math import ceil
from typing import Any, Dict, List

from flask import flash, redirect, render_template, request, url_for

from expensehub.auth.session import current_tenant, get_session, role_required
from expensehub.errors import ExpenseHubError
from expensehub.models import ExpenseStatus, Project
from expensehub.services import expense_service, storage_service

from . import employee_bp
from .forms import ExpenseForm

PER_PAGE = 20


def _to_minor(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _project_choices(tenant, current_project: Project | None = None) -> List[tuple]:
    projects = tenant.projects.find_many(order_by=Project.name, active=True)
    if current_project is not None and current_project not in projects:
        projects.append(current_project)
    return [(project.id, project.name) for project in projects]


def _ensure_choice(field, value) -> None:
    if value and value not in [choice[0] for choice in field.choices]:
        field.choices.append((value, value))


def _store_receipts(form: ExpenseForm, keys: List[str]) -> None:
    for upload in form.receipts.data or []:
        if upload and upload.filename:
            stored = storage_service.save_upload(upload.filename, upload.mimetype, upload.read())
            keys.append(stored.key)


def _discard_receipts(keys: List[str]) -> None:
    for key in keys:
        storage_service.delete_object(key)


def _form_payload(form: ExpenseForm) -> Dict[str, Any]:
    return {
        "project_id": form.project_id.data,
        "amount_minor": _to_minor(form.amount.data),
        "currency": form.currency.data,
        "description": form.description.data.strip(),
        "category": form.category.data,
        "paid_by": form.paid_by.data,
        "expense_date": form.expense_date.data,
    }


@employee_bp.route("/expenses", methods=["GET"])
@role_required()
def list_expenses() -> Any:
    """List expenses submitted by the current user."""
    status = request.args.get("status") or None
    if status not in {member.value for member in ExpenseStatus}:
        status = None
    page = max(1, request.args.get("page", 1, type=int))

    expenses, pagination = expense_service.list_expenses(
        current_tenant(),
        get_session(),
        {"mine": True, "status": status, "limit": PER_PAGE, "offset": (page - 1) * PER_PAGE},
    )
    pagination["page"] = page
    pagination["pages"] = max(1, ceil(pagination["total"] / PER_PAGE))

    return render_template(
        "employee/expenses.html",
        expenses=expenses,
        pagination=pagination,
        status=status,
        statuses=[member.value for member in ExpenseStatus],
    )


@employee_bp.route("/expenses/new", methods=["GET", "POST"])
@role_required()
def new_expense() -> Any:
    tenant = current_tenant()
    form = ExpenseForm()
    form.project_id.choices = _project_choices(tenant)

    if request.method == "GET" and not form.project_id.choices:
        flash("There are no active projects to submit expenses against yet.", "warning")

    if form.validate_on_submit():
        receipt_keys: List[str] = []
        try:
            payload = _form_payload(form)
            _store_receipts(form, receipt_keys)
            payload["receipt_file_keys"] = receipt_keys
            expense_service.create_expense(tenant, get_session(), payload)
        except ExpenseHubError as exc:
            _discard_receipts(receipt_keys)
            flash(exc.message, "error")
        else:
            flash("Expense submitted successfully!", "success")
            return redirect(url_for("employee.list_expenses"))

    return render_template("employee/expense_form.html", form=form, expense=None)


@employee_bp.route("/expenses/<int:expense_id>/edit", methods=["GET", "POST"])
@role_required()
def edit_expense(expense_id: int) -> Any:
    tenant = current_tenant()
    auth_session = get_session()

    expense = tenant.expenses.find_unique(expense_id)
    if expense is None or expense.employee_id != auth_session.user_id:
        flash("Expense not found.", "error")
        return redirect(url_for("employee.list_expenses"))
    if not expense.is_pending:
        flash("Only pending expenses can be changed.", "warning")
        return redirect(url_for("employee.list_expenses"))

    form = ExpenseForm(obj=expense)
    form.project_id.choices = _project_choices(tenant, expense.project)
    _ensure_choice(form.currency, expense.currency)
    _ensure_choice(form.category, expense.category)
    _ensure_choice(form.paid_by, expense.paid_by)
    if request.method == "GET":
        form.amount.data = Decimal(expense.amount_minor) / 100

    if form.validate_on_submit():
        try:
            expense_service.update_expense(tenant, auth_session, expense.id, _form_payload(form))
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash("Expense updated.", "success")
            return redirect(url_for("employee.list_expenses"))

    return render_template("employee/expense_form.html", form=form, expense=expense)


@employee_bp.route("/expenses/<int:expense_id>/delete", methods=["POST"])
@role_required()
def delete_expense(expense_id: int) -> Any:
    try:
        expense_service.delete_expense(current_tenant(), get_session(), expense_id)
    except ExpenseHubError as exc:
        flash(exc.message, "error")
    else:
        flash("Expense deleted.", "success")
    return redirect(url_for("employee.list_expenses"))
