"""Admin pages: overview, users, approval policy and audit history."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from math import ceil
from typing import Any, Optional

from flask import flash, redirect, render_template, request, url_for

from expensehub.auth.session import current_tenant, get_session, role_required
from expensehub.errors import ExpenseHubError
from expensehub.models import ApprovalType, ExpenseStatus, MembershipRole, Project
from expensehub.services import audit_service, company_service, currency_service

from . import admin_bp
from .forms import MemberForm, PolicyForm, RoleForm

HISTORY_PER_PAGE = 25


def _to_minor(amount: Optional[Decimal]) -> Optional[int]:
    if amount is None:
        return None
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_major(amount_minor: Optional[int]) -> Optional[Decimal]:
    if amount_minor is None:
        return None
    return Decimal(amount_minor) / 100


@admin_bp.route("/", methods=["GET"])
@role_required(MembershipRole.ADMIN)
def overview() -> Any:
    tenant = current_tenant()
    counts = {status.value: tenant.expenses.count(status=status) for status in ExpenseStatus}
    return render_template(
        "admin/overview.html",
        company=tenant.get_company(),
        counts=counts,
        member_count=tenant.memberships.count(),
        project_count=tenant.projects.count(),
        policy=company_service.get_policy(tenant),
        snapshot=currency_service.latest_snapshot(tenant),
    )


@admin_bp.route("/exchange-rates/refresh", methods=["POST"])
@role_required(MembershipRole.ADMIN)
def refresh_exchange_rates() -> Any:
    try:
        snapshot = currency_service.refresh_snapshot(current_tenant())
    except ExpenseHubError as exc:
        flash(exc.message, "error")
    else:
        flash(f"Captured {len(snapshot.rates)} exchange rates.", "success")
    return redirect(url_for("admin.overview"))


@admin_bp.route("/users", methods=["GET", "POST"])
@role_required(MembershipRole.ADMIN)
def users() -> Any:
    tenant = current_tenant()
    form = MemberForm()
    projects = tenant.projects.find_many(order_by=Project.name, active=True)
    form.project_id.choices = [(project.id, project.name) for project in projects]

    if form.validate_on_submit():
        try:
            result = company_service.create_member(
                tenant,
                get_session(),
                name=form.name.data,
                username=form.username.data,
                role=MembershipRole(form.role.data),
                project_id=form.project_id.data,
            )
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            email = result["membership"].user.email
            if result["email_sent"]:
                flash(f"User created. Credentials sent to {email}.", "success")
            else:
                flash(f"User created. Email: {email}, Password: {result['password']}", "warning")
            return redirect(url_for("admin.users"))

    members = company_service.list_members(tenant)
    return render_template(
        "admin/users.html",
        form=form,
        members=members,
        role_form=RoleForm(),
        company=tenant.get_company(),
    )


@admin_bp.route("/users/<int:membership_id>/role", methods=["POST"])
@role_required(MembershipRole.ADMIN)
def update_role(membership_id: int) -> Any:
    form = RoleForm()
    if form.validate_on_submit():
        try:
            membership = company_service.update_member_role(
                current_tenant(), get_session(), membership_id, MembershipRole(form.role.data)
            )
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash(f"{membership.user.email} is now {membership.role.value.title()}.", "success")
    else:
        flash("Choose a valid role.", "error")
    return redirect(url_for("admin.users"))


@admin_bp.route("/users/<int:membership_id>/reset-password", methods=["POST"])
@role_required(MembershipRole.ADMIN)
def reset_password(membership_id: int) -> Any:
    try:
        result = company_service.reset_member_password(current_tenant(), get_session(), membership_id)
    except ExpenseHubError as exc:
        flash(exc.message, "error")
    else:
        email = result["membership"].user.email
        if result["email_sent"]:
            flash(f"Password reset. New credentials sent to {email}.", "success")
        else:
            flash(f"Password reset. New password for {email}: {result['password']}", "warning")
    return redirect(url_for("admin.users"))


@admin_bp.route("/policy", methods=["GET", "POST"])
@role_required(MembershipRole.ADMIN)
def policy() -> Any:
    tenant = current_tenant()
    current = company_service.get_policy(tenant)
    form = PolicyForm()

    if request.method == "GET":
        form.type.data = current.type.value
        form.threshold_percent.data = current.threshold_percent
        form.max_per_employee.data = _to_major(current.max_per_employee_minor)
        form.large_expense_threshold.data = _to_major(current.large_expense_threshold_minor)
        form.require_ceo_for_large.data = current.require_ceo_for_large

    if form.validate_on_submit():
        try:
            company_service.update_policy(
                tenant,
                get_session(),
                {
                    "type": ApprovalType(form.type.data),
                    "threshold_percent": form.threshold_percent.data,
                    "max_per_employee_minor": _to_minor(form.max_per_employee.data),
                    "large_expense_threshold_minor": _to_minor(form.large_expense_threshold.data),
                    "require_ceo_for_large": bool(form.require_ceo_for_large.data),
                },
            )
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash("Approval policy saved.", "success")
            return redirect(url_for("admin.policy"))

    return render_template("admin/policy.html", form=form, policy=current)


@admin_bp.route("/history", methods=["GET"])
@role_required(MembershipRole.ADMIN)
def history() -> Any:
    page = max(1, request.args.get("page", 1, type=int))
    action = request.args.get("action") or None
    logs, pagination = audit_service.list_audit_logs(
        current_tenant(),
        action=action,
        limit=HISTORY_PER_PAGE,
        offset=(page - 1) * HISTORY_PER_PAGE,
    )
    pagination["page"] = page
    pagination["pages"] = max(1, ceil(pagination["total"] / HISTORY_PER_PAGE))
    return render_template("admin/history.html", logs=logs, pagination=pagination, action=action)
