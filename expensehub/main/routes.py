"""Landing page and role-aware dashboard."""
from __future__ import annotations

from typing import Any

from flask import redirect, render_template, url_for

from expensehub.auth.session import current_tenant, get_session, role_required
from expensehub.models import MembershipRole
from expensehub.services import expense_service

from . import main_bp


@main_bp.route("/")
def index() -> Any:
    if get_session() is None:
        return redirect(url_for("auth.login"))
    return redirect(url_for("main.dashboard"))


@main_bp.route("/dashboard")
@role_required()
def dashboard() -> Any:
    auth_session = get_session()
    tenant = current_tenant()
    stats = expense_service.expense_stats(tenant, auth_session)

    context = {
        "stats": stats,
        "company": tenant.get_company(),
        "active_projects": tenant.projects.count(active=True),
    }
    if auth_session.role == MembershipRole.ADMIN:
        context["member_count"] = tenant.memberships.count()
    return render_template("dashboard.html", **context)
