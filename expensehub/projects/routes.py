"""Project list and management pages."""
from __future__ import annotations

from typing import Any

from flask import flash, redirect, render_template, url_for

from expensehub.auth.session import current_tenant, get_session, is_manager_or_above, role_required
from expensehub.errors import ExpenseHubError
from expensehub.models import MembershipRole
from expensehub.services import project_service

from . import projects_bp
from .forms import ProjectForm

ADMIN = MembershipRole.ADMIN
MANAGER = MembershipRole.MANAGER


def _form_payload(form: ProjectForm) -> dict:
    return {
        "name": form.name.data,
        "description": (form.description.data or "").strip() or None,
        "active": bool(form.active.data),
    }


@projects_bp.route("/", methods=["GET", "POST"])
@role_required()
def list_projects() -> Any:
    tenant = current_tenant()
    form = ProjectForm()

    if form.validate_on_submit():
        if not is_manager_or_above():
            flash("Only admins and managers can create projects.", "error")
            return redirect(url_for("projects.list_projects"))
        try:
            project = project_service.create_project(tenant, get_session(), _form_payload(form))
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash(f"Project '{project.name}' created.", "success")
            return redirect(url_for("projects.list_projects"))

    rows = project_service.list_projects(tenant)
    return render_template("projects/list.html", rows=rows, form=form)


@projects_bp.route("/<int:project_id>/edit", methods=["GET", "POST"])
@role_required(ADMIN, MANAGER)
def edit_project(project_id: int) -> Any:
    tenant = current_tenant()
    project = tenant.projects.find_unique(project_id)
    if project is None:
        flash("Project not found.", "error")
        return redirect(url_for("projects.list_projects"))

    form = ProjectForm(obj=project)
    if form.validate_on_submit():
        try:
            project_service.update_project(tenant, get_session(), project.id, _form_payload(form))
        except ExpenseHubError as exc:
            flash(exc.message, "error")
        else:
            flash("Project updated.", "success")
            return redirect(url_for("projects.list_projects"))

    return render_template("projects/edit.html", form=form, project=project)


@projects_bp.route("/<int:project_id>/toggle", methods=["POST"])
@role_required(ADMIN, MANAGER)
def toggle_project(project_id: int) -> Any:
    try:
        project = project_service.toggle_project_status(current_tenant(), get_session(), project_id)
    except ExpenseHubError as exc:
        flash(exc.message, "error")
    else:
        state = "activated" if project.active else "deactivated"
        flash(f"Project '{project.name}' {state}.", "success")
    return redirect(url_for("projects.list_projects"))


@projects_bp.route("/<int:project_id>/delete", methods=["POST"])
@role_required(ADMIN)
def delete_project(project_id: int) -> Any:
    try:
        project_service.delete_project(current_tenant(), get_session(), project_id)
    except ExpenseHubError as exc:
        flash(exc.message, "error")
    else:
        flash("Project deleted.", "success")
    return redirect(url_for("projects.list_projects"))
