"""Project management for a company."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from sqlalchemy import func

from expensehub import db
from expensehub.errors import BusinessRuleViolation
from expensehub.models import Expense, Project
from expensehub.services import audit_service
from expensehub.tenant import TenantScope

if TYPE_CHECKING:
    from expensehub.auth.session import AuthSession

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "active")


def expense_counts(tenant: TenantScope, project_ids: List[int]) -> Dict[int, int]:
    if not project_ids:
        return {}
    rows = (
        tenant.expenses.query(Expense.project_id.in_(project_ids))
        .with_entities(Expense.project_id, func.count(Expense.id))
        .group_by(Expense.project_id)
        .all()
    )
    return {project_id: count for project_id, count in rows}


def list_projects(tenant: TenantScope, active_only: bool = False) -> List[Tuple[Project, int]]:
    filters = {"active": True} if active_only else {}
    projects = tenant.projects.find_many(
        order_by=(Project.created_at.desc(), Project.id.desc()),
        **filters,
    )
    counts = expense_counts(tenant, [project.id for project in projects])
    return [(project, counts.get(project.id, 0)) for project in projects]


def create_project(tenant: TenantScope, session: AuthSession, data: Dict[str, Any]) -> Project:
    active = data.get("active")
    project = tenant.projects.create(
        name=data["name"].strip(),
        description=data.get("description") or None,
        active=True if active is None else bool(active),
    )
    audit_service.record(
        tenant,
        "CREATE_PROJECT",
        "Project",
        project.id,
        {"project_name": project.name, "created_by": session.user_id},
    )
    db.session.commit()
    logger.info("Project %s created in company %s", project.id, tenant.company_id)
    return project


def update_project(
    tenant: TenantScope,
    session: AuthSession,
    project_id: int,
    data: Dict[str, Any],
) -> Project:
    project = tenant.projects.find_unique_or_raise(project_id)

    updates = {field: data[field] for field in EDITABLE_FIELDS if field in data and data[field] is not None}
    if "name" in updates:
        updates["name"] = updates["name"].strip()
    changes = {
        field: {"from": getattr(project, field), "to": value}
        for field, value in updates.items()
        if getattr(project, field) != value
    }
    if not changes:
        return project

    tenant.projects.update(project.id, **{field: updates[field] for field in changes})
    audit_service.record(
        tenant,
        "UPDATE_PROJECT",
        "Project",
        project.id,
        {"project_name": project.name, "changes": changes, "updated_by": session.user_id},
    )
    db.session.commit()
    return project


def toggle_project_status(
    tenant: TenantScope,
    session: AuthSession,
    project_id: int,
    active: Optional[bool] = None,
) -> Project:
    """Set ``active``; flips the current value when none is given."""
    project = tenant.projects.find_unique_or_raise(project_id)
    previous = project.active
    target = (not previous) if active is None else bool(active)

    tenant.projects.update(project.id, active=target)
    audit_service.record(
        tenant,
        "TOGGLE_PROJECT_STATUS",
        "Project",
        project.id,
        {
            "project_name": project.name,
            "status_change": {"from": previous, "to": target},
            "updated_by": session.user_id,
        },
    )
    db.session.commit()
    logger.info("Project %s active=%s", project.id, target)
    return project


def delete_project(tenant: TenantScope, session: AuthSession, project_id: int) -> None:
    project = tenant.projects.find_unique_or_raise(project_id)
    if tenant.expenses.count(project_id=project.id) > 0:
        raise BusinessRuleViolation("Cannot delete project with existing expenses")

    name = project.name
    tenant.projects.delete(project.id)
    audit_service.record(
        tenant,
        "DELETE_PROJECT",
        "Project",
        project_id,
        {"project_name": name, "deleted_by": session.user_id},
    )
    db.session.commit()
    logger.info("Project %s deleted from company %s", project_id, tenant.company_id)
