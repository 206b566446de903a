"""Tenant-scoped data access.

Every repository on a :class:`TenantScope` merges the caller's company into the
query before it reaches the database. Keyword filters follow ``Query.filter_by``
and positional criteria follow ``Query.filter``; a ``company_id`` supplied by the
caller is discarded so a scope for company A can never read or write company B
rows. Repositories add and flush, the calling service owns the commit.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Query, Session

from expensehub import db
from expensehub.errors import BusinessRuleViolation, Forbidden, NotFound
from expensehub.models import (
    Approval,
    ApprovalPolicy,
    AuditLog,
    Company,
    ExchangeRateSnapshot,
    Expense,
    Membership,
    Project,
    ProjectAssignment,
    ReceiptFile,
)

logger = logging.getLogger(__name__)


class ScopedRepository:
    """Query helpers for one model, filtered to the scope's company."""

    model: Any = None
    entity_name = "Record"

    def __init__(self, scope: "TenantScope"):
        self.scope = scope

    # Hooks ------------------------------------------------------------------

    def _tenant_criteria(self) -> List[Any]:
        return [self.model.company_id == self.scope.company_id]

    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data["company_id"] = self.scope.company_id
        return data

    def _before_update(self, instance: Any, data: Dict[str, Any]) -> None:
        data.pop("company_id", None)

    # Reads ------------------------------------------------------------------

    def query(self, *criteria: Any, **filters: Any) -> Query:
        filters.pop("company_id", None)
        query = self.model.query
        if filters:
            query = query.filter_by(**filters)
        if criteria:
            query = query.filter(*criteria)
        return query.filter(*self._tenant_criteria())

    def find_many(
        self,
        *criteria: Any,
        order_by: Any = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        **filters: Any,
    ) -> List[Any]:
        query = self.query(*criteria, **filters)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_first(self, *criteria: Any, order_by: Any = None, **filters: Any) -> Optional[Any]:
        results = self.find_many(*criteria, order_by=order_by, limit=1, **filters)
        return results[0] if results else None

    def find_unique(self, id: int, **filters: Any) -> Optional[Any]:
        if id is None:
            return None
        return self.query(self.model.id == id, **filters).first()

    def find_unique_or_raise(self, id: int, **filters: Any) -> Any:
        instance = self.find_unique(id, **filters)
        if instance is None:
            raise NotFound(f"{self.entity_name} not found")
        return instance

    def count(self, *criteria: Any, **filters: Any) -> int:
        return self.query(*criteria, **filters).order_by(None).count()

    # Writes -----------------------------------------------------------------

    def create(self, **data: Any) -> Any:
        prepared = self._prepare_create(dict(data))
        instance = self.model(**prepared)
        db.session.add(instance)
        db.session.flush()
        return instance

    def update(self, id: int, **data: Any) -> Any:
        instance = self.find_unique_or_raise(id)
        changes = dict(data)
        changes.pop("id", None)
        self._before_update(instance, changes)
        for field, value in changes.items():
            setattr(instance, field, value)
        db.session.flush()
        return instance

    def delete(self, id: int) -> Any:
        instance = self.find_unique_or_raise(id)
        db.session.delete(instance)
        db.session.flush()
        return instance


class CompanyRepository(ScopedRepository):
    model = Company
    entity_name = "Company"

    def _tenant_criteria(self) -> List[Any]:
        return [Company.id == self.scope.company_id]

    def create(self, **data: Any) -> Any:
        raise Forbidden("Companies cannot be created from within a tenant")

    def delete(self, id: int) -> Any:
        raise Forbidden("Companies cannot be deleted from within a tenant")


class ProjectRepository(ScopedRepository):
    model = Project
    entity_name = "Project"


class MembershipRepository(ScopedRepository):
    model = Membership
    entity_name = "Membership"


class ApprovalPolicyRepository(ScopedRepository):
    model = ApprovalPolicy
    entity_name = "Approval policy"


class ExchangeRateSnapshotRepository(ScopedRepository):
    model = ExchangeRateSnapshot
    entity_name = "Exchange rate snapshot"


class AuditLogRepository(ScopedRepository):
    model = AuditLog
    entity_name = "Audit log entry"

    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = super()._prepare_create(data)
        data["actor_user_id"] = data.get("actor_user_id") or self.scope.user_id
        return data

    def update(self, id: int, **data: Any) -> Any:
        raise BusinessRuleViolation("Audit log entries are append-only")

    def delete(self, id: int) -> Any:
        raise BusinessRuleViolation("Audit log entries are append-only")


class ExpenseRepository(ScopedRepository):
    """Expenses belong to a company through their project."""

    model = Expense
    entity_name = "Expense"

    def _tenant_criteria(self) -> List[Any]:
        return [Expense.project.has(Project.company_id == self.scope.company_id)]

    def _verify_project(self, project_id: Optional[int]) -> Project:
        project = self.scope.projects.find_unique(project_id)
        if project is None:
            logger.warning(
                "Blocked expense write against project %s outside company %s",
                project_id,
                self.scope.company_id,
            )
            raise NotFound("Project not found")
        return project

    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data.pop("company_id", None)
        project = data.pop("project", None)
        if project is not None:
            data["project_id"] = project.id
        self._verify_project(data.get("project_id"))
        return data

    def _before_update(self, instance: Any, data: Dict[str, Any]) -> None:
        super()._before_update(instance, data)
        project = data.pop("project", None)
        if project is not None:
            data["project_id"] = project.id
        if "project_id" in data and data["project_id"] != instance.project_id:
            self._verify_project(data["project_id"])


class _ExpenseChildRepository(ScopedRepository):
    """Rows owned by an expense, scoped through expense -> project -> company."""

    def _tenant_criteria(self) -> List[Any]:
        return [
            self.model.expense.has(
                Expense.project.has(Project.company_id == self.scope.company_id)
            )
        ]

    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data.pop("company_id", None)
        expense = data.pop("expense", None)
        if expense is not None:
            data["expense_id"] = expense.id
        self.scope.expenses.find_unique_or_raise(data.get("expense_id"))
        return data

    def _before_update(self, instance: Any, data: Dict[str, Any]) -> None:
        super()._before_update(instance, data)
        if "expense_id" in data and data["expense_id"] != instance.expense_id:
            self.scope.expenses.find_unique_or_raise(data["expense_id"])


class ApprovalRepository(_ExpenseChildRepository):
    model = Approval
    entity_name = "Approval"


class ReceiptFileRepository(_ExpenseChildRepository):
    model = ReceiptFile
    entity_name = "Receipt file"


class ProjectAssignmentRepository(ScopedRepository):
    model = ProjectAssignment
    entity_name = "Project assignment"

    def _tenant_criteria(self) -> List[Any]:
        return [ProjectAssignment.project.has(Project.company_id == self.scope.company_id)]

    def _prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data.pop("company_id", None)
        self.scope.projects.find_unique_or_raise(data.get("project_id"))
        if not self.scope.memberships.count(user_id=data.get("user_id")):
            raise NotFound("User not found")
        return data


class TenantScope:
    """Per-request data access bound to one company and acting user."""

    def __init__(self, company_id: int, user_id: Optional[int]):
        self.company_id = company_id
        self.user_id = user_id

        self.company = CompanyRepository(self)
        self.projects = ProjectRepository(self)
        self.expenses = ExpenseRepository(self)
        self.memberships = MembershipRepository(self)
        self.approval_policies = ApprovalPolicyRepository(self)
        self.audit_logs = AuditLogRepository(self)
        self.exchange_rate_snapshots = ExchangeRateSnapshotRepository(self)
        self.approvals = ApprovalRepository(self)
        self.receipt_files = ReceiptFileRepository(self)
        self.project_assignments = ProjectAssignmentRepository(self)

    def get_company(self) -> Company:
        return self.company.find_unique_or_raise(self.company_id)

    @property
    def raw(self) -> Session:
        """Unscoped session. Callers must add their own company filter."""
        return db.session

    def create_audit_log(
        self,
        action: str,
        entity: str,
        entity_id: int,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return self.audit_logs.create(
            action=action,
            entity=entity,
            entity_id=entity_id,
            meta=meta,
            actor_user_id=self.user_id,
        )

    def iter_repositories(self) -> Iterable[ScopedRepository]:
        return (
            self.company,
            self.projects,
            self.expenses,
            self.memberships,
            self.approval_policies,
            self.audit_logs,
            self.exchange_rate_snapshots,
            self.approvals,
            self.receipt_files,
            self.project_assignments,
        )

    def __repr__(self) -> str:
        return f"<TenantScope company_id={self.company_id} user_id={self.user_id}>"
