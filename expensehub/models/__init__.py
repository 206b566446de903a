"""Application data models exposed for easy imports."""
from expensehub import db  # noqa: F401
from .company import Company, ExchangeRateSnapshot  # noqa: F401
from .user import Membership, MembershipRole, User  # noqa: F401
from .project import Project, ProjectAssignment  # noqa: F401
from .expense import Expense, ExpenseStatus, ReceiptFile  # noqa: F401
from .approval import (
    Approval,
    ApprovalDecision,
    ApprovalPolicy,
    ApprovalType,
)  # noqa: F401
from .audit import AuditLog  # noqa: F401

__all__ = [
    "db",
    "Company",
    "ExchangeRateSnapshot",
    "User",
    "Membership",
    "MembershipRole",
    "Project",
    "ProjectAssignment",
    "Expense",
    "ExpenseStatus",
    "ReceiptFile",
    "Approval",
    "ApprovalDecision",
    "ApprovalPolicy",
    "ApprovalType",
    "AuditLog",
]
