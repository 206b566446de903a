"""Approval-related models."""
from __future__ import annotations

import enum

from expensehub import db


class ApprovalDecision(enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ApprovalType(enum.Enum):
    MAJORITY = "MAJORITY"
    PERCENTAGE = "PERCENTAGE"


class Approval(db.Model):
    __tablename__ = "approvals"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    decision = db.Column(db.Enum(ApprovalDecision, name="approval_decision"), nullable=False)
    note = db.Column(db.Text, nullable=True)
    decided_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    expense = db.relationship("Expense", back_populates="approvals")
    manager = db.relationship("User", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_id": self.expense_id,
            "manager_id": self.manager_id,
            "manager": {
                "id": self.manager.id,
                "name": self.manager.name,
                "email": self.manager.email,
            }
            if self.manager
            else None,
            "decision": self.decision.value if self.decision else None,
            "note": self.note,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<Approval expense_id={self.expense_id} "
            f"decision={self.decision.value if self.decision else None}>"
        )


class ApprovalPolicy(db.Model):
    __tablename__ = "approval_policies"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    type = db.Column(
        db.Enum(ApprovalType, name="approval_type"),
        nullable=False,
        default=ApprovalType.MAJORITY,
    )
    threshold_percent = db.Column(db.Integer, nullable=True)
    max_per_employee_minor = db.Column(db.BigInteger, nullable=True)
    large_expense_threshold_minor = db.Column(db.BigInteger, nullable=True)
    require_ceo_for_large = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    company = db.relationship("Company", back_populates="approval_policies")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "type": self.type.value if self.type else None,
            "threshold_percent": self.threshold_percent,
            "max_per_employee_minor": self.max_per_employee_minor,
            "large_expense_threshold_minor": self.large_expense_threshold_minor,
            "require_ceo_for_large": self.require_ceo_for_large,
        }

    def __repr__(self) -> str:
        return f"<ApprovalPolicy company_id={self.company_id} type={self.type.value if self.type else None}>"
