"""Expense model definitions."""
from __future__ import annotations

import enum

from expensehub import db


class ExpenseStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"


class Expense(db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount_minor = db.Column(db.BigInteger, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    description = db.Column(db.String(500), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    paid_by = db.Column(db.String(100), nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    status = db.Column(
        db.Enum(ExpenseStatus, name="expense_status"),
        nullable=False,
        default=ExpenseStatus.PENDING,
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now(),
        nullable=False,
    )

    project = db.relationship("Project", back_populates="expenses", lazy="joined")
    employee = db.relationship("User", lazy="joined")
    receipt_files = db.relationship(
        "ReceiptFile",
        back_populates="expense",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    approvals = db.relationship(
        "Approval",
        back_populates="expense",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Approval.id",
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ExpenseStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project": {"id": self.project.id, "name": self.project.name} if self.project else None,
            "employee_id": self.employee_id,
            "employee": {
                "id": self.employee.id,
                "name": self.employee.name,
                "email": self.employee.email,
            }
            if self.employee
            else None,
            "amount_minor": self.amount_minor,
            "currency": self.currency,
            "description": self.description,
            "category": self.category,
            "paid_by": self.paid_by,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "status": self.status.value if self.status else None,
            "receipt_files": [receipt.to_dict() for receipt in self.receipt_files],
            "approvals": [approval.to_dict() for approval in self.approvals],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Expense id={self.id} status={self.status.value if self.status else None}>"


class ReceiptFile(db.Model):
    __tablename__ = "receipt_files"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    url = db.Column(db.String(512), nullable=False)
    mime = db.Column(db.String(120), nullable=False, default="application/octet-stream")
    size = db.Column(db.BigInteger, nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    expense = db.relationship("Expense", back_populates="receipt_files")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "mime": self.mime,
            "size": self.size,
        }

    def __repr__(self) -> str:
        return f"<ReceiptFile expense_id={self.expense_id} url={self.url}>"
