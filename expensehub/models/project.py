"""Project models."""
from __future__ import annotations

from expensehub import db


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now(),
        nullable=False,
    )

    company = db.relationship("Company", back_populates="projects")
    expenses = db.relationship("Expense", back_populates="project", lazy="select")
    assignments = db.relationship(
        "ProjectAssignment",
        back_populates="project",
        lazy="select",
        cascade="all, delete-orphan",
    )

    def to_dict(self, expense_count: int | None = None) -> dict:
        payload = {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "active": self.active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if expense_count is not None:
            payload["expense_count"] = expense_count
        return payload

    def __repr__(self) -> str:
        return f"<Project {self.name} active={self.active}>"


class ProjectAssignment(db.Model):
    __tablename__ = "project_assignments"
    __table_args__ = (db.UniqueConstraint("user_id", "project_id", name="uq_project_assignment"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey("projects.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    user = db.relationship("User", lazy="joined")
    project = db.relationship("Project", back_populates="assignments", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
        }

    def __repr__(self) -> str:
        return f"<ProjectAssignment user_id={self.user_id} project_id={self.project_id}>"
