"""User and membership models."""
from __future__ import annotations

import enum

from flask_login import UserMixin

from expensehub import bcrypt, db


class MembershipRole(enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    memberships = db.relationship(
        "Membership",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Membership.id",
    )

    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def check_password(self, password: str) -> bool:
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def primary_membership(self) -> "Membership | None":
        """The membership a login resolves to (the oldest one)."""
        return self.memberships[0] if self.memberships else None

    def get_id(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Membership(db.Model):
    __tablename__ = "memberships"
    __table_args__ = (db.UniqueConstraint("user_id", "company_id", name="uq_membership_user_company"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    role = db.Column(
        db.Enum(MembershipRole, name="membership_role"),
        nullable=False,
        default=MembershipRole.EMPLOYEE,
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    user = db.relationship("User", back_populates="memberships", lazy="joined")
    company = db.relationship("Company", back_populates="memberships", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "company_id": self.company_id,
            "role": self.role.value if self.role else None,
            "user": {
                "id": self.user.id,
                "email": self.user.email,
                "name": self.user.name,
            }
            if self.user
            else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Membership user_id={self.user_id} company_id={self.company_id} role={self.role.value if self.role else None}>"
