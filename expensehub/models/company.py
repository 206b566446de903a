"""Company (tenant) and exchange-rate snapshot models."""
from __future__ import annotations

from expensehub import db


class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    base_currency = db.Column(db.String(3), nullable=False, default="USD")
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    memberships = db.relationship(
        "Membership",
        back_populates="company",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    projects = db.relationship(
        "Project",
        back_populates="company",
        lazy="select",
        cascade="all, delete-orphan",
    )
    approval_policies = db.relationship(
        "ApprovalPolicy",
        back_populates="company",
        lazy="select",
        cascade="all, delete-orphan",
    )
    exchange_rate_snapshots = db.relationship(
        "ExchangeRateSnapshot",
        back_populates="company",
        lazy="select",
        cascade="all, delete-orphan",
    )

    @property
    def email_domain(self) -> str:
        """Domain used for company-assigned user emails."""
        slug = "".join(ch for ch in self.name.lower() if ch.isalnum())[:20]
        return f"{slug or 'company'}.com"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "base_currency": self.base_currency,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Company {self.name}>"


class ExchangeRateSnapshot(db.Model):
    __tablename__ = "exchange_rate_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    base_currency = db.Column(db.String(3), nullable=False)
    rates = db.Column(db.JSON, nullable=False, default=dict)
    captured_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    company = db.relationship("Company", back_populates="exchange_rate_snapshots")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "base_currency": self.base_currency,
            "rates": self.rates or {},
            "captured_at": self.captured_at.isoformat() if self.captured_at else None,
        }

    def __repr__(self) -> str:
        return f"<ExchangeRateSnapshot company_id={self.company_id} base={self.base_currency}>"
