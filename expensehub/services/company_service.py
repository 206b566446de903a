"""Company onboarding, member administration and approval policy."""
from __future__ import annotations

import logging
import secrets
import string
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from expensehub import db
from expensehub.errors import BusinessRuleViolation, InvalidRequest
from expensehub.models import (
    ApprovalPolicy,
    ApprovalType,
    Company,
    Membership,
    MembershipRole,
    User,
)
from expensehub.services import audit_service
from expensehub.services.email_service import UserCredentials, get_email_service
from expensehub.tenant import TenantScope

if TYPE_CHECKING:
    from expensehub.auth.session import AuthSession

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 12
PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"

DEFAULT_POLICY = {
    "type": ApprovalType.PERCENTAGE,
    "threshold_percent": 50,
    "max_per_employee_minor": 100000,
    "large_expense_threshold_minor": 500000,
    "require_ceo_for_large": False,
}

POLICY_FIELDS = (
    "type",
    "threshold_percent",
    "max_per_employee_minor",
    "large_expense_threshold_minor",
    "require_ceo_for_large",
)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _create_admin_user(name: str, email: str, password: str) -> User:
    user = User(name=name, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    return user


def create_company(
    company_name: str,
    admin_name: str,
    admin_email: str,
    admin_password: str,
    base_currency: Optional[str] = None,
) -> Tuple[Company, User]:
    """Create a company with its first admin in a single transaction."""
    company_name = company_name.strip()
    admin_email = admin_email.strip().lower()

    if Company.query.filter_by(name=company_name).first():
        raise InvalidRequest("A company with this name already exists")
    if User.query.filter_by(email=admin_email).first():
        raise InvalidRequest("A user with this email already exists")

    currency = (base_currency or current_app.config.get("DEFAULT_CURRENCY") or "USD").upper()
    try:
        company = Company(name=company_name, base_currency=currency)
        db.session.add(company)
        db.session.flush()

        user = _create_admin_user(admin_name.strip(), admin_email, admin_password)
        db.session.add(Membership(user_id=user.id, company_id=company.id, role=MembershipRole.ADMIN))
        db.session.add(ApprovalPolicy(company_id=company.id, **DEFAULT_POLICY))
        db.session.flush()

        audit_service.record(
            TenantScope(company.id, user.id),
            "CREATE_COMPANY",
            "Company",
            company.id,
            {"company_name": company.name, "admin_email": user.email},
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidRequest("A company or user with these details already exists")
    except Exception:
        db.session.rollback()
        raise

    logger.info("Company %s created with admin %s", company.id, user.email)
    return company, user


# Members ---------------------------------------------------------------------


def list_members(tenant: TenantScope) -> List[Membership]:
    return tenant.memberships.find_many(order_by=Membership.id)


def create_member(
    tenant: TenantScope,
    session: AuthSession,
    name: str,
    username: str,
    role: MembershipRole,
    project_id: int,
) -> Dict[str, Any]:
    """Provision a user with a company email and a generated password.

    Returns the membership, the plain password and whether the credentials
    email was delivered.
    """
    company = tenant.get_company()
    email = f"{username.strip().lower()}@{company.email_domain}"
    if User.query.filter_by(email=email).first():
        raise InvalidRequest("A user with this email already exists")

    project = tenant.projects.find_unique_or_raise(project_id)
    if not project.active:
        raise BusinessRuleViolation("Project is inactive")

    password = generate_password()
    try:
        user = User(name=name.strip(), email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        membership = tenant.memberships.create(user_id=user.id, role=role)
        tenant.project_assignments.create(user_id=user.id, project_id=project.id)
        audit_service.record(
            tenant,
            "CREATE_USER",
            "User",
            user.id,
            {"email": email, "role": role.value, "project_id": project.id},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    email_sent = get_email_service().send_user_credentials(
        UserCredentials(
            name=user.name,
            email=email,
            password=password,
            company_name=company.name,
            role=role.value,
            project_name=project.name,
        )
    )
    logger.info("User %s added to company %s as %s", user.id, tenant.company_id, role.value)
    return {"membership": membership, "password": password, "email_sent": email_sent}


def update_member_role(
    tenant: TenantScope,
    session: AuthSession,
    membership_id: int,
    role: MembershipRole,
) -> Membership:
    membership = tenant.memberships.find_unique_or_raise(membership_id)
    if membership.user_id == session.user_id and role != MembershipRole.ADMIN:
        raise BusinessRuleViolation("You cannot remove your own admin role")
    if membership.role == role:
        return membership

    previous = membership.role
    tenant.memberships.update(membership.id, role=role)
    audit_service.record(
        tenant,
        "UPDATE_USER_ROLE",
        "User",
        membership.user_id,
        {"from": previous.value, "to": role.value},
    )
    db.session.commit()
    return membership


def reset_member_password(tenant: TenantScope, session: AuthSession, membership_id: int) -> Dict[str, Any]:
    """Replace a member's password with a generated one and email it."""
    membership = tenant.memberships.find_unique_or_raise(membership_id)
    user = membership.user
    password = generate_password()
    user.set_password(password)
    audit_service.record(tenant, "RESET_USER_PASSWORD", "User", user.id, {"email": user.email})
    db.session.commit()

    email_sent = get_email_service().send_user_credentials(
        UserCredentials(
            name=user.name or user.email,
            email=user.email,
            password=password,
            company_name=tenant.get_company().name,
            role=membership.role.value,
        )
    )
    return {"membership": membership, "password": password, "email_sent": email_sent}


# Approval policy -------------------------------------------------------------


def get_policy(tenant: TenantScope) -> ApprovalPolicy:
    policy = tenant.approval_policies.find_first(order_by=ApprovalPolicy.id)
    if policy is None:
        policy = tenant.approval_policies.create(**DEFAULT_POLICY)
        db.session.commit()
    return policy


def update_policy(tenant: TenantScope, session: AuthSession, data: Dict[str, Any]) -> ApprovalPolicy:
    policy = get_policy(tenant)
    updates = {field: data[field] for field in POLICY_FIELDS if field in data}

    policy_type = updates.get("type", policy.type)
    threshold = updates.get("threshold_percent", policy.threshold_percent)
    if policy_type == ApprovalType.PERCENTAGE and not threshold:
        raise InvalidRequest(
            "Threshold is required for percentage policies",
            details={"threshold_percent": ["Required when type is PERCENTAGE."]},
        )

    changes = {
        field: {
            "from": getattr(policy, field).value if field == "type" else getattr(policy, field),
            "to": value.value if field == "type" else value,
        }
        for field, value in updates.items()
        if getattr(policy, field) != value
    }
    if not changes:
        return policy

    tenant.approval_policies.update(policy.id, **{field: updates[field] for field in changes})
    audit_service.record(tenant, "UPDATE_POLICY", "ApprovalPolicy", policy.id, {"changes": changes})
    db.session.commit()
    return policy
