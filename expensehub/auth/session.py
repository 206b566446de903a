"""Session resolution and role checks.

A logged-in user is pinned to one company: the membership picked at login is
stored in the Flask session next to the Flask-Login user id. Every page and API
handler resolves the caller through :func:`get_session` and reaches tenant data
through :func:`current_tenant`.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple

from flask import flash, g, redirect, session, url_for
from flask_login import current_user, login_user, logout_user

from expensehub.errors import Forbidden, Unauthenticated
from expensehub.models import Membership, MembershipRole, User
from expensehub.tenant import TenantScope

logger = logging.getLogger(__name__)

View = Callable[..., Any]

_SESSION_CACHE = "_auth_session"
_TENANT_CACHE = "_tenant_scope"


@dataclass(frozen=True)
class AuthSession:
    user_id: int
    company_id: int
    role: MembershipRole
    email: str
    name: Optional[str] = None

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["role"] = self.role.value
        return payload


def authenticate(email: str, password: str) -> Optional[Tuple[User, Membership]]:
    """Return the user and the membership a login resolves to, or None."""
    if not email or not password:
        return None
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None or not user.check_password(password):
        return None
    membership = user.primary_membership
    if membership is None:
        logger.info("Login refused for %s: no company membership", user.email)
        return None
    return user, membership


def start_session(user: User, membership: Membership, remember: bool = False) -> AuthSession:
    login_user(user, remember=remember)
    session["company_id"] = membership.company_id
    session["role"] = membership.role.value
    _clear_cache()
    logger.info("User %s logged in to company %s", user.id, membership.company_id)
    return AuthSession(
        user_id=user.id,
        company_id=membership.company_id,
        role=membership.role,
        email=user.email,
        name=user.name,
    )


def end_session() -> None:
    logout_user()
    session.pop("company_id", None)
    session.pop("role", None)
    _clear_cache()


def _clear_cache() -> None:
    g.pop(_SESSION_CACHE, None)
    g.pop(_TENANT_CACHE, None)


def _resolve_membership(user: User) -> Optional[Membership]:
    company_id = session.get("company_id")
    if company_id is not None:
        membership = Membership.query.filter_by(user_id=user.id, company_id=company_id).first()
        if membership is not None:
            return membership
    return user.primary_membership


def get_session() -> Optional[AuthSession]:
    """The caller's session, or None when nobody is logged in."""
    if _SESSION_CACHE in g:
        return g.get(_SESSION_CACHE)

    auth_session = None
    if current_user.is_authenticated:
        membership = _resolve_membership(current_user)
        if membership is not None:
            auth_session = AuthSession(
                user_id=current_user.id,
                company_id=membership.company_id,
                role=membership.role,
                email=current_user.email,
                name=current_user.name,
            )
    setattr(g, _SESSION_CACHE, auth_session)
    return auth_session


def require_session() -> AuthSession:
    auth_session = get_session()
    if auth_session is None:
        raise Unauthenticated()
    return auth_session


def has_role(*roles: MembershipRole) -> bool:
    auth_session = get_session()
    return auth_session is not None and auth_session.role in roles


def is_admin() -> bool:
    return has_role(MembershipRole.ADMIN)


def is_manager_or_above() -> bool:
    return has_role(MembershipRole.ADMIN, MembershipRole.MANAGER)


def get_company_context() -> Optional[Tuple[int, int]]:
    """``(company_id, user_id)`` for the caller, or None."""
    auth_session = get_session()
    if auth_session is None:
        return None
    return auth_session.company_id, auth_session.user_id


def current_tenant() -> TenantScope:
    """Tenant scope for the caller, cached for the rest of the request."""
    tenant = g.get(_TENANT_CACHE)
    if tenant is None:
        auth_session = require_session()
        tenant = TenantScope(auth_session.company_id, auth_session.user_id)
        setattr(g, _TENANT_CACHE, tenant)
    return tenant


def role_required(*roles: MembershipRole):
    """Restrict a page to one or more roles; no roles means any member."""
    def decorator(view_func: View) -> View:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            auth_session = get_session()
            if auth_session is None:
                flash("Please log in to continue.", "warning")
                return redirect(url_for("auth.login"))
            if roles and auth_session.role not in roles:
                flash("You do not have access to that page.", "error")
                return redirect(url_for("main.dashboard"))
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


def api_role_required(*roles: MembershipRole):
    """JSON flavour of :func:`role_required`: 401 without a session, 403 on role."""
    def decorator(view_func: View) -> View:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            auth_session = require_session()
            if roles and auth_session.role not in roles:
                raise Forbidden("Insufficient permissions")
            return view_func(*args, **kwargs)

        return wrapped

    return decorator
