"""Authentication blueprint: login, logout and company signup pages."""
from flask import Blueprint

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

from . import routes  # noqa: E402,F401
