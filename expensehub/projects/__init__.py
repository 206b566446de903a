"""Project management blueprint."""
from flask import Blueprint

projects_bp = Blueprint("projects", __name__, url_prefix="/projects")

from . import routes  # noqa: E402,F401
