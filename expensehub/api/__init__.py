"""JSON API blueprint."""
from flask import Blueprint, current_app, request
from werkzeug.exceptions import HTTPException

from expensehub import db
from expensehub.errors import ExpenseHubError
from expensehub.utils.helpers import error_response

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.errorhandler(Exception)
def handle_api_error(error: Exception):
    db.session.rollback()
    if isinstance(error, ExpenseHubError):
        return error_response(error.message, error.status_code, error.details)
    if isinstance(error, HTTPException):
        return error_response(error.description or error.name, error.code or 500)
    current_app.logger.exception("Unhandled API error on %s %s", request.method, request.path)
    return error_response("Internal server error", 500)


@api_bp.app_errorhandler(HTTPException)
def handle_unrouted_api_error(error: HTTPException):
    # Unknown /api paths and wrong methods never reach the blueprint handler.
    if request.path.startswith(api_bp.url_prefix + "/") or request.path == api_bp.url_prefix:
        return error_response(error.name, error.code or 500)
    return error.get_response()


from . import routes  # noqa: E402,F401
