"""Error types shared by services, API handlers and pages."""
from __future__ import annotations

from typing import Any, Optional


class ExpenseHubError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class InvalidRequest(ExpenseHubError):
    status_code = 400


class Unauthenticated(ExpenseHubError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", **kwargs: Any):
        super().__init__(message, **kwargs)


class Forbidden(ExpenseHubError):
    status_code = 403

    def __init__(self, message: str = "Forbidden", **kwargs: Any):
        super().__init__(message, **kwargs)


class NotFound(ExpenseHubError):
    status_code = 404


class BusinessRuleViolation(ExpenseHubError):
    """A well-formed request that the workflow does not allow."""

    status_code = 400
