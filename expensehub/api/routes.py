"""JSON API routes.

Every response uses the ``{success, data, message}`` / ``{success, error,
details}`` envelope. Handlers raise :mod:`expensehub.errors` exceptions and the
blueprint error handler renders them.
"""
from __future__ import annotations

from typing import Any

from flask import current_app, request, send_file
from sqlalchemy import text

from expensehub import db
from expensehub.auth.session import (
    api_role_required,
    authenticate,
    current_tenant,
    end_session,
    get_session,
    require_session,
    start_session,
)
from expensehub.errors import Unauthenticated
from expensehub.models import ApprovalDecision, ApprovalType, MembershipRole
from expensehub.services import (
    audit_service,
    company_service,
    currency_service,
    expense_service,
    project_service,
    storage_service,
)
from expensehub.utils.helpers import error_response, query_params, request_payload, success_response

from . import api_bp
from .schemas import (
    AuditQuerySchema,
    CompanyCreateSchema,
    DecisionSchema,
    ExpenseCreateSchema,
    ExpenseQuerySchema,
    ExpenseUpdateSchema,
    LoginSchema,
    MemberCreateSchema,
    PolicyUpdateSchema,
    PresignedUrlSchema,
    ProjectCreateSchema,
    ProjectToggleSchema,
    ProjectUpdateSchema,
    RoleUpdateSchema,
    validate_payload,
)

ADMIN = MembershipRole.ADMIN
MANAGER = MembershipRole.MANAGER


# Health -----------------------------------------------------------------------


@api_bp.route("/health", methods=["GET"])
def health() -> Any:
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Database health check failed")
        return error_response("Failed to connect to database", 503)
    return success_response({"status": "ok", "database": "ok"})


# Onboarding and sessions ------------------------------------------------------


@api_bp.route("/company/create", methods=["POST"])
def create_company() -> Any:
    data = validate_payload(CompanyCreateSchema, request_payload())
    company, user = company_service.create_company(
        company_name=data["company_name"],
        admin_name=data["admin_name"],
        admin_email=data["admin_email"],
        admin_password=data["admin_password"],
        base_currency=data.get("base_currency"),
    )
    return success_response(
        {"company_id": company.id, "user_id": user.id, "company": company.to_dict()},
        message="Company created successfully",
        status=201,
    )


@api_bp.route("/auth/login", methods=["POST"])
def login() -> Any:
    data = validate_payload(LoginSchema, request_payload())
    result = authenticate(data["email"], data["password"])
    if result is None:
        raise Unauthenticated("Invalid email or password")
    auth_session = start_session(*result)
    return success_response(auth_session.to_dict(), message="Logged in")


@api_bp.route("/auth/logout", methods=["POST"])
def logout() -> Any:
    require_session()
    end_session()
    return success_response(None, message="Logged out")


@api_bp.route("/session", methods=["GET"])
def current_session() -> Any:
    auth_session = require_session()
    payload = auth_session.to_dict()
    payload["company"] = current_tenant().get_company().to_dict()
    return success_response(payload)


# Projects ---------------------------------------------------------------------


@api_bp.route("/projects", methods=["GET"])
@api_role_required()
def list_projects() -> Any:
    rows = project_service.list_projects(current_tenant())
    return success_response([project.to_dict(expense_count=count) for project, count in rows])


@api_bp.route("/projects", methods=["POST"])
@api_role_required(ADMIN)
def create_project() -> Any:
    data = validate_payload(ProjectCreateSchema, request_payload())
    project = project_service.create_project(current_tenant(), get_session(), data)
    return success_response(project.to_dict(), message="Project created successfully", status=201)


@api_bp.route("/projects/<int:project_id>", methods=["PATCH"])
@api_role_required(ADMIN, MANAGER)
def update_project(project_id: int) -> Any:
    data = validate_payload(ProjectUpdateSchema, request_payload())
    project = project_service.update_project(current_tenant(), get_session(), project_id, data)
    return success_response(project.to_dict(), message="Project updated successfully")


@api_bp.route("/projects/<int:project_id>/toggle", methods=["POST"])
@api_role_required(ADMIN, MANAGER)
def toggle_project(project_id: int) -> Any:
    data = validate_payload(ProjectToggleSchema, request_payload())
    project = project_service.toggle_project_status(
        current_tenant(), get_session(), project_id, data.get("active")
    )
    state = "activated" if project.active else "deactivated"
    return success_response(project.to_dict(), message=f"Project {state} successfully")


@api_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@api_role_required(ADMIN)
def delete_project(project_id: int) -> Any:
    project_service.delete_project(current_tenant(), get_session(), project_id)
    return success_response({"id": project_id}, message="Project deleted successfully")


# Expenses ---------------------------------------------------------------------


@api_bp.route("/expenses", methods=["GET"])
@api_role_required()
def list_expenses() -> Any:
    filters = validate_payload(ExpenseQuerySchema, query_params())
    expenses, pagination = expense_service.list_expenses(current_tenant(), get_session(), filters)
    return success_response(
        {"expenses": [expense.to_dict() for expense in expenses], "pagination": pagination}
    )


@api_bp.route("/expenses", methods=["POST"])
@api_role_required()
def create_expense() -> Any:
    data = validate_payload(ExpenseCreateSchema, request_payload())
    expense = expense_service.create_expense(current_tenant(), get_session(), data)
    return success_response(expense.to_dict(), message="Expense created successfully", status=201)


@api_bp.route("/expenses/<int:expense_id>", methods=["GET"])
@api_role_required()
def get_expense(expense_id: int) -> Any:
    expense = expense_service.get_expense(current_tenant(), get_session(), expense_id)
    return success_response(expense.to_dict())


@api_bp.route("/expenses/<int:expense_id>", methods=["PATCH"])
@api_role_required()
def update_expense(expense_id: int) -> Any:
    data = validate_payload(ExpenseUpdateSchema, request_payload())
    expense = expense_service.update_expense(current_tenant(), get_session(), expense_id, data)
    return success_response(expense.to_dict(), message="Expense updated successfully")


@api_bp.route("/expenses/<int:expense_id>", methods=["DELETE"])
@api_role_required()
def delete_expense(expense_id: int) -> Any:
    expense_service.delete_expense(current_tenant(), get_session(), expense_id)
    return success_response({"id": expense_id}, message="Expense deleted successfully")


@api_bp.route("/expenses/<int:expense_id>/approve", methods=["POST"])
@api_role_required(MANAGER, ADMIN)
def decide_expense(expense_id: int) -> Any:
    data = validate_payload(DecisionSchema, request_payload())
    decision = ApprovalDecision(data["decision"])
    expense = expense_service.decide_expense(
        current_tenant(), get_session(), expense_id, decision, data.get("note")
    )
    return success_response(expense.to_dict(), message=expense_service.decision_message(decision))


# Uploads ----------------------------------------------------------------------


@api_bp.route("/upload/presigned-url", methods=["POST"])
@api_role_required()
def presigned_url() -> Any:
    data = validate_payload(PresignedUrlSchema, request_payload())
    upload = storage_service.create_presigned_upload(
        data["file_name"], data["mime_type"], data["file_size"]
    )
    return success_response(upload)


@api_bp.route("/upload/<token>", methods=["PUT"])
@api_role_required()
def upload_object(token: str) -> Any:
    stored = storage_service.store_object(token, request.get_data(cache=False))
    return success_response({"key": stored.key, "mime": stored.mime, "size": stored.size}, status=201)


@api_bp.route("/download/<token>", methods=["GET"])
@api_role_required()
def download_object(token: str) -> Any:
    path, stored = storage_service.resolve_download(token)
    return send_file(path, mimetype=stored.mime)


# Administration ---------------------------------------------------------------


@api_bp.route("/users", methods=["GET"])
@api_role_required(ADMIN)
def list_users() -> Any:
    members = company_service.list_members(current_tenant())
    return success_response([membership.to_dict() for membership in members])


@api_bp.route("/users", methods=["POST"])
@api_role_required(ADMIN)
def create_user() -> Any:
    data = validate_payload(MemberCreateSchema, request_payload())
    result = company_service.create_member(
        current_tenant(),
        get_session(),
        name=data["name"],
        username=data["username"],
        role=MembershipRole(data["role"]),
        project_id=data["project_id"],
    )
    payload = result["membership"].to_dict()
    payload["email_sent"] = result["email_sent"]
    if not result["email_sent"]:
        # The admin has to hand the password over manually.
        payload["password"] = result["password"]
    return success_response(payload, message="User created successfully", status=201)


@api_bp.route("/users/<int:membership_id>/role", methods=["PATCH"])
@api_role_required(ADMIN)
def update_user_role(membership_id: int) -> Any:
    data = validate_payload(RoleUpdateSchema, request_payload())
    membership = company_service.update_member_role(
        current_tenant(), get_session(), membership_id, MembershipRole(data["role"])
    )
    return success_response(membership.to_dict(), message="Role updated successfully")


@api_bp.route("/users/<int:membership_id>/reset-password", methods=["POST"])
@api_role_required(ADMIN)
def reset_user_password(membership_id: int) -> Any:
    result = company_service.reset_member_password(current_tenant(), get_session(), membership_id)
    payload = {"membership_id": membership_id, "email_sent": result["email_sent"]}
    if not result["email_sent"]:
        payload["password"] = result["password"]
    return success_response(payload, message="Password reset successfully")


@api_bp.route("/policy", methods=["GET"])
@api_role_required()
def get_policy() -> Any:
    return success_response(company_service.get_policy(current_tenant()).to_dict())


@api_bp.route("/policy", methods=["PUT"])
@api_role_required(ADMIN)
def update_policy() -> Any:
    data = validate_payload(PolicyUpdateSchema, request_payload())
    if "type" in data:
        data["type"] = ApprovalType(data["type"])
    policy = company_service.update_policy(current_tenant(), get_session(), data)
    return success_response(policy.to_dict(), message="Approval policy updated successfully")


@api_bp.route("/audit-logs", methods=["GET"])
@api_role_required(ADMIN)
def list_audit_logs() -> Any:
    filters = validate_payload(AuditQuerySchema, query_params())
    logs, pagination = audit_service.list_audit_logs(
        current_tenant(),
        action=filters.get("action"),
        entity=filters.get("entity"),
        limit=filters.get("limit") or audit_service.DEFAULT_PAGE_SIZE,
        offset=filters.get("offset") or 0,
    )
    return success_response({"audit_logs": [log.to_dict() for log in logs], "pagination": pagination})


# Exchange rates ---------------------------------------------------------------


@api_bp.route("/exchange-rates", methods=["GET"])
@api_role_required()
def exchange_rates() -> Any:
    snapshot = currency_service.latest_snapshot(current_tenant())
    return success_response(snapshot.to_dict() if snapshot else None)


@api_bp.route("/exchange-rates/refresh", methods=["POST"])
@api_role_required(ADMIN)
def refresh_exchange_rates() -> Any:
    snapshot = currency_service.refresh_snapshot(current_tenant())
    return success_response(snapshot.to_dict(), message="Exchange rates refreshed", status=201)
