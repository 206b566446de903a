"""Append-only audit trail helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from expensehub.models import AuditLog
from expensehub.tenant import TenantScope

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def record(
    tenant: TenantScope,
    action: str,
    entity: str,
    entity_id: int,
    meta: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit row to the current unit of work. The caller commits."""
    payload = dict(meta or {})
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return tenant.create_audit_log(action, entity, entity_id, payload)


def list_audit_logs(
    tenant: TenantScope,
    action: Optional[str] = None,
    entity: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> Tuple[List[AuditLog], Dict[str, Any]]:
    filters: Dict[str, Any] = {}
    if action:
        filters["action"] = action
    if entity:
        filters["entity"] = entity

    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    offset = max(0, int(offset))

    total = tenant.audit_logs.count(**filters)
    logs = tenant.audit_logs.find_many(
        order_by=(AuditLog.created_at.desc(), AuditLog.id.desc()),
        limit=limit,
        offset=offset,
        **filters,
    )
    pagination = {
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(logs) < total,
    }
    return logs, pagination
