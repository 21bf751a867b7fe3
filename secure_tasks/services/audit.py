"""Append-only audit trail.

Entries are classified from the HTTP method and URL alone; see
:func:`classify`. Writes commit on their own, independently of whatever
business transaction produced the request.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from secure_tasks.auth.tokens import now_utc
from secure_tasks.models.audit_log import AuditLog
from secure_tasks.models.enums import AuditAction, AuditResource

logger = logging.getLogger(__name__)

SKIP_PATTERNS = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/health",
    "/api/metrics",
)

METHOD_ACTIONS = {
    "POST": AuditAction.create,
    "GET": AuditAction.read,
    "PATCH": AuditAction.update,
    "PUT": AuditAction.update,
    "DELETE": AuditAction.delete,
}

RESOURCE_PATTERNS = (
    ("/api/tasks", AuditResource.task),
    ("/api/users", AuditResource.user),
    ("/api/organizations", AuditResource.organization),
)

_NUMERIC_SEGMENT = re.compile(r"/(\d+)(?:/|$)")

@dataclass(frozen=True)
class AuditInfo:
    action: AuditAction
    resource: AuditResource

def should_skip(url: str) -> bool:
    return any(pattern in url for pattern in SKIP_PATTERNS)

def classify(method: str, url: str) -> AuditInfo | None:
    if should_skip(url):
        return None

    if "/api/auth/profile" in url:
        return AuditInfo(AuditAction.read, AuditResource.auth)

    for pattern, resource in RESOURCE_PATTERNS:
        if pattern in url:
            action = METHOD_ACTIONS.get(method.upper())
            return AuditInfo(action, resource) if action else None

    return None

def extract_resource_id(url: str, body: Any = None) -> int | None:
    m = _NUMERIC_SEGMENT.search(url)
    if m:
        return int(m.group(1))
    if isinstance(body, dict):
        value = body.get("id")
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None

def build_details(method: str, url: str) -> str:
    return json.dumps(
        {
            "method": method,
            "url": url,
            "timestamp": now_utc().isoformat(),
            "success": True,
        }
    )

def log_entry(
    db: Session,
    action: AuditAction,
    resource: AuditResource,
    resource_id: int | None,
    user_id: int,
    details: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog:
    entry = AuditLog(
        action=action,
        resource=resource,
        resource_id=resource_id,
        user_id=user_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )
    db.add(entry)
    db.commit()
    return entry

def query_logs(
    db: Session,
    user_id: int | None = None,
    action: AuditAction | None = None,
    resource: AuditResource | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[AuditLog], int]:
    q = select(AuditLog)
    if user_id is not None:
        q = q.where(AuditLog.user_id == user_id)
    if action is not None:
        q = q.where(AuditLog.action == action)
    if resource is not None:
        q = q.where(AuditLog.resource == resource)

    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0
    rows = db.scalars(
        q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(rows), total
