from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from secure_tasks.db import get_db
from secure_tasks.models.enums import AuditAction, AuditResource
from secure_tasks.rbac.deps import require
from secure_tasks.rbac.guards import Access
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal
from secure_tasks.schemas.audit import AuditLogListOut, AuditLogOut
from secure_tasks.services import audit

router = APIRouter(prefix="/audit", tags=["audit"])

AUDIT_READ = Access.of(permissions=[Permission.audit_read])

@router.get("/logs", response_model=AuditLogListOut)
def list_audit_logs(
    user_id: int | None = None,
    action: AuditAction | None = None,
    resource: AuditResource | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require(AUDIT_READ)),
    db: Session = Depends(get_db),
) -> AuditLogListOut:
    # everyone but owners/admins is pinned to their own entries
    target_user_id = user_id if principal.is_manager else principal.user_id

    rows, total = audit.query_logs(db, target_user_id, action, resource, page, limit)
    return AuditLogListOut(
        logs=[AuditLogOut.model_validate(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
    )
