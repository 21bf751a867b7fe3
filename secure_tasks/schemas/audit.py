from datetime import datetime

from pydantic import BaseModel, ConfigDict

from secure_tasks.models.enums import AuditAction, AuditResource

class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: AuditAction
    resource: AuditResource
    resource_id: int | None
    user_id: int | None
    details: str | None
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

class AuditLogListOut(BaseModel):
    logs: list[AuditLogOut]
    total: int
    page: int
    limit: int
