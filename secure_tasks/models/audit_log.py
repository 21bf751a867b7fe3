from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from secure_tasks.models.base import Base
from secure_tasks.models.enums import AuditAction, AuditResource

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction, name="audit_action"), index=True, nullable=False
    )
    resource: Mapped[AuditResource] = mapped_column(
        Enum(AuditResource, name="audit_resource"), index=True, nullable=False
    )
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # no FK: entries outlive deleted users
    user_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    details: Mapped[str | None] = mapped_column(Text(), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )
