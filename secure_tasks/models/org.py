from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from secure_tasks.models.base import Base

class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    # single parent, so the orgs form a forest
    parent_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("organizations.id"), index=True, nullable=True
    )

    parent: Mapped[Organization | None] = relationship(
        back_populates="children", remote_side="Organization.id"
    )
    children: Mapped[list[Organization]] = relationship(
        back_populates="parent", order_by="Organization.id"
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
    )
