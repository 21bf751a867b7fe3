from sqlalchemy import select
from sqlalchemy.orm import Session

from secure_tasks.models.org import Organization

def accessible_org_ids(db: Session, org_id: int | None) -> list[int]:
    """Return ``org_id`` followed by its direct children.

    Only one level is expanded: grandchildren are not visible. An unknown
    org id still yields ``[org_id]``.
    """
    if org_id is None:
        return []

    if db.get(Organization, org_id) is None:
        return [org_id]

    child_ids = db.scalars(
        select(Organization.id).where(Organization.parent_id == org_id).order_by(Organization.id)
    ).all()
    return [org_id, *child_ids]
