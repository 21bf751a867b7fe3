import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from secure_tasks.db import get_db
from secure_tasks.errors import Conflict, Forbidden, NotFound
from secure_tasks.models.enums import Role
from secure_tasks.models.org import Organization
from secure_tasks.models.task import Task
from secure_tasks.models.user import User
from secure_tasks.rbac.deps import require
from secure_tasks.rbac.guards import Access
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal
from secure_tasks.schemas.auth import MessageOut
from secure_tasks.schemas.orgs import (
    OrgCreateIn,
    OrgOut,
    OrgStatsOut,
    OrgTreeOut,
    OrgUpdateIn,
    OrgUserCount,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["organizations"])

ORG_READ = Access.of(roles=[Role.admin, Role.owner], permissions=[Permission.org_read])
ORG_CREATE = Access.of(roles=[Role.owner], permissions=[Permission.org_create])
ORG_UPDATE = Access.of(roles=[Role.owner], permissions=[Permission.org_update])
ORG_DELETE = Access.of(roles=[Role.owner], permissions=[Permission.org_delete])

def _user_counts(db: Session) -> list[OrgUserCount]:
    q = (
        select(Organization.id, Organization.name, func.count(User.id))
        .outerjoin(User, User.organization_id == Organization.id)
        .group_by(Organization.id, Organization.name)
        .order_by(Organization.id)
    )
    return [OrgUserCount(id=i, name=n, user_count=c) for i, n, c in db.execute(q).all()]

def _tree(org: Organization, counts: dict[int, int]) -> OrgTreeOut:
    return OrgTreeOut(
        id=org.id,
        name=org.name,
        description=org.description,
        parent_id=org.parent_id,
        created_at=org.created_at,
        children=[OrgOut.model_validate(c) for c in org.children],
        user_count=counts.get(org.id, 0),
    )

def _ensure_parent_exists(db: Session, parent_id: int | None) -> None:
    if parent_id is not None and db.get(Organization, parent_id) is None:
        raise NotFound("Parent organization not found")

@router.get("", response_model=list[OrgOut])
def list_orgs(
    _: Principal = Depends(require(ORG_READ)),
    db: Session = Depends(get_db),
) -> list[OrgOut]:
    rows = db.scalars(select(Organization).order_by(Organization.created_at.asc(), Organization.id.asc())).all()
    return [OrgOut.model_validate(o) for o in rows]

@router.get("/stats", response_model=OrgStatsOut)
def org_stats(
    _: Principal = Depends(require(ORG_READ)),
    db: Session = Depends(get_db),
) -> OrgStatsOut:
    counts = _user_counts(db)
    average = sum(c.user_count for c in counts) / len(counts) if counts else 0.0
    return OrgStatsOut(
        total_organizations=len(counts),
        organizations_with_users=counts,
        average_users_per_org=average,
    )

@router.get("/hierarchy", response_model=list[OrgTreeOut])
def org_hierarchy(
    _: Principal = Depends(require(ORG_READ)),
    db: Session = Depends(get_db),
) -> list[OrgTreeOut]:
    counts = {c.id: c.user_count for c in _user_counts(db)}
    roots = db.scalars(
        select(Organization)
        .where(Organization.parent_id.is_(None))
        .options(selectinload(Organization.children))
        .order_by(Organization.created_at.asc(), Organization.id.asc())
    ).all()
    return [_tree(o, counts) for o in roots]

@router.get("/{id}/children", response_model=OrgTreeOut)
def org_with_children(
    id: int,
    _: Principal = Depends(require(ORG_READ)),
    db: Session = Depends(get_db),
) -> OrgTreeOut:
    org = db.get(Organization, id)
    if org is None:
        raise NotFound("Organization not found")
    counts = {c.id: c.user_count for c in _user_counts(db)}
    return _tree(org, counts)

@router.post("", response_model=OrgOut)
def create_org(
    payload: OrgCreateIn,
    principal: Principal = Depends(require(ORG_CREATE)),
    db: Session = Depends(get_db),
) -> OrgOut:
    _ensure_parent_exists(db, payload.parent_id)

    org = Organization(name=payload.name, description=payload.description, parent_id=payload.parent_id)
    db.add(org)
    db.commit()
    db.refresh(org)
    logger.info("organization %s created by %s", org.id, principal.user_id)
    return OrgOut.model_validate(org)

@router.put("/{id}", response_model=OrgOut)
def update_org(
    id: int,
    payload: OrgUpdateIn,
    principal: Principal = Depends(require(ORG_UPDATE)),
    db: Session = Depends(get_db),
) -> OrgOut:
    org = db.get(Organization, id)
    if org is None:
        raise NotFound("Organization not found")

    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        del changes["name"]
    if changes.get("parent_id") is not None:
        _ensure_parent_exists(db, changes["parent_id"])

    for name, value in changes.items():
        setattr(org, name, value)

    db.add(org)
    db.commit()
    db.refresh(org)
    return OrgOut.model_validate(org)

@router.delete("/{id}", response_model=MessageOut)
def delete_org(
    id: int,
    principal: Principal = Depends(require(ORG_DELETE)),
    db: Session = Depends(get_db),
) -> MessageOut:
    org = db.get(Organization, id)
    if org is None:
        raise NotFound("Organization not found")

    members = db.scalar(select(func.count()).select_from(User).where(User.organization_id == id)) or 0
    if members:
        raise Forbidden("Cannot delete organization with existing users")

    if db.scalar(select(Organization.id).where(Organization.parent_id == id).limit(1)) is not None:
        raise Forbidden("Cannot delete organization with child organizations")

    if db.scalar(select(Task.id).where(Task.organization_id == id).limit(1)) is not None:
        raise Conflict("Cannot delete organization with existing tasks")

    db.delete(org)
    db.commit()
    logger.info("organization %s deleted by %s", id, principal.user_id)
    return MessageOut(message="Organization deleted successfully")
