import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from secure_tasks.auth.passwords import hash_password
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
from secure_tasks.schemas.users import RoleUpdateIn, UserBrief, UserCreateIn, UserOut, UserUpdateIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

MANAGERS = [Role.admin, Role.owner]

USER_READ = Access.of(roles=MANAGERS, permissions=[Permission.user_read])
USER_CREATE = Access.of(roles=MANAGERS, permissions=[Permission.user_create])
USER_UPDATE = Access.of(roles=MANAGERS, permissions=[Permission.user_update])
USER_DELETE = Access.of(roles=[Role.owner], permissions=[Permission.user_delete])

def _count_role(db: Session, *roles: Role) -> int:
    return db.scalar(select(func.count()).select_from(User).where(User.role.in_(roles))) or 0

def _email_taken(db: Session, email: str) -> bool:
    return db.scalar(select(User.id).where(User.email == email)) is not None

@router.get("", response_model=list[UserOut])
def list_users(
    _: Principal = Depends(require(USER_READ)),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    rows = db.scalars(select(User).order_by(User.created_at.asc(), User.id.asc())).all()
    return [UserOut.model_validate(u) for u in rows]

@router.get("/for-assignment", response_model=list[UserBrief])
def list_users_for_assignment(
    _: Principal = Depends(require(USER_READ)),
    db: Session = Depends(get_db),
) -> list[UserBrief]:
    rows = db.scalars(select(User).order_by(User.first_name.asc(), User.last_name.asc())).all()
    return [UserBrief.model_validate(u) for u in rows]

@router.get("/stats")
def user_stats(
    _: Principal = Depends(require(USER_READ)),
    db: Session = Depends(get_db),
) -> dict:
    viewers = _count_role(db, Role.viewer)
    return {
        "total_users": db.scalar(select(func.count()).select_from(User)) or 0,
        "admin_users": _count_role(db, Role.admin, Role.owner),
        "viewer_users": viewers,
        "total_organizations": db.scalar(select(func.count()).select_from(Organization)) or 0,
        "role_distribution": {
            Role.owner.value: _count_role(db, Role.owner),
            Role.admin.value: _count_role(db, Role.admin),
            Role.viewer.value: viewers,
        },
    }

@router.post("", response_model=UserOut)
def create_user(
    payload: UserCreateIn,
    principal: Principal = Depends(require(USER_CREATE)),
    db: Session = Depends(get_db),
) -> UserOut:
    email = payload.email.lower().strip()
    if _email_taken(db, email):
        raise Conflict("User with this email already exists")

    u = User(
        email=email,
        password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role or Role.viewer,
        # default to the creator's org
        organization_id=payload.organization_id or principal.organization_id,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    logger.info("user %s created by %s", u.id, principal.user_id)
    return UserOut.model_validate(u)

@router.put("/{id}", response_model=UserOut)
def update_user(
    id: int,
    payload: UserUpdateIn,
    principal: Principal = Depends(require(USER_UPDATE)),
    db: Session = Depends(get_db),
) -> UserOut:
    u = db.get(User, id)
    if u is None:
        raise NotFound("User not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower().strip()
        if changes["email"] != u.email and _email_taken(db, changes["email"]):
            raise Conflict("User with this email already exists")
    if "password" in changes:
        changes["password"] = hash_password(changes["password"])

    for name, value in changes.items():
        setattr(u, name, value)

    db.add(u)
    db.commit()
    db.refresh(u)
    return UserOut.model_validate(u)

@router.delete("/{id}", response_model=MessageOut)
def delete_user(
    id: int,
    principal: Principal = Depends(require(USER_DELETE)),
    db: Session = Depends(get_db),
) -> MessageOut:
    u = db.get(User, id)
    if u is None:
        raise NotFound("User not found")

    if u.id == principal.user_id:
        raise Forbidden("Cannot delete your own account")

    if u.role in (Role.admin, Role.owner) and _count_role(db, Role.admin, Role.owner) <= 1:
        raise Forbidden("Cannot delete the last admin/owner user")

    created = db.scalar(select(func.count()).select_from(Task).where(Task.created_by_id == u.id)) or 0
    if created:
        raise Conflict("Cannot delete a user who created tasks")

    db.execute(update(Task).where(Task.assigned_to_id == u.id).values(assigned_to_id=None))
    db.delete(u)
    db.commit()
    logger.info("user %s deleted by %s", id, principal.user_id)
    return MessageOut(message="User deleted successfully")

@router.put("/{id}/role", response_model=MessageOut)
def update_user_role(
    id: int,
    payload: RoleUpdateIn,
    principal: Principal = Depends(require(USER_UPDATE)),
    db: Session = Depends(get_db),
) -> MessageOut:
    u = db.get(User, id)
    if u is None:
        raise NotFound("User not found")

    old_role = u.role
    u.role = payload.role
    db.add(u)
    db.commit()
    logger.info("user %s role changed from %s to %s by %s", u.id, old_role.value, payload.role.value, principal.email)
    return MessageOut(message=f"User role updated to {payload.role.value}")
