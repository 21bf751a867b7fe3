from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from secure_tasks.auth.deps import get_current_principal
from secure_tasks.auth.passwords import hash_password, verify_password
from secure_tasks.auth.tokens import issue_access_token
from secure_tasks.config import settings
from secure_tasks.db import get_db
from secure_tasks.errors import Conflict, NotFound, Unauthorized
from secure_tasks.models.enums import AuditAction, AuditResource, Role
from secure_tasks.models.org import Organization
from secure_tasks.models.user import User
from secure_tasks.ratelimit import rate_limit
from secure_tasks.rbac.deps import require
from secure_tasks.rbac.guards import Access
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal
from secure_tasks.schemas.auth import (
    AuthOut,
    AuthUserOut,
    LoginIn,
    MessageOut,
    ProfileOut,
    PromoteIn,
    RegisterIn,
)
from secure_tasks.services import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

PROMOTE = Access.of(roles=[Role.admin, Role.owner], permissions=[Permission.user_update])

def _auth_out(user: User) -> AuthOut:
    return AuthOut(
        access_token=issue_access_token(user),
        user=AuthUserOut(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            organization_id=user.organization_id,
        ),
    )

def _count_managers(db: Session) -> int:
    return db.scalar(
        select(func.count()).select_from(User).where(User.role.in_([Role.admin, Role.owner]))
    ) or 0

@router.post("/login", response_model=AuthOut)
def login(
    payload: LoginIn,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:login",
            limit_per_window=settings.rate_limit_auth_login_per_min,
            window_seconds=60,
        )
    ),
) -> AuthOut:
    email = payload.email.lower().strip()
    user = db.scalar(select(User).where(User.email == email))
    if user is None or not verify_password(payload.password, user.password):
        raise Unauthorized("Invalid credentials")

    logger.info("user %s logged in from %s", user.id, request.client.host if request.client else "unknown")
    return _auth_out(user)

@router.post("/register", response_model=AuthOut)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:register",
            limit_per_window=settings.rate_limit_auth_register_per_min,
            window_seconds=60,
        )
    ),
) -> AuthOut:
    email = payload.email.lower().strip()
    if db.scalar(select(User).where(User.email == email)) is not None:
        raise Conflict("User with this email already exists")

    # first user administers a fresh org; everyone else joins the oldest org as a viewer
    user_count = db.scalar(select(func.count()).select_from(User)) or 0
    if user_count == 0:
        role = Role.admin
        org = Organization(
            name=f"{payload.first_name} {payload.last_name}'s Organization",
            description="Default organization created for the first admin user",
        )
        db.add(org)
        db.flush()
    else:
        role = Role.viewer
        org = db.scalar(select(Organization).order_by(Organization.id).limit(1))
        if org is None:
            org = Organization(name="Default Organization", description="Default organization for users")
            db.add(org)
            db.flush()

    user = User(
        email=email,
        password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=role,
        organization_id=org.id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user %s as %s in org %s", user.id, role.value, org.id)

    return _auth_out(user)

@router.get("/profile", response_model=ProfileOut)
def profile(principal: Principal = Depends(get_current_principal)) -> ProfileOut:
    return ProfileOut(
        user_id=principal.user_id,
        email=principal.email,
        role=principal.role,
        organization_id=principal.organization_id,
    )

@router.patch("/promote", response_model=MessageOut)
def promote_user(
    payload: PromoteIn,
    principal: Principal = Depends(require(PROMOTE)),
    db: Session = Depends(get_db),
) -> MessageOut:
    email = payload.email.lower().strip()
    user = db.scalar(select(User).where(User.email == email))
    if user is None:
        raise NotFound("User not found")

    old_role = user.role
    user.role = payload.role
    db.add(user)
    db.commit()

    audit.log_entry(
        db,
        AuditAction.update,
        AuditResource.user,
        user.id,
        principal.user_id,
        details=f"User role changed from {old_role.value} to {payload.role.value} by {principal.email}",
    )
    return MessageOut(message=f"User {user.email} role updated to {payload.role.value}")

@router.patch("/bootstrap-admin", response_model=MessageOut)
def bootstrap_admin(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> MessageOut:
    if _count_managers(db) > 0:
        raise Conflict("Admin users already exist in the system")

    user = db.get(User, principal.user_id)
    if user is None:
        raise Unauthorized("user not found")

    old_role = user.role
    user.role = Role.admin
    db.add(user)
    db.commit()

    audit.log_entry(
        db,
        AuditAction.update,
        AuditResource.user,
        user.id,
        user.id,
        details=(
            "User bootstrapped to admin (no admins existed). "
            f"Role changed from {old_role.value} to {Role.admin.value}"
        ),
    )
    return MessageOut(message="You have been promoted to Admin. No admin users existed in the system.")

@router.post("/fix-organization", response_model=MessageOut)
def fix_organization(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> MessageOut:
    user = db.get(User, principal.user_id)
    if user is None:
        raise Unauthorized("user not found")

    if user.organization_id is not None:
        return MessageOut(message="User already has an organization")

    org = Organization(
        name=f"{user.first_name} {user.last_name}'s Organization",
        description="Default organization created for existing user",
    )
    db.add(org)
    db.flush()
    user.organization_id = org.id
    db.add(user)
    db.commit()
    logger.info("assigned user %s to new org %s", user.id, org.id)
    return MessageOut(message="User organization fixed successfully")
