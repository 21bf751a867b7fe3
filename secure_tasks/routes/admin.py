from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from secure_tasks.auth.tokens import now_utc
from secure_tasks.db import get_db
from secure_tasks.models.enums import Role, TaskStatus
from secure_tasks.models.org import Organization
from secure_tasks.models.task import Task
from secure_tasks.models.user import User
from secure_tasks.rbac.deps import require
from secure_tasks.rbac.guards import Access
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal

router = APIRouter(prefix="/admin", tags=["admin"])

ADMIN_READ = Access.of(roles=[Role.admin, Role.owner], permissions=[Permission.user_read])

def _count(db: Session, model, *where) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*where)) or 0

def system_stats(db: Session) -> dict:
    recent_users = db.scalars(select(User).order_by(User.created_at.desc(), User.id.desc()).limit(5)).all()
    recent_tasks = db.scalars(select(Task).order_by(Task.created_at.desc(), Task.id.desc()).limit(5)).all()
    return {
        "overview": {
            "total_users": _count(db, User),
            "total_organizations": _count(db, Organization),
            "total_tasks": _count(db, Task),
        },
        "users_by_role": {r.value: _count(db, User, User.role == r) for r in Role},
        "tasks_by_status": {s.value: _count(db, Task, Task.status == s) for s in TaskStatus},
        "recent": {
            "users": [
                {
                    "id": u.id,
                    "email": u.email,
                    "first_name": u.first_name,
                    "last_name": u.last_name,
                    "role": u.role.value,
                    "created_at": u.created_at,
                }
                for u in recent_users
            ],
            "tasks": [
                {"id": t.id, "title": t.title, "status": t.status.value, "created_at": t.created_at}
                for t in recent_tasks
            ],
        },
    }

@router.get("/stats")
def get_system_stats(
    _: Principal = Depends(require(ADMIN_READ)),
    db: Session = Depends(get_db),
) -> dict:
    return system_stats(db)

@router.get("/dashboard")
def get_dashboard(
    _: Principal = Depends(require(ADMIN_READ)),
    db: Session = Depends(get_db),
) -> dict:
    q = (
        select(Organization.id, Organization.name, func.count(User.id))
        .outerjoin(User, User.organization_id == Organization.id)
        .group_by(Organization.id, Organization.name)
        .order_by(Organization.id)
    )
    orgs = [{"id": i, "name": n, "user_count": c} for i, n, c in db.execute(q).all()]
    since = now_utc() - timedelta(days=7)

    return {
        **system_stats(db),
        "organization_stats": {
            "organizations": orgs,
            "average_users_per_org": sum(o["user_count"] for o in orgs) / len(orgs) if orgs else 0,
        },
        "user_activity": {
            "new_users_last_7_days": _count(db, User, User.created_at >= since),
            "new_tasks_last_7_days": _count(db, Task, Task.created_at >= since),
        },
    }
