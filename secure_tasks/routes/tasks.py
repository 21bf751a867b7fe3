from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from secure_tasks.db import get_db
from secure_tasks.models.enums import Role, TaskCategory, TaskStatus
from secure_tasks.rbac.deps import require
from secure_tasks.rbac.guards import Access
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal
from secure_tasks.schemas.auth import MessageOut
from secure_tasks.schemas.tasks import TaskCreateIn, TaskListOut, TaskOut, TaskUpdateIn
from secure_tasks.services import tasks as task_service
from secure_tasks.services.hierarchy import accessible_org_ids

router = APIRouter(prefix="/tasks", tags=["tasks"])

MANAGERS = [Role.owner, Role.admin]

TASK_CREATE = Access.of(roles=MANAGERS, permissions=[Permission.task_create], org_scoped=True)
TASK_READ = Access.of(permissions=[Permission.task_read], org_scoped=True)
TASK_UPDATE = Access.of(permissions=[Permission.task_update], org_scoped=True)
TASK_DELETE = Access.of(roles=MANAGERS, permissions=[Permission.task_delete], org_scoped=True)

@router.post("", response_model=TaskOut)
def create_task(
    payload: TaskCreateIn,
    principal: Principal = Depends(require(TASK_CREATE)),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = task_service.create_task(db, payload, principal)
    return TaskOut.model_validate(t)

@router.get("", response_model=TaskListOut)
def list_tasks(
    search: str | None = None,
    status: TaskStatus | None = None,
    category: TaskCategory | None = None,
    priority: int | None = Query(None, ge=1, le=5),
    assigned_to_id: int | None = None,
    created_by_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    sort_by: Literal["title", "created_at", "updated_at", "priority", "status", "due_date"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    principal: Principal = Depends(require(TASK_READ)),
    db: Session = Depends(get_db),
) -> TaskListOut:
    filters = task_service.TaskFilters(
        search=search,
        status=status,
        category=category,
        priority=priority,
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    org_ids = accessible_org_ids(db, principal.organization_id)
    rows, total = task_service.list_tasks(db, filters, principal, org_ids)
    return TaskListOut(tasks=[TaskOut.model_validate(r) for r in rows], total=total)

@router.get("/{id}", response_model=TaskOut)
def get_task(
    id: int,
    principal: Principal = Depends(require(TASK_READ)),
    db: Session = Depends(get_db),
) -> TaskOut:
    org_ids = accessible_org_ids(db, principal.organization_id)
    t = task_service.get_visible_task(db, id, principal, org_ids)
    return TaskOut.model_validate(t)

@router.patch("/{id}", response_model=TaskOut)
def update_task(
    id: int,
    payload: TaskUpdateIn,
    principal: Principal = Depends(require(TASK_UPDATE)),
    db: Session = Depends(get_db),
) -> TaskOut:
    org_ids = accessible_org_ids(db, principal.organization_id)
    t = task_service.update_task(db, id, payload, principal, org_ids)
    return TaskOut.model_validate(t)

@router.delete("/{id}", response_model=MessageOut)
def delete_task(
    id: int,
    principal: Principal = Depends(require(TASK_DELETE)),
    db: Session = Depends(get_db),
) -> MessageOut:
    org_ids = accessible_org_ids(db, principal.organization_id)
    task_service.delete_task(db, id, principal, org_ids)
    return MessageOut(message="Task deleted successfully")
