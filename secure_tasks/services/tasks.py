"""Task business rules: organization scoping and viewer restrictions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from secure_tasks.errors import Forbidden, NotFound
from secure_tasks.models.enums import Role, TaskCategory, TaskStatus
from secure_tasks.models.task import Task
from secure_tasks.models.user import User
from secure_tasks.rbac.principal import Principal
from secure_tasks.schemas.tasks import TaskCreateIn, TaskUpdateIn

logger = logging.getLogger(__name__)

VIEWER_EDITABLE_FIELDS = frozenset({"status", "description"})
NULLABLE_FIELDS = frozenset({"description", "due_date", "assigned_to_id"})
SORTABLE_FIELDS = {
    "title": Task.title,
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
    "priority": Task.priority,
    "status": Task.status,
    "due_date": Task.due_date,
}

@dataclass
class TaskFilters:
    search: str | None = None
    status: TaskStatus | None = None
    category: TaskCategory | None = None
    priority: int | None = None
    assigned_to_id: int | None = None
    created_by_id: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 50

def _ensure_assignee_exists(db: Session, user_id: int | None) -> None:
    if user_id is not None and db.get(User, user_id) is None:
        raise NotFound("Assigned user not found")

def create_task(db: Session, payload: TaskCreateIn, principal: Principal) -> Task:
    if principal.organization_id is None:
        raise Forbidden("Access denied: You do not belong to an organization")
    _ensure_assignee_exists(db, payload.assigned_to_id)

    t = Task(
        title=payload.title,
        description=payload.description or "",
        category=payload.category,
        priority=payload.priority,
        due_date=payload.due_date,
        assigned_to_id=payload.assigned_to_id,
        created_by_id=principal.user_id,
        # always the caller's org, whatever the body said
        organization_id=principal.organization_id,
        status=TaskStatus.open,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    logger.info("task %s created by user %s in org %s", t.id, principal.user_id, t.organization_id)
    return t

def list_tasks(
    db: Session,
    filters: TaskFilters,
    principal: Principal,
    accessible_org_ids: list[int],
) -> tuple[list[Task], int]:
    q = select(Task).where(Task.organization_id.in_(accessible_org_ids))

    if filters.search:
        pattern = f"%{filters.search}%"
        q = q.where(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
    if filters.status is not None:
        q = q.where(Task.status == filters.status)
    if filters.category is not None:
        q = q.where(Task.category == filters.category)
    if filters.priority is not None:
        q = q.where(Task.priority == filters.priority)
    if filters.assigned_to_id is not None:
        q = q.where(Task.assigned_to_id == filters.assigned_to_id)
    if filters.created_by_id is not None:
        q = q.where(Task.created_by_id == filters.created_by_id)
    if filters.date_from is not None:
        q = q.where(Task.created_at >= filters.date_from)
    if filters.date_to is not None:
        q = q.where(Task.created_at <= filters.date_to)

    # viewers only see their own assignments
    if principal.role == Role.viewer:
        q = q.where(Task.assigned_to_id == principal.user_id)

    total = db.scalar(select(func.count()).select_from(q.subquery())) or 0

    column = SORTABLE_FIELDS.get(filters.sort_by, Task.created_at)
    ordering = column.asc() if filters.sort_order == "asc" else column.desc()
    q = q.order_by(ordering, Task.id.desc()).offset((filters.page - 1) * filters.limit).limit(filters.limit)

    return list(db.scalars(q).all()), total

def get_visible_task(
    db: Session,
    task_id: int,
    principal: Principal,
    accessible_org_ids: list[int],
) -> Task:
    t = db.get(Task, task_id)
    if t is None:
        raise NotFound("Task not found")

    if t.organization_id not in accessible_org_ids:
        raise Forbidden("Access denied: Task belongs to different organization")

    if principal.role == Role.viewer and t.assigned_to_id != principal.user_id:
        raise Forbidden("Access denied: You can only view tasks assigned to you")

    return t

def update_task(
    db: Session,
    task_id: int,
    payload: TaskUpdateIn,
    principal: Principal,
    accessible_org_ids: list[int],
) -> Task:
    t = get_visible_task(db, task_id, principal, accessible_org_ids)
    # every key the caller sent, including ones the schema does not declare
    sent = payload.model_fields_set | set(payload.model_extra or {})
    fields = payload.model_fields_set & set(TaskUpdateIn.model_fields)

    if principal.role == Role.viewer:
        if t.assigned_to_id != principal.user_id:
            raise Forbidden("Access denied: You can only update tasks assigned to you")
        # all or nothing, never a partial update
        if not sent <= VIEWER_EDITABLE_FIELDS:
            raise Forbidden("Access denied: You can only update status and description")

    if "assigned_to_id" in fields:
        _ensure_assignee_exists(db, payload.assigned_to_id)

    for name in fields:
        value = getattr(payload, name)
        if value is None and name not in NULLABLE_FIELDS:
            continue
        setattr(t, name, value)

    if "assigned_to_id" in fields:
        # drop the cached assignee so the new foreign key is what gets flushed
        db.expire(t, ["assigned_to"])

    db.add(t)
    db.commit()
    db.refresh(t)
    return t

def delete_task(
    db: Session,
    task_id: int,
    principal: Principal,
    accessible_org_ids: list[int],
) -> None:
    t = get_visible_task(db, task_id, principal, accessible_org_ids)

    if principal.role == Role.viewer:
        raise Forbidden("Access denied: You cannot delete tasks")

    db.delete(t)
    db.commit()
    logger.info("task %s deleted by user %s", task_id, principal.user_id)
