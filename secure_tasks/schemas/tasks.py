from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from secure_tasks.models.enums import TaskCategory, TaskStatus
from secure_tasks.schemas.users import UserBrief

class TaskCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    category: TaskCategory = TaskCategory.work
    priority: int = Field(default=1, ge=1, le=5)
    due_date: datetime | None = None
    assigned_to_id: int | None = None
    # only consulted by the organization guard
    organization_id: int | None = None

class TaskUpdateIn(BaseModel):
    # unknown keys are kept so the viewer field check sees them
    model_config = ConfigDict(extra="allow")

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    status: TaskStatus | None = None
    category: TaskCategory | None = None
    priority: int | None = Field(default=None, ge=1, le=5)
    due_date: datetime | None = None
    assigned_to_id: int | None = None

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None
    status: TaskStatus
    category: TaskCategory
    priority: int
    due_date: datetime | None
    organization_id: int
    created_by_id: int
    assigned_to_id: int | None
    created_by: UserBrief | None = None
    assigned_to: UserBrief | None = None
    created_at: datetime
    updated_at: datetime

class TaskListOut(BaseModel):
    tasks: list[TaskOut]
    total: int
