from enum import Enum

class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    viewer = "viewer"

class TaskStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    done = "done"
    cancelled = "cancelled"

class TaskCategory(str, Enum):
    work = "work"
    personal = "personal"
    urgent = "urgent"

class AuditAction(str, Enum):
    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    login = "login"
    logout = "logout"

class AuditResource(str, Enum):
    task = "task"
    user = "user"
    organization = "organization"
    auth = "auth"
