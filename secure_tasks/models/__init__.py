from secure_tasks.models.audit_log import AuditLog
from secure_tasks.models.org import Organization
from secure_tasks.models.task import Task
from secure_tasks.models.user import User

__all__ = ["User", "Organization", "Task", "AuditLog"]
