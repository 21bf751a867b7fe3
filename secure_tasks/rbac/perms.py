from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from secure_tasks.models.enums import Role

class Permission(str, Enum):
    task_create = "task:create"
    task_read = "task:read"
    task_update = "task:update"
    task_delete = "task:delete"
    task_assign = "task:assign"

    user_create = "user:create"
    user_read = "user:read"
    user_update = "user:update"
    user_delete = "user:delete"

    org_create = "org:create"
    org_read = "org:read"
    org_update = "org:update"
    org_delete = "org:delete"

    audit_read = "audit:read"

_ADMIN = frozenset({
    Permission.task_create,
    Permission.task_read,
    Permission.task_update,
    Permission.task_delete,
    Permission.task_assign,
    Permission.user_create,
    Permission.user_read,
    Permission.user_update,
    Permission.user_delete,
    Permission.org_read,
    Permission.audit_read,
})

# viewers move cards: read everything visible, update task status/description
_VIEWER = frozenset({
    Permission.task_read,
    Permission.task_update,
    Permission.user_read,
    Permission.org_read,
})

ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = MappingProxyType({
    Role.owner: frozenset(Permission),
    Role.admin: _ADMIN,
    Role.viewer: _VIEWER,
})

def permissions_for(role: Role) -> frozenset[Permission]:
    return ROLE_PERMISSIONS.get(role, frozenset())
