import pytest

from secure_tasks.errors import Forbidden
from secure_tasks.models.enums import Role
from secure_tasks.rbac.guards import (
    ORG_DENIED,
    Access,
    authorize,
    check_organization,
    resolve_resource_org_id,
)
from secure_tasks.rbac.perms import Permission
from secure_tasks.rbac.principal import Principal

SCOPED = Access.of(permissions=[Permission.task_read], org_scoped=True)

def principal(role: Role, org_id: int | None = 1) -> Principal:
    return Principal(user_id=7, role=role, organization_id=org_id, email="x@example.com")

def test_resolve_prefers_body():
    assert resolve_resource_org_id({"organization_id": 3}, {}, {"organization_id": "4"}) == 3

def test_resolve_falls_back_to_query():
    assert resolve_resource_org_id(None, {}, {"organization_id": "4"}) == "4"
    assert resolve_resource_org_id({"title": "x"}, {}, {"organization_id": "4"}) == "4"

def test_resolve_path_id_is_unscoped():
    # a path id is never read as an org id
    assert resolve_resource_org_id(None, {"id": "9"}, {"organization_id": "4"}) is None
    assert resolve_resource_org_id({"organization_id": 3}, {"id": "9"}, {}) == 3

def test_resolve_nothing():
    assert resolve_resource_org_id(None, {}, {}) is None
    assert resolve_resource_org_id({"organization_id": None}, {}, {}) is None

@pytest.mark.parametrize("role", list(Role))
def test_unresolved_org_permits(role):
    check_organization(principal(role), None)

@pytest.mark.parametrize("role", list(Role))
def test_exact_match_only(role):
    check_organization(principal(role, 1), 1)
    check_organization(principal(role, 1), "1")

    with pytest.raises(Forbidden) as exc:
        check_organization(principal(role, 1), 2)
    assert exc.value.detail == ORG_DENIED

def test_principal_without_org_is_denied():
    with pytest.raises(Forbidden):
        check_organization(principal(Role.admin, None), 1)

def test_non_numeric_org_is_denied():
    with pytest.raises(Forbidden) as exc:
        check_organization(principal(Role.owner), "abc")
    assert exc.value.detail == ORG_DENIED

def test_guard_order_permission_before_org():
    access = Access.of(permissions=[Permission.org_delete], org_scoped=True)
    with pytest.raises(Forbidden) as exc:
        authorize(principal(Role.viewer, 1), access, 2)
    assert exc.value.detail == "Insufficient permissions"

def test_org_guard_only_runs_when_scoped():
    authorize(principal(Role.viewer, 1), Access.of(permissions=[Permission.task_read]), 2)
    with pytest.raises(Forbidden):
        authorize(principal(Role.viewer, 1), SCOPED, 2)
