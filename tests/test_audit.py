import json

import pytest
from conftest import auth, make_task, make_user

from secure_tasks.models.audit_log import AuditLog
from secure_tasks.models.enums import AuditAction, AuditResource, Role
from secure_tasks.services import audit

@pytest.mark.parametrize(
    "method,url,expected",
    [
        ("GET", "/api/tasks/42", (AuditAction.read, AuditResource.task)),
        ("POST", "/api/tasks", (AuditAction.create, AuditResource.task)),
        ("PUT", "/api/users/3/role", (AuditAction.update, AuditResource.user)),
        ("PATCH", "/api/tasks/3", (AuditAction.update, AuditResource.task)),
        ("DELETE", "/api/organizations/9", (AuditAction.delete, AuditResource.organization)),
        ("GET", "/api/auth/profile", (AuditAction.read, AuditResource.auth)),
        ("POST", "/api/auth/login", None),
        ("POST", "/api/auth/register", None),
        ("GET", "/api/health", None),
        ("GET", "/api/metrics", None),
        ("GET", "/api/admin/stats", None),
        ("OPTIONS", "/api/tasks", None),
    ],
)
def test_classify(method, url, expected):
    info = audit.classify(method, url)
    if expected is None:
        assert info is None
    else:
        assert (info.action, info.resource) == expected

def test_extract_resource_id():
    assert audit.extract_resource_id("/api/tasks/42") == 42
    assert audit.extract_resource_id("/api/users/3/role") == 3
    assert audit.extract_resource_id("/api/tasks", {"id": 7}) == 7
    # path wins over body
    assert audit.extract_resource_id("/api/tasks/42", {"id": 7}) == 42
    assert audit.extract_resource_id("/api/tasks", {"id": "7"}) is None
    assert audit.extract_resource_id("/api/tasks", [{"id": 7}]) is None
    assert audit.extract_resource_id("/api/tasks") is None
    assert audit.extract_resource_id("/api/tasks/v2abc") is None

def entries(db):
    db.expire_all()
    return db.query(AuditLog).order_by(AuditLog.id).all()

def test_successful_request_is_recorded(client, db_session, admin, org):
    t = make_task(db_session, org, admin)

    r = client.get(f"/api/tasks/{t.id}", headers={**auth(admin), "user-agent": "pytest-agent"})
    assert r.status_code == 200
    # the body passes through untouched
    assert r.json()["id"] == t.id

    [entry] = entries(db_session)
    assert entry.action == AuditAction.read
    assert entry.resource == AuditResource.task
    assert entry.resource_id == t.id
    assert entry.user_id == admin.id
    assert entry.user_agent == "pytest-agent"

    details = json.loads(entry.details)
    assert details["method"] == "GET"
    assert details["url"] == f"/api/tasks/{t.id}"
    assert details["success"] is True

def test_create_takes_id_from_response(client, db_session, admin):
    r = client.post("/api/tasks", json={"title": "new"}, headers=auth(admin))
    assert r.status_code == 200

    [entry] = entries(db_session)
    assert entry.action == AuditAction.create
    assert entry.resource_id == r.json()["id"]

def test_failures_and_anonymous_calls_are_not_recorded(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin)

    assert client.get(f"/api/tasks/{t.id}", headers=auth(viewer)).status_code == 403
    assert client.get("/api/tasks/999", headers=auth(admin)).status_code == 404
    assert client.get("/api/tasks").status_code == 401
    assert client.get("/api/health").status_code == 200
    assert client.get("/api/admin/stats", headers=auth(admin)).status_code == 200

    assert entries(db_session) == []

def test_login_is_not_recorded(client, db_session, admin):
    r = client.post("/api/auth/login", json={"email": admin.email, "password": "password123"})
    assert r.status_code == 200
    assert entries(db_session) == []

def test_profile_is_recorded_as_auth_read(client, db_session, viewer):
    assert client.get("/api/auth/profile", headers=auth(viewer)).status_code == 200

    [entry] = entries(db_session)
    assert (entry.action, entry.resource, entry.resource_id) == (AuditAction.read, AuditResource.auth, None)

def test_recording_failure_does_not_break_the_request(client, db_session, admin, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(audit, "log_entry", boom)

    r = client.get("/api/tasks", headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["total"] == 0

def test_log_listing(client, db_session, owner, admin, org):
    for _ in range(3):
        audit.log_entry(db_session, AuditAction.read, AuditResource.task, 1, admin.id)
    audit.log_entry(db_session, AuditAction.delete, AuditResource.task, 2, owner.id)

    r = client.get("/api/audit/logs", params={"limit": 2}, headers=auth(owner))
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 4
    assert body["page"] == 1
    assert body["limit"] == 2
    # newest first
    assert [e["action"] for e in body["logs"]] == ["delete", "read"]

    r = client.get(
        "/api/audit/logs",
        params={"user_id": admin.id, "action": "read", "resource": "task", "page": 2, "limit": 2},
        headers=auth(owner),
    )
    body = r.json()
    assert body["total"] == 3
    assert len(body["logs"]) == 1

def test_log_listing_limits(client, owner):
    assert client.get("/api/audit/logs", params={"limit": 101}, headers=auth(owner)).status_code == 422
    assert client.get("/api/audit/logs", params={"limit": 0}, headers=auth(owner)).status_code == 422
    assert client.get("/api/audit/logs", params={"page": 0}, headers=auth(owner)).status_code == 422

def test_explicit_entries_for_role_changes(client, db_session, admin, org):
    target = make_user(db_session, Role.viewer, org)

    r = client.patch(
        "/api/auth/promote",
        json={"email": target.email, "role": "admin"},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text

    [entry] = entries(db_session)
    assert entry.action == AuditAction.update
    assert entry.resource == AuditResource.user
    assert entry.resource_id == target.id
    assert entry.user_id == admin.id
    assert "from viewer to admin" in entry.details
