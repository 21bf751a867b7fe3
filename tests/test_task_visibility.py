import pytest
from conftest import auth, make_org, make_task, make_user

from secure_tasks.models.enums import Role, TaskStatus
from secure_tasks.models.task import Task

def test_viewer_updates_status_and_description(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin, assignee=viewer)

    r = client.patch(
        f"/api/tasks/{t.id}",
        json={"status": "in_progress", "description": "on it"},
        headers=auth(viewer),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "in_progress"
    assert r.json()["description"] == "on it"

def test_viewer_extra_field_rejects_whole_update(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin, assignee=viewer)

    r = client.patch(
        f"/api/tasks/{t.id}",
        json={"status": "done", "priority": 5},
        headers=auth(viewer),
    )
    assert r.status_code == 403

    # nothing applied, not even the allowed field
    db_session.expire_all()
    stored = db_session.get(Task, t.id)
    assert stored.status == TaskStatus.open
    assert stored.priority == 1

@pytest.mark.parametrize("extra", ["created_by_id", "organization_id", "foo"])
def test_viewer_undeclared_field_rejects_whole_update(client, db_session, admin, viewer, org, extra):
    t = make_task(db_session, org, admin, assignee=viewer)
    value = org.id if extra == "organization_id" else viewer.id

    r = client.patch(
        f"/api/tasks/{t.id}",
        json={"status": "done", extra: value},
        headers=auth(viewer),
    )
    assert r.status_code == 403, r.text

    db_session.expire_all()
    stored = db_session.get(Task, t.id)
    assert stored.status == TaskStatus.open
    assert stored.created_by_id == admin.id

def test_admin_undeclared_fields_are_not_applied(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin)

    r = client.patch(
        f"/api/tasks/{t.id}",
        json={"title": "renamed", "created_by_id": viewer.id},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["title"] == "renamed"
    assert r.json()["created_by_id"] == admin.id

def test_unknown_assignee_is_not_found(client, db_session, admin, org):
    r = client.post("/api/tasks", json={"title": "x", "assigned_to_id": 99999}, headers=auth(admin))
    assert r.status_code == 404
    assert r.json()["detail"] == "Assigned user not found"
    assert db_session.query(Task).count() == 0

    t = make_task(db_session, org, admin)
    r = client.patch(f"/api/tasks/{t.id}", json={"assigned_to_id": 99999}, headers=auth(admin))
    assert r.status_code == 404
    assert r.json()["detail"] == "Assigned user not found"

    db_session.expire_all()
    assert db_session.get(Task, t.id).assigned_to_id is None

def test_viewer_cannot_touch_unassigned_tasks(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin)

    r = client.get(f"/api/tasks/{t.id}", headers=auth(viewer))
    assert r.status_code == 403

    r = client.patch(f"/api/tasks/{t.id}", json={"status": "done"}, headers=auth(viewer))
    assert r.status_code == 403

def test_viewer_cannot_create_or_delete(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin, assignee=viewer)

    r = client.post("/api/tasks", json={"title": "mine"}, headers=auth(viewer))
    assert r.status_code == 403

    r = client.delete(f"/api/tasks/{t.id}", headers=auth(viewer))
    assert r.status_code == 403
    assert db_session.get(Task, t.id) is not None

def test_viewer_list_shows_only_assignments(client, db_session, admin, viewer, org):
    mine = make_task(db_session, org, admin, assignee=viewer, title="mine")
    make_task(db_session, org, admin, title="someone else's")

    r = client.get("/api/tasks", headers=auth(viewer))
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 1
    assert [t["id"] for t in body["tasks"]] == [mine.id]

    r = client.get("/api/tasks", headers=auth(admin))
    assert r.json()["total"] == 2

def test_admin_can_edit_everything_and_reassign(client, db_session, admin, viewer, org):
    t = make_task(db_session, org, admin)
    other = make_user(db_session, Role.viewer, org)

    r = client.patch(
        f"/api/tasks/{t.id}",
        json={"title": "renamed", "priority": 4, "assigned_to_id": viewer.id},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["assigned_to"]["id"] == viewer.id

    r = client.patch(f"/api/tasks/{t.id}", json={"assigned_to_id": other.id}, headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["assigned_to_id"] == other.id
    assert r.json()["assigned_to"]["id"] == other.id
    assert r.json()["title"] == "renamed"

    r = client.patch(f"/api/tasks/{t.id}", json={"assigned_to_id": None}, headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["assigned_to"] is None

def test_create_lands_in_callers_org(client, admin, org):
    r = client.post(
        "/api/tasks",
        json={"title": "ship it", "priority": 3, "organization_id": org.id},
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["organization_id"] == org.id
    assert body["status"] == "open"
    assert body["created_by"]["id"] == admin.id

def test_missing_task_is_not_found(client, admin):
    r = client.get("/api/tasks/999", headers=auth(admin))
    assert r.status_code == 404
    assert r.json()["detail"] == "Task not found"

def test_delete_by_admin(client, db_session, admin, org):
    t = make_task(db_session, org, admin)

    r = client.delete(f"/api/tasks/{t.id}", headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["message"] == "Task deleted successfully"

    r = client.get(f"/api/tasks/{t.id}", headers=auth(admin))
    assert r.status_code == 404

def test_parent_admin_sees_child_tasks_but_guard_is_exact(client, db_session):
    parent = make_org(db_session, "parent")
    child = make_org(db_session, "child", parent=parent)
    parent_admin = make_user(db_session, Role.admin, parent)
    child_admin = make_user(db_session, Role.admin, child)

    child_task = make_task(db_session, child, child_admin)
    parent_task = make_task(db_session, parent, parent_admin)

    # resolver: one level down is visible
    r = client.get(f"/api/tasks/{child_task.id}", headers=auth(parent_admin))
    assert r.status_code == 200

    r = client.get("/api/tasks", headers=auth(parent_admin))
    assert {t["id"] for t in r.json()["tasks"]} == {child_task.id, parent_task.id}

    # guard: naming the child org explicitly is refused
    r = client.get("/api/tasks", params={"organization_id": child.id}, headers=auth(parent_admin))
    assert r.status_code == 403

    r = client.post(
        "/api/tasks",
        json={"title": "x", "organization_id": child.id},
        headers=auth(parent_admin),
    )
    assert r.status_code == 403

    # nothing flows upward
    r = client.get(f"/api/tasks/{parent_task.id}", headers=auth(child_admin))
    assert r.status_code == 403

def test_list_limit_bounds(client, admin):
    assert client.get("/api/tasks", params={"limit": 101}, headers=auth(admin)).status_code == 422
    assert client.get("/api/tasks", params={"limit": 0}, headers=auth(admin)).status_code == 422
    assert client.get("/api/tasks", params={"limit": 100}, headers=auth(admin)).status_code == 200

def test_list_filters_and_sorting(client, db_session, admin, org):
    low = make_task(db_session, org, admin, title="alpha report")
    high = make_task(db_session, org, admin, title="beta report")
    make_task(db_session, org, admin, title="unrelated")
    high.priority = 5
    db_session.commit()

    r = client.get(
        "/api/tasks",
        params={"search": "report", "sort_by": "priority", "sort_order": "desc"},
        headers=auth(admin),
    )
    assert r.status_code == 200
    assert [t["id"] for t in r.json()["tasks"]] == [high.id, low.id]

    r = client.get("/api/tasks", params={"priority": 5}, headers=auth(admin))
    assert r.json()["total"] == 1
