from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from secure_tasks.auth.passwords import hash_password
from secure_tasks.db import SessionLocal
from secure_tasks.models.enums import Role, TaskStatus
from secure_tasks.models.org import Organization
from secure_tasks.models.task import Task
from secure_tasks.models.user import User

DEFAULT_PASSWORD = "password123"

@dataclass
class SeedResult:
    owner_email: str
    admin_email: str
    viewer_email: str
    child_admin_email: str
    parent_org_id: int
    child_org_id: int
    task_ids: list[int]

def get_or_create_org(db: Session, name: str, parent_id: int | None = None) -> Organization:
    o = db.scalar(select(Organization).where(Organization.name == name))
    if o is None:
        o = Organization(name=name, parent_id=parent_id)
        db.add(o)
        db.flush()
    return o

def get_or_create_user(
    db: Session,
    email: str,
    first_name: str,
    last_name: str,
    role: Role,
    organization_id: int,
) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(
            email=email,
            password=hash_password(DEFAULT_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            role=role,
            organization_id=organization_id,
        )
        db.add(u)
        db.flush()
    elif u.role != role or u.organization_id != organization_id:
        # keep it stable if you re-run seed
        u.role = role
        u.organization_id = organization_id
        db.add(u)
        db.flush()
    return u

def get_or_create_task(
    db: Session,
    organization_id: int,
    title: str,
    created_by_id: int,
    assigned_to_id: int | None,
    status: TaskStatus = TaskStatus.open,
) -> Task:
    t = db.scalar(select(Task).where(Task.organization_id == organization_id, Task.title == title))
    if t is None:
        t = Task(
            organization_id=organization_id,
            title=title,
            created_by_id=created_by_id,
            assigned_to_id=assigned_to_id,
            status=status,
        )
        db.add(t)
        db.flush()
    elif t.assigned_to_id != assigned_to_id:
        t.assigned_to_id = assigned_to_id
        db.add(t)
        db.flush()
    return t

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        parent = get_or_create_org(db, "Acme Corp")
        child = get_or_create_org(db, "Acme Corp - Engineering", parent_id=parent.id)

        owner = get_or_create_user(db, "owner@example.com", "Olivia", "Owner", Role.owner, parent.id)
        admin = get_or_create_user(db, "admin@example.com", "Adam", "Admin", Role.admin, parent.id)
        viewer = get_or_create_user(db, "viewer@example.com", "Vera", "Viewer", Role.viewer, parent.id)
        child_admin = get_or_create_user(db, "eng-admin@example.com", "Eli", "Engineer", Role.admin, child.id)

        tasks = [
            get_or_create_task(db, parent.id, "Quarterly planning", owner.id, admin.id),
            get_or_create_task(db, parent.id, "Update onboarding docs", admin.id, viewer.id, TaskStatus.in_progress),
            get_or_create_task(db, child.id, "Fix flaky deploy", child_admin.id, child_admin.id),
        ]

        db.commit()

        return SeedResult(
            owner_email=owner.email,
            admin_email=admin.email,
            viewer_email=viewer.email,
            child_admin_email=child_admin.email,
            parent_org_id=parent.id,
            child_org_id=child.id,
            task_ids=[t.id for t in tasks],
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"parent_org_id={r.parent_org_id}")
    print(f"child_org_id={r.child_org_id}")
    print(f"task_ids={r.task_ids}")
    print(f"users (password: {DEFAULT_PASSWORD}):")
    print(f"  owner:       {r.owner_email}")
    print(f"  admin:       {r.admin_email}")
    print(f"  viewer:      {r.viewer_email}")
    print(f"  child admin: {r.child_admin_email}")
