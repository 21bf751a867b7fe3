import os
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from secure_tasks import middleware
from secure_tasks.auth.passwords import hash_password
from secure_tasks.auth.tokens import issue_access_token
from secure_tasks.config import settings
from secure_tasks.db import get_db
from secure_tasks.main import create_app
from secure_tasks.models.base import Base
from secure_tasks.models.enums import Role
from secure_tasks.models.org import Organization
from secure_tasks.models.task import Task
from secure_tasks.models.user import User

PASSWORD = "password123"
# hashed once per run
PASSWORD_HASH = hash_password(PASSWORD)

@pytest.fixture()
def engine():
    database_url = os.environ.get("TEST_DATABASE_URL", "sqlite://")

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record) -> None:  # type: ignore[no-untyped-def]
            # postgres always enforces them
            dbapi_conn.execute("PRAGMA foreign_keys=ON")
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()

@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)

@pytest.fixture()
def db_session(session_factory) -> Session:
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def client(db_session: Session, session_factory, monkeypatch) -> TestClient:
    # no redis in tests
    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    # audit entries go to the test database
    monkeypatch.setattr(middleware, "SessionLocal", session_factory)

    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)

def make_org(db: Session, name: str | None = None, parent: Organization | None = None) -> Organization:
    org = Organization(
        name=name or f"org-{uuid.uuid4().hex[:6]}",
        parent_id=parent.id if parent else None,
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    return org

def make_user(db: Session, role: Role, org: Organization | None, email: str | None = None) -> User:
    user = User(
        email=email or f"{role.value}+{uuid.uuid4().hex[:8]}@example.com",
        password=PASSWORD_HASH,
        first_name="Test",
        last_name=role.value.title(),
        role=role,
        organization_id=org.id if org else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def make_task(
    db: Session,
    org: Organization,
    creator: User,
    assignee: User | None = None,
    title: str = "task",
) -> Task:
    t = Task(
        title=title,
        description="",
        organization_id=org.id,
        created_by_id=creator.id,
        assigned_to_id=assignee.id if assignee else None,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t

def auth(user: User) -> dict[str, str]:
    return {"authorization": f"bearer {issue_access_token(user)}"}

@pytest.fixture()
def org(db_session) -> Organization:
    return make_org(db_session, "acme")

@pytest.fixture()
def owner(db_session, org) -> User:
    return make_user(db_session, Role.owner, org)

@pytest.fixture()
def admin(db_session, org) -> User:
    return make_user(db_session, Role.admin, org)

@pytest.fixture()
def viewer(db_session, org) -> User:
    return make_user(db_session, Role.viewer, org)
