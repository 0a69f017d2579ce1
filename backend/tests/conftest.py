"""Shared test fixtures for the AuditTrail backend test suite.

All tests run against an in-memory SQLite database shared through a
StaticPool. Tables (and the audit trail's append-only triggers) are created
before each test and dropped afterwards, ensuring complete isolation.

The TestClient is used without entering its context, so the application
lifespan (schema creation and identity seeding) does not run; the fixtures
here own the schema and the seed data.
"""

import os

# Use a throwaway database and cheap hashing before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "development"
os.environ["AUDIT_FAILURE_POLICY"] = "fail_open"

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from audittrail.database import Base, SessionLocal, engine, get_db
from audittrail.main import app
from audittrail.core.auth import AuthContext
from audittrail.core.config import settings
from audittrail.core.passwords import hash_password, salt_of
from audittrail.core.token_factory import create_token
from audittrail.models import CategoryAccess, FileCategory, Role, User
from audittrail.storage import get_storage
from audittrail.storage.local import LocalFileStorage

DEFAULT_PASSWORD = "correct-horse-1"


@pytest.fixture(autouse=True)
def _schema():
    """Create every table before the test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(_schema):
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def storage(tmp_path):
    return LocalFileStorage(str(tmp_path / "blobs"), "test-signing-key")


@pytest.fixture()
def client(db, storage):
    """FastAPI TestClient with the DB and storage dependencies overridden."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_role(db, name: str, is_active: bool = True) -> Role:
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name, description=f"{name} role", is_active=is_active)
        db.add(role)
        db.commit()
    return role


def make_user(
    db,
    username: str,
    role: Role,
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
) -> User:
    password_hash = hash_password(password)
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=password_hash,
        password_salt=salt_of(password_hash),
        first_name=username.title(),
        last_name="Tester",
        role_id=role.id,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    return user


def make_folder(
    db,
    name: str,
    parent: Optional[FileCategory] = None,
    inherit: bool = True,
) -> FileCategory:
    folder = FileCategory(
        name=name,
        path=f"{parent.path}{name}/" if parent is not None else f"/{name}/",
        parent_id=parent.id if parent is not None else None,
        inherit_parent_permissions=inherit,
    )
    db.add(folder)
    db.commit()
    return folder


def make_grant(
    db,
    folder: FileCategory,
    role: Role,
    permissions: int,
    inherit_to_subfolders: bool = True,
    **overrides,
) -> CategoryAccess:
    entry = CategoryAccess(
        category_id=folder.id,
        role_id=role.id,
        permissions=permissions,
        inherit_to_subfolders=inherit_to_subfolders,
        inherit_to_files=True,
        is_active=True,
        **overrides,
    )
    db.add(entry)
    db.commit()
    return entry


def context_for(user: User, ip_address: str = "10.0.0.1") -> AuthContext:
    return AuthContext.for_user(user, ip_address=ip_address, user_agent="pytest")


def auth_headers_for(user: User) -> dict:
    token = create_token(
        subject=user.id,
        role=user.role.name,
        secret=settings.jwt_secret_key,
        username=user.username,
    )
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Common actors
# ---------------------------------------------------------------------------

@pytest.fixture()
def admin_role(db) -> Role:
    return make_role(db, settings.administrator_role_name)


@pytest.fixture()
def user_role(db) -> Role:
    return make_role(db, "User")


@pytest.fixture()
def admin(db, admin_role) -> User:
    return make_user(db, "admin", admin_role)


@pytest.fixture()
def alice(db, user_role) -> User:
    return make_user(db, "alice", user_role)


@pytest.fixture()
def admin_ctx(admin) -> AuthContext:
    return context_for(admin)


@pytest.fixture()
def alice_ctx(alice) -> AuthContext:
    return context_for(alice)
