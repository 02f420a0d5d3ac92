import os

# Must be set before main/db/auth are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_TIMEZONE"] = "Asia/Kolkata"
os.environ["ENABLE_SCHEDULER"] = "0"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:5173"

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from db import get_db
from models import Base, Department, User
from auth import create_access_token, hash_password
from dependencies import blacklist_cache, get_local_now

PASSWORD = "Passw0rd!"
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    blacklist_cache.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def set_clock():
    """Pin the local wall clock seen by the API."""
    def _set(value: datetime):
        app.dependency_overrides[get_local_now] = lambda: value
    return _set


@pytest.fixture
def people(db):
    """Two departments, each with a leader and employees, plus an admin."""
    sales = Department(name="Sales")
    ops = Department(name="Operations")
    db.add_all([sales, ops])
    db.flush()

    def make(username, role, department, salary=Decimal("30000.00")):
        user = User(
            username=username,
            email=f"{username}@company.com",
            full_name=username.replace("_", " ").title(),
            hashed_password=PASSWORD_HASH,
            role=role,
            department_id=department.id if department else None,
            salary=salary,
        )
        db.add(user)
        return user

    users = {
        "admin": make("admin", "admin", None, salary=Decimal("90000.00")),
        "sales_lead": make("sales_lead", "leader", sales, salary=Decimal("60000.00")),
        "sales_emp": make("sales_emp", "employee", sales, salary=Decimal("3000.00")),
        "sales_emp2": make("sales_emp2", "employee", sales),
        "ops_lead": make("ops_lead", "leader", ops),
        "ops_emp": make("ops_emp", "employee", ops, salary=Decimal("6000.00")),
        "floating_lead": make("floating_lead", "leader", None),
    }
    db.commit()
    for user in users.values():
        db.refresh(user)
    users["sales_dept"] = sales
    users["ops_dept"] = ops
    return users


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.username, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(people):
    return {
        name: auth_headers(user)
        for name, user in people.items()
        if isinstance(user, User)
    }
