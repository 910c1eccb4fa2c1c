"""
Shared fixtures.

The environment is set before anything from backend.fintrack is imported,
because the engine and settings are created at import time.
"""

import os
import tempfile
from decimal import Decimal
from uuid import uuid4

_TMP_DIR = tempfile.mkdtemp(prefix="fintrack-tests-")
os.environ["FINTRACK_DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["FINTRACK_BCRYPT_ROUNDS"] = "4"
os.environ["FINTRACK_LOG_JSON"] = "false"
os.environ["FINTRACK_LOG_LEVEL"] = "WARNING"
os.environ["FINTRACK_RATE_LIMIT_PER_MINUTE"] = "1000"
os.environ["FINTRACK_AUTH_RATE_LIMIT_PER_MINUTE"] = "1000"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from backend.fintrack.config import get_settings  # noqa: E402

get_settings.cache_clear()

from backend.fintrack.db import Base, SessionLocal, engine, init_db  # noqa: E402
from backend.fintrack.main import app  # noqa: E402
from backend.fintrack.models.budget_model import Budget, BudgetPeriod  # noqa: E402
from backend.fintrack.models.category_model import Category  # noqa: E402
from backend.fintrack.models.transaction_model import Transaction  # noqa: E402
from backend.fintrack.models.user_model import User  # noqa: E402
from backend.fintrack.rate_limit import api_limiter, auth_limiter, failed_auth_limiter  # noqa: E402
from backend.fintrack.security import hash_password  # noqa: E402


@pytest.fixture(autouse=True)
def _schema():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)
    api_limiter.reset()
    auth_limiter.reset()
    failed_auth_limiter.reset()


@pytest.fixture
def settings_override(monkeypatch):
    """Change FINTRACK_* settings for one test."""

    def _override(**values):
        for key, value in values.items():
            monkeypatch.setenv(f"FINTRACK_{key.upper()}", str(value))
        get_settings.cache_clear()

    yield _override
    monkeypatch.undo()
    get_settings.cache_clear()


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


# ---------------- API helpers ----------------

@pytest.fixture
def register(client):
    def _register(name="Alice", email=None, password="Password123!", timezone=None):
        email = email or f"{name.lower()}-{uuid4().hex[:8]}@example.com"
        payload = {
            "name": name,
            "email": email,
            "password": password,
            "password_confirmation": password,
        }
        if timezone is not None:
            payload["timezone"] = timezone
        response = client.post("/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()
        return {
            "id": data["user"]["id"],
            "email": email,
            "password": password,
            "token": data["token"],
            "headers": {"Authorization": f"Bearer {data['token']}"},
        }

    return _register


@pytest.fixture
def alice(register):
    return register(name="Alice")


@pytest.fixture
def bob(register):
    return register(name="Bob")


# ---------------- Database factories ----------------

@pytest.fixture
def make_user(db):
    def _make(name="Dana", email=None, timezone=None):
        user = User(
            name=name,
            email=email or f"{uuid4().hex[:10]}@example.com",
            password_hash=hash_password("Password123!"),
            timezone=timezone,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_category(db):
    def _make(user_id, name="Groceries", icon=None, deleted=False):
        category = Category(user_id=user_id, name=name, icon=icon)
        if deleted:
            category.soft_delete()
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_transaction(db):
    def _make(user_id, amount, date, category_id=None, description=None, deleted=False):
        transaction = Transaction(
            user_id=user_id,
            category_id=category_id,
            amount=Decimal(str(amount)),
            date=date,
            description=description,
        )
        if deleted:
            transaction.soft_delete()
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction

    return _make


@pytest.fixture
def make_budget(db):
    def _make(user_id, limit, start_date, end_date=None, category_id=None, period=BudgetPeriod.MONTHLY):
        budget = Budget(
            user_id=user_id,
            category_id=category_id,
            limit=Decimal(str(limit)),
            period=period,
            start_date=start_date,
            end_date=end_date,
        )
        db.add(budget)
        db.commit()
        db.refresh(budget)
        return budget

    return _make

