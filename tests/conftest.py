import os

# Settings are read at import time, so point them at SQLite before the app loads
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FILE"] = ""

import uuid
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from app.core.db import Base, build_engine, get_db
from app.main import app
from app.models.user import User
from app.repositories.budget_repository import BudgetRepository
from app.repositories.expense_repository import ExpenseRepository
from app.repositories.user_repository import UserRepository
from app.services.budget_engine import BudgetEngine
from app.services.expense_engine import ExpenseEngine

FIXED_NOW = datetime(2025, 3, 15, 12, 0, 0)


@pytest_asyncio.fixture
async def engine():
    test_engine = build_engine("sqlite+aiosqlite://")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db:
        yield db


@pytest_asyncio.fixture
async def user(session):
    owner = User(user_id=uuid.uuid4(), email=f"{uuid.uuid4().hex[:8]}@example.com", full_name="Ana Lopez")
    session.add(owner)
    await session.commit()
    return owner


@pytest.fixture
def alerts():
    return []


@pytest.fixture
def budget_engine(session, alerts):
    return BudgetEngine(
        budgets=BudgetRepository(session),
        users=UserRepository(session),
        expenses=ExpenseRepository(session),
        clock=lambda: FIXED_NOW,
        alert_handlers=[alerts.append],
    )


@pytest.fixture
def expense_engine(session, budget_engine):
    return ExpenseEngine(expenses=ExpenseRepository(session), budget_engine=budget_engine)


@pytest.fixture
def reconciling_expense_engine(session, budget_engine):
    return ExpenseEngine(
        expenses=ExpenseRepository(session), budget_engine=budget_engine, reconcile_on_change=True
    )


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def fixed_now():
    return FIXED_NOW
