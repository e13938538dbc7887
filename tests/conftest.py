"""
Shared fixtures.

The environment is pinned before any tastybites module is imported:
a throwaway SQLite file, development collaborators (mock auth and the
in-memory change feed) and no startup seeding.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="tastybites-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["ENV_MODE"] = "development"
os.environ["SEED_CATALOG"] = "false"
os.environ["DEBUG"] = "false"

import uuid
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import httpx
import pytest

from tastybites.database import async_session_maker, drop_db, init_db
from tastybites.enums import AppRole
from tastybites.main import app
from tastybites.seed import seed_catalog
from tastybites.services import store
from tastybites.services.auth import reset_auth_service
from tastybites.services.policies import ANONYMOUS, AccessContext
from tastybites.services.realtime import get_change_feed, reset_change_feed

OPERATOR = AccessContext(roles=frozenset({AppRole.ADMIN}))


def menu_item(name: str, price: str, available: bool = True) -> SimpleNamespace:
    """A catalog row stand-in for the pure cart and pricing tests."""
    return SimpleNamespace(id=uuid.uuid4(), name=name, price=Decimal(price), available=available)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def spring_rolls():
    return menu_item("Spring Rolls", "8.99")


@pytest.fixture
def chicken_wings():
    return menu_item("Chicken Wings", "12.99")


@pytest.fixture
async def database(anyio_backend):
    """Fresh schema and fresh collaborators for every test."""
    await drop_db()
    await init_db()
    reset_auth_service()
    reset_change_feed()
    yield
    reset_auth_service()
    reset_change_feed()


@pytest.fixture
async def session(database):
    async with async_session_maker() as db:
        yield db


@pytest.fixture
async def catalog(database):
    """Seed the demo catalog and index it by name."""
    async with async_session_maker() as db:
        await seed_catalog(db)
        branches = await store.list_branches(db, ANONYMOUS)
        menu = await store.list_menu(db, ANONYMOUS)
    return SimpleNamespace(
        branches={branch.name: branch for branch in branches},
        menu={item.name: item for item in menu},
    )


@pytest.fixture
def feed(database):
    return get_change_feed()


@pytest.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def sign_up(client):
    """Factory: register a customer through the API."""
    async def _sign_up(
        email: str = "jane@example.com",
        name: str = "Jane Doe",
        phone: Optional[str] = "+1-555-0199",
        password: str = "secret123",
    ) -> SimpleNamespace:
        response = await client.post(
            "/auth/sign-up",
            json={"email": email, "password": password, "name": name, "phone": phone},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return SimpleNamespace(
            user_id=uuid.UUID(body["user_id"]),
            email=email,
            token=body["access_token"],
            headers={"Authorization": f"Bearer {body['access_token']}"},
        )
    return _sign_up


@pytest.fixture
def promote(database):
    """Factory: make an existing user staff of a branch and/or an admin."""
    async def _promote(
        user_id: uuid.UUID,
        branch_id: Optional[uuid.UUID] = None,
        admin: bool = False,
    ) -> None:
        async with async_session_maker() as db:
            if admin:
                await store.grant_role(db, user_id, AppRole.ADMIN)
                await db.commit()
            if branch_id is not None:
                await store.assign_staff(db, OPERATOR, user_id, branch_id)
    return _promote
