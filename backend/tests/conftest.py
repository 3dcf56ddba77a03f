"""
Test Configuration — Fixtures for async DB, test client, and seed data.

Each test gets its own in-memory SQLite database. The kanban core commits
and rolls back for real, so tests can observe what a failed unit of work
leaves behind (nothing) instead of hiding it inside an outer transaction.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_db
from api.main import app
from db.models import (
    Account,
    ActorRole,
    Kanban,
    KanbanChain,
    Product,
    Status,
    StatusChain,
    StatusChainEntry,
)
from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Fresh database per test; StaticPool keeps the in-memory DB alive across sessions."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_db):
    """Create an async test client with the DB dependency overridden."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_db(test_db):
    """
    Seed a customer, a supplier, one product and a three-step status chain
    (Empty → Ordered → Full), plus a kanban chain holding two kanbans on Empty.
    """
    customer = Account(name="Acme Assembly", vat_number="IT01234567890", address="Via Roma 1, Milano")
    supplier = Account(name="Bolt Supply Co", vat_number="IT09876543210", address="Via Po 7, Torino")
    product = Product(product_id="P-100", name="Hex Bolt M8")
    empty = Status(name="Empty", color="#ff0000")
    ordered = Status(name="Ordered", color="#ffaa00")
    full = Status(name="Full", color="#00aa00")
    test_db.add_all([customer, supplier, product, empty, ordered, full])
    await test_db.flush()

    status_chain = StatusChain(name="Standard loop")
    test_db.add(status_chain)
    await test_db.flush()

    test_db.add_all(
        [
            StatusChainEntry(
                status_chain_id=status_chain.status_chain_id,
                status_id=empty.status_id,
                order=1,
                actor_role=ActorRole.CUSTOMER.value,
            ),
            StatusChainEntry(
                status_chain_id=status_chain.status_chain_id,
                status_id=ordered.status_id,
                order=2,
                actor_role=ActorRole.SUPPLIER.value,
            ),
            StatusChainEntry(
                status_chain_id=status_chain.status_chain_id,
                status_id=full.status_id,
                order=3,
                actor_role=ActorRole.SUPPLIER.value,
            ),
        ]
    )
    await test_db.flush()

    kanban_chain = KanbanChain(
        customer_account_id=customer.id,
        product_id=product.product_id,
        supplier_account_id=supplier.id,
        leadtime_days=5,
        quantity=100,
        container_type="Bin",
        status_chain_id=status_chain.status_chain_id,
        target_active_kanban_count=2,
    )
    test_db.add(kanban_chain)
    await test_db.flush()

    kanbans = [
        Kanban(
            kanban_chain_id=kanban_chain.id,
            status_chain_id=status_chain.status_chain_id,
            status_current=empty.status_id,
            leadtime_days=5,
            container_type="Bin",
            quantity=100,
            is_active=True,
        )
        for _ in range(2)
    ]
    test_db.add_all(kanbans)
    await test_db.flush()

    await test_db.commit()

    return {
        "customer": customer,
        "supplier": supplier,
        "product": product,
        "statuses": [empty, ordered, full],
        "status_chain": status_chain,
        "kanban_chain": kanban_chain,
        "kanbans": kanbans,
    }
