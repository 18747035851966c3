import sys
import os
import pytest
from decimal import Decimal
from typing import AsyncGenerator, Iterable, Optional
from uuid import uuid4

# Add the backend directory to the Python path
# This is necessary for pytest to find the 'main' module and other packages
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.database import get_db, Base, db_manager
from models.user import User
from models.orders import Order, OrderItem
from models.loyalty import LoyaltyPoints

# Test database setup
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def async_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(async_engine, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database installed."""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    db_manager.set_engine_and_session_factory(async_engine, session_factory)
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    db_manager.set_engine_and_session_factory(None, None)


@pytest.fixture
def create_customer(db_session: AsyncSession):
    """
    Factory creating a customer with an optional points balance and paid orders.
    Each entry in paid_orders becomes one paid order with that final amount.
    """
    async def _create_customer(
        membership_tier: Optional[str] = None,
        points_balance: int = 0,
        paid_orders: Iterable = (),
        order_count: int = 0
    ) -> User:
        user = User(
            id=uuid4(),
            email=f"customer_{uuid4().hex[:12]}@example.com",
            name="Test Customer",
            membership_tier=membership_tier,
            order_count=order_count,
        )
        db_session.add(user)
        db_session.add(LoyaltyPoints(user_id=user.id, points_balance=points_balance))
        for amount in paid_orders:
            db_session.add(Order(
                user_id=user.id,
                payment_status="paid",
                total_amount=Decimal(str(amount)),
                final_amount=Decimal(str(amount)),
            ))
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_customer


@pytest.fixture
def create_order(db_session: AsyncSession):
    """Factory creating a pending order from (menu_item_id, category_id, price, quantity) tuples."""
    async def _create_order(items, user_id=None) -> Order:
        order = Order(
            user_id=user_id,
            payment_status="pending",
            total_amount=sum(Decimal(str(price)) * quantity for _, _, price, quantity in items),
        )
        order.items = [
            OrderItem(menu_item_id=item_id, name=item_id, category_id=category_id,
                      price=Decimal(str(price)), quantity=quantity)
            for item_id, category_id, price, quantity in items
        ]
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _create_order
