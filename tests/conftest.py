"""Shared test fixtures and configuration."""
import os
import tempfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))
os.environ.setdefault("SHOP_NAME", "Reina Shop")
os.environ.setdefault("ORDER_OPTION", "order_via_messenger")

from app.main import app
from app.core.dependencies import get_menu_repository
from app.db.database import get_db
from app.db.models import Base, PaymentMethod as PaymentMethodRecord
from app.services.backend.base import ShopBackend
from app.services.checkout.constants import CART_INSTANCE_SEPARATOR
from app.services.checkout.models import CartItem, PaymentMethod
from app.services.menu.base import CustomField, Variation
from app.services.menu.in_memory_menu import InMemoryMenuProvider
from app.services.menu.repository import MenuRepository
from app.services.storage.base import InMemoryKeyValueStore


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

GCASH_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def test_menu_path():
    """Return path to test menu YAML file."""
    return Path(__file__).parent / "fixtures" / "test_menu.yaml"


@pytest.fixture
def test_menu_repository(test_menu_path):
    """Create menu repository with test data."""
    provider = InMemoryMenuProvider(menu_file=str(test_menu_path))
    return MenuRepository(provider)


@pytest.fixture
def store():
    """Empty in-memory client storage."""
    return InMemoryKeyValueStore()


@pytest.fixture
def gcash():
    """GCash payment method."""
    return PaymentMethod(
        id=GCASH_ID,
        name="GCash",
        account_number="09171234567",
        account_name="Reina S.",
        qr_code_url="https://cdn.example.com/qr/gcash.png",
    )


@pytest.fixture
def mock_backend(gcash):
    """Backend collaborator double with one payment method."""
    backend = AsyncMock(spec=ShopBackend)
    backend.list_payment_methods.return_value = [gcash]
    backend.upload_image.return_value = "https://cdn.example.com/payment-receipts/receipt.png"
    backend.fetch_order_by_id.return_value = None
    return backend


@pytest.fixture
def make_cart_item():
    """Factory for cart items."""
    def _make(
        menu_item_id: str,
        name: str,
        fields: Optional[List[CustomField]] = None,
        price: float = 100.0,
        quantity: int = 1,
        instance: str = "1700000000000-abc",
        variation: Optional[Variation] = None,
    ) -> CartItem:
        return CartItem(
            id=f"{menu_item_id}{CART_INSTANCE_SEPARATOR}{instance}",
            menu_item_id=menu_item_id,
            name=name,
            quantity=quantity,
            total_price=price,
            selected_variation=variation,
            custom_fields=fields or [],
        )
    return _make


@pytest.fixture
def ign_field():
    """Single required IGN custom field."""
    return CustomField(key="ign", label="IGN", required=True)


@pytest.fixture
def api_db():
    """
    get_db override for API tests.

    The engine only connects inside the app's event loop, on the first
    request, where the tables and one payment method are created.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    ready = {"done": False}

    async def _override_get_db():
        if not ready["done"]:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            async with session_factory() as session:
                session.add(
                    PaymentMethodRecord(
                        uuid_id=GCASH_ID,
                        id="gcash",
                        name="GCash",
                        account_number="09171234567",
                        account_name="Reina S.",
                        qr_code_url="https://cdn.example.com/qr/gcash.png",
                    )
                )
                await session.commit()
            ready["done"] = True
        async with session_factory() as session:
            yield session

    return _override_get_db


@pytest.fixture
def test_client(api_db, test_menu_repository):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_db] = api_db
    app.dependency_overrides[get_menu_repository] = lambda: test_menu_repository

    with TestClient(app) as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()
