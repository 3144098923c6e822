"""FastAPI dependencies."""
import uuid
from typing import AsyncIterator

import httpx
from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.database import get_db
from app.services.backend.base import ShopBackend
from app.services.backend.database import DatabaseBackend
from app.services.backend.hosted import HostedBackend
from app.services.cart.cart import Cart
from app.services.checkout.state import CheckoutStateManager
from app.services.menu.in_memory_menu import InMemoryMenuProvider
from app.services.menu.repository import MenuRepository
from app.services.storage.base import KeyValueStore
from app.services.storage.database_store import DatabaseKeyValueStore
from app.services.storefront.navigation import StorefrontNavigator

SESSION_COOKIE = "session_id"


def get_menu_repository() -> MenuRepository:
    """Get menu repository instance."""
    return MenuRepository(provider=InMemoryMenuProvider(settings.menu_file or None))


def get_session_id(request: Request, response: Response) -> str:
    """Client session id from the cookie, issuing one when missing."""
    session_id = request.cookies.get(SESSION_COOKIE)
    if not session_id:
        session_id = uuid.uuid4().hex
        response.set_cookie(
            key=SESSION_COOKIE,
            value=session_id,
            httponly=True,
            max_age=60 * 60 * 24 * 30,
            samesite="lax",
        )
    return session_id


def get_store(
    session_id: str = Depends(get_session_id),
    db: AsyncSession = Depends(get_db),
) -> KeyValueStore:
    """Durable storage for the current client session."""
    return DatabaseKeyValueStore(db, namespace=session_id)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Shared-nothing HTTP client for one request."""
    async with httpx.AsyncClient(follow_redirects=True) as client:
        yield client


def get_backend(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> ShopBackend:
    """Backend selected by configuration."""
    if settings.backend_mode == "hosted":
        return HostedBackend(
            client,
            base_url=settings.backend_url,
            api_key=settings.backend_api_key,
            bucket=settings.receipt_bucket,
            max_image_bytes=settings.max_receipt_bytes,
        )
    return DatabaseBackend(
        db,
        upload_dir=settings.upload_dir,
        public_base_url=settings.public_base_url,
        max_image_bytes=settings.max_receipt_bytes,
    )


async def get_cart(store: KeyValueStore = Depends(get_store)) -> Cart:
    """Cart of the current client session."""
    return await Cart.load(store)


async def get_navigator(store: KeyValueStore = Depends(get_store)) -> StorefrontNavigator:
    """Storefront navigation state of the current client session."""
    return await StorefrontNavigator.load(store)


async def get_checkout_manager(
    store: KeyValueStore = Depends(get_store),
    backend: ShopBackend = Depends(get_backend),
    cart: Cart = Depends(get_cart),
) -> CheckoutStateManager:
    """Checkout state restored for the current client session."""
    manager = await CheckoutStateManager.load(
        store, backend, cart.items, order_option=settings.order_option
    )
    await manager.load_payment_methods()
    return manager
