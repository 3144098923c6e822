"""Storefront navigation state: current view, category and search."""
import logging
from enum import Enum
from typing import List

from app.services.checkout.constants import StorefrontStorageKeys
from app.services.menu.base import MenuItem
from app.services.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
POPULAR_CATEGORY = "popular"


class StorefrontView(str, Enum):
    """Customer-facing views."""

    MENU = "menu"
    CART = "cart"
    CHECKOUT = "checkout"

    def __str__(self) -> str:
        """Return the string value of the view."""
        return self.value


def filter_menu_items(items: List[MenuItem], category: str, search: str) -> List[MenuItem]:
    """Filter by category first, then by case-insensitive name search."""
    filtered = items
    if category == POPULAR_CATEGORY:
        filtered = [item for item in filtered if item.popular]
    elif category != ALL_CATEGORIES:
        filtered = [item for item in filtered if item.category == category]

    query = search.strip().lower()
    if query:
        filtered = [item for item in filtered if query in item.name.lower()]
    return filtered


class StorefrontNavigator:
    """Keeps the customer's place in the storefront across reloads."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.view = StorefrontView.MENU
        self.category = ALL_CATEGORIES
        self.search = ""

    @classmethod
    async def load(cls, store: KeyValueStore) -> "StorefrontNavigator":
        navigator = cls(store)
        view = await store.get_text(StorefrontStorageKeys.VIEW)
        if view in {v.value for v in StorefrontView}:
            navigator.view = StorefrontView(view)
        category = await store.get_text(StorefrontStorageKeys.CATEGORY)
        if category:
            navigator.category = category
        search = await store.get_text(StorefrontStorageKeys.SEARCH)
        if search is not None:
            navigator.search = search
        return navigator

    async def _write(self, key: str, value: str) -> None:
        try:
            await self.store.set_item(key, value)
        except Exception as e:
            logger.warning(f"[STOREFRONT] Could not persist {key}: {e}", exc_info=True)

    async def set_view(self, view: StorefrontView) -> None:
        self.view = StorefrontView(view)
        await self._write(StorefrontStorageKeys.VIEW, self.view.value)

    async def select_category(self, category: str) -> None:
        """Switch category; a category click clears the search."""
        self.category = category or ALL_CATEGORIES
        self.search = ""
        await self._write(StorefrontStorageKeys.CATEGORY, self.category)
        await self._write(StorefrontStorageKeys.SEARCH, self.search)

    async def set_search(self, query: str) -> None:
        """Update the search; searching always spans all categories."""
        self.search = query
        await self._write(StorefrontStorageKeys.SEARCH, self.search)
        if query.strip():
            self.category = ALL_CATEGORIES
            await self._write(StorefrontStorageKeys.CATEGORY, self.category)

    async def item_added(self) -> None:
        await self.set_view(StorefrontView.CART)

    async def reconcile(self, cart_item_count: int, menu_items: List[MenuItem]) -> None:
        """Fall back to valid state when the cart is empty or nothing is popular."""
        if self.view in (StorefrontView.CART, StorefrontView.CHECKOUT) and cart_item_count == 0:
            await self.set_view(StorefrontView.MENU)
        has_popular = any(item.popular for item in menu_items)
        if self.category == POPULAR_CATEGORY and not has_popular and menu_items:
            self.category = ALL_CATEGORIES
            await self._write(StorefrontStorageKeys.CATEGORY, self.category)
