"""Shopping cart."""
import logging
import random
import string
import time
from typing import List, Optional

from app.services.checkout.constants import CART_INSTANCE_SEPARATOR, StorefrontStorageKeys
from app.services.checkout.models import CartItem
from app.services.menu.base import MenuItem, Variation
from app.services.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


def new_cart_item_id(menu_item_id: str) -> str:
    """Cart instance id: menu item id plus a unique suffix."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{menu_item_id}{CART_INSTANCE_SEPARATOR}{int(time.time() * 1000)}-{suffix}"


class Cart:
    """Cart persisted in the client's durable storage."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.items: List[CartItem] = []

    @classmethod
    async def load(cls, store: KeyValueStore) -> "Cart":
        cart = cls(store)
        raw_items = await store.get_json(StorefrontStorageKeys.CART, [])
        if isinstance(raw_items, list):
            for raw in raw_items:
                try:
                    cart.items.append(CartItem.model_validate(raw))
                except ValueError as e:
                    logger.debug(f"[CART] Dropping unreadable cart entry: {e}")
        return cart

    async def _save(self) -> None:
        try:
            await self.store.set_json(
                StorefrontStorageKeys.CART,
                [item.model_dump(mode="json") for item in self.items],
            )
        except Exception as e:
            logger.warning(f"[CART] Could not persist cart: {e}", exc_info=True)

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    async def add_to_cart(
        self,
        menu_item: MenuItem,
        quantity: int = 1,
        variation: Optional[Variation] = None,
    ) -> CartItem:
        """Add a new cart instance of a menu item."""
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        item = CartItem(
            id=new_cart_item_id(menu_item.id),
            menu_item_id=menu_item.id,
            name=menu_item.name,
            quantity=quantity,
            total_price=variation.price if variation else menu_item.price,
            selected_variation=variation,
            custom_fields=menu_item.custom_fields,
        )
        self.items.append(item)
        await self._save()
        logger.info(f"[CART] Added {menu_item.name} x{quantity}")
        return item

    async def update_quantity(self, item_id: str, quantity: int) -> Optional[CartItem]:
        """Change an item's quantity; zero or less removes it."""
        if quantity <= 0:
            await self.remove_from_cart(item_id)
            return None
        item = self.get_item(item_id)
        if item is None:
            return None
        item.quantity = quantity
        await self._save()
        return item

    async def remove_from_cart(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        if len(self.items) == before:
            return False
        await self._save()
        return True

    async def clear_cart(self) -> None:
        self.items = []
        await self._save()

    def get_total_price(self) -> float:
        return sum(item.line_total for item in self.items)

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self.items)
