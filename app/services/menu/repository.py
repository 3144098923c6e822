"""Menu repository."""
from typing import Optional
from app.services.menu.base import Menu, MenuItem, MenuProvider


class MenuRepository:
    """Repository for menu operations."""

    def __init__(self, provider: MenuProvider):
        self.provider = provider

    async def get_menu(self) -> Menu:
        """Get the full menu."""
        return await self.provider.get_menu()

    async def get_item_by_id(self, item_id: str) -> Optional[MenuItem]:
        """Get item by id."""
        return await self.provider.get_item_by_id(item_id)

    async def has_popular_items(self) -> bool:
        """Check whether any menu item is flagged popular."""
        menu = await self.get_menu()
        return any(item.popular for item in menu.items)
