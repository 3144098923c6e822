"""In-memory menu provider."""
import yaml
from pathlib import Path
from typing import Optional
from app.services.menu.base import CustomField, Menu, MenuItem, MenuProvider, Variation


def _default_menu() -> Menu:
    return Menu(
        items=[
            MenuItem(
                id="mobile-legends",
                name="Mobile Legends",
                description="Diamonds top-up",
                price=0.0,
                category="mobile",
                popular=True,
                variations=[
                    Variation(id="ml-86", name="86 Diamonds", price=85.0),
                    Variation(id="ml-172", name="172 Diamonds", price=170.0),
                ],
                custom_fields=[
                    CustomField(key="user_id", label="User ID", placeholder="123456789", required=True),
                    CustomField(key="zone_id", label="Zone ID", placeholder="1234", required=True),
                ],
            ),
            MenuItem(
                id="genshin-impact",
                name="Genshin Impact",
                description="Genesis Crystals",
                price=0.0,
                category="pc",
                variations=[
                    Variation(id="gi-60", name="60 Genesis Crystals", price=49.0),
                ],
                custom_fields=[
                    CustomField(key="uid", label="UID", required=True),
                    CustomField(key="server", label="Server", placeholder="Asia"),
                ],
            ),
            MenuItem(
                id="gift-card",
                name="Steam Wallet Code",
                description="Delivered by chat",
                price=250.0,
                category="pc",
            ),
        ],
        categories=["mobile", "pc"],
    )


class InMemoryMenuProvider(MenuProvider):
    """In-memory menu provider using YAML configuration."""

    def __init__(self, menu_file: Optional[str] = None):
        """Initialize with optional menu file path."""
        if not menu_file:
            menu_file = Path(__file__).parent / "data" / "menu.yaml"
        self.menu_file = Path(menu_file)
        self._menu: Optional[Menu] = None

    async def _load_menu(self) -> Menu:
        """Load menu from YAML file."""
        if self._menu is None:
            if not self.menu_file.exists():
                self._menu = _default_menu()
            else:
                with open(self.menu_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                items = [MenuItem(**item) for item in data.get("items", [])]
                categories = data.get("categories") or []
                if not categories:
                    # Keep first-seen order
                    for item in items:
                        if item.category and item.category not in categories:
                            categories.append(item.category)
                self._menu = Menu(items=items, categories=categories)
        return self._menu

    async def get_menu(self) -> Menu:
        """Get the full menu."""
        return await self._load_menu()

    async def get_item_by_id(self, item_id: str) -> Optional[MenuItem]:
        """Get a menu item by id."""
        menu = await self._load_menu()
        for item in menu.items:
            if item.id == item_id:
                return item
        return None
