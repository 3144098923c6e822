"""Menu provider interface."""
from abc import ABC, abstractmethod
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class CustomField(BaseModel):
    """A per-item detail the customer must supply (e.g. player id, server)."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    placeholder: Optional[str] = None
    required: bool = False


class Variation(BaseModel):
    """A purchasable package of a menu item (e.g. 86 diamonds)."""

    id: str
    name: str
    price: float


class MenuItem(BaseModel):
    """Menu item model."""

    id: str
    name: str
    description: Optional[str] = None
    price: float = 0.0
    category: Optional[str] = None
    popular: bool = False
    image_url: Optional[str] = None
    variations: List[Variation] = []
    custom_fields: List[CustomField] = []

    def get_variation(self, variation_id: str) -> Optional[Variation]:
        """Get a variation by id."""
        for variation in self.variations:
            if variation.id == variation_id:
                return variation
        return None


class Menu(BaseModel):
    """Menu model."""

    items: List[MenuItem]
    categories: List[str] = []


class MenuProvider(ABC):
    """Abstract base class for menu providers."""

    @abstractmethod
    async def get_menu(self) -> Menu:
        """Get the full menu."""
        pass

    @abstractmethod
    async def get_item_by_id(self, item_id: str) -> Optional[MenuItem]:
        """Get a menu item by id."""
        pass
