"""Checkout models."""
import base64
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from app.services.checkout.constants import CART_INSTANCE_SEPARATOR
from app.services.menu.base import CustomField, Variation


class CartItem(BaseModel):
    """One cart instance of a menu item."""

    id: str
    menu_item_id: str
    name: str
    quantity: int = 1
    total_price: float  # unit price, variation included
    selected_variation: Optional[Variation] = None
    custom_fields: List[CustomField] = []

    @property
    def original_id(self) -> str:
        """Menu item id this cart instance was created from."""
        return get_original_menu_item_id(self.id)

    @property
    def line_total(self) -> float:
        return self.total_price * self.quantity


class PaymentMethod(BaseModel):
    """Payment method the customer pays into."""

    id: str
    name: str
    account_number: str = ""
    account_name: str = ""
    icon_url: Optional[str] = None
    qr_code_url: Optional[str] = None


class OrderStatus(str, Enum):
    """Order statuses; transitions happen server-side."""

    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"

    def __str__(self) -> str:
        """Return the string value of the status."""
        return self.value


class OrderCreate(BaseModel):
    """Structured order-creation payload."""

    order_items: List[CartItem]
    customer_info: Dict[str, Any]
    payment_method_id: str
    receipt_url: str
    total_price: float


class Order(BaseModel):
    """Order as returned by the backend."""

    id: str
    status: OrderStatus
    order_items: List[CartItem] = []
    customer_info: Dict[str, Any] = {}
    payment_method_id: Optional[str] = None
    receipt_url: Optional[str] = None
    total_price: float = 0.0
    created_at: Optional[datetime] = None


class ReceiptUpload(BaseModel):
    """An image file picked by the customer."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        """Encode the image as a data URL for previewing."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class BulkField(BaseModel):
    """One position-based bulk input."""

    index: int
    field: Optional[CustomField] = None

    @property
    def label(self) -> str:
        return self.field.label if self.field else f"Field {self.index + 1}"

    @property
    def required(self) -> bool:
        return bool(self.field and self.field.required)


def get_original_menu_item_id(cart_item_id: str) -> str:
    """Strip the cart-instance suffix from a cart item id."""
    parts = cart_item_id.split(CART_INSTANCE_SEPARATOR)
    return parts[0] if len(parts) > 1 else cart_item_id


def field_value_key(original_id: str, field_index: int, field_key: str) -> str:
    """Key into the field value map; the position disambiguates duplicate keys."""
    return f"{original_id}_{field_index}_{field_key}"


def items_with_custom_fields(cart_items: List[CartItem]) -> List[CartItem]:
    """Field-bearing cart items, one per original menu item (first instance wins)."""
    unique: Dict[str, CartItem] = {}
    for item in cart_items:
        if not item.custom_fields:
            continue
        unique.setdefault(item.original_id, item)
    return list(unique.values())
