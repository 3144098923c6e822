"""Order message composition."""
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from app.core.config import settings
from app.services.checkout.constants import (
    DEFAULT_IGN_KEY,
    DEFAULT_IGN_LABEL,
    MESSENGER_LINK_TEMPLATE,
    PAYMENT_METHOD_LABEL,
)
from app.services.checkout.models import (
    CartItem,
    OrderCreate,
    PaymentMethod,
    field_value_key,
    items_with_custom_fields,
)

FieldPairs = Tuple[Tuple[str, str], ...]


def format_amount(value: float) -> str:
    """Render a price the way the storefront shows numbers (150, 99.5)."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def join_labels(labels: List[str]) -> str:
    """Join labels as "A, B & C"."""
    if len(labels) < 2:
        return "".join(labels)
    return f"{', '.join(labels[:-1])} & {labels[-1]}"


def filled_fields(item: CartItem, field_values: Dict[str, str]) -> List[Tuple[str, str]]:
    """(label, value) pairs of the item's fields that have a value, in field order."""
    pairs = []
    for index, field in enumerate(item.custom_fields):
        value = field_values.get(field_value_key(item.original_id, index, field.key), "")
        if value:
            pairs.append((field.label, value))
    return pairs


class OrderMessageComposer:
    """Builds the order summary text and the order-creation payload."""

    def __init__(
        self,
        shop_name: str = settings.shop_name,
        currency_symbol: str = settings.currency_symbol,
        messenger_recipient_id: str = settings.messenger_recipient_id,
    ):
        self.shop_name = shop_name
        self.currency_symbol = currency_symbol
        self.messenger_recipient_id = messenger_recipient_id

    def custom_fields_section(
        self, cart_items: List[CartItem], field_values: Dict[str, str]
    ) -> str:
        """
        Render collected details, grouping items that share identical answers.

        Items whose filled (label, value) pairs are identical collapse into one
        block listing every item name. Items without any filled field are left
        out. Carts without field-bearing items get the single IGN line.
        """
        field_items = items_with_custom_fields(cart_items)
        if not field_items:
            return f"🎮 {DEFAULT_IGN_LABEL}: {field_values.get(DEFAULT_IGN_KEY, '')}"

        groups: Dict[FieldPairs, List[str]] = {}
        for item in field_items:
            pairs = tuple(filled_fields(item, field_values))
            if not pairs:
                continue
            groups.setdefault(pairs, []).append(item.name)

        sections = []
        for pairs, names in groups.items():
            sections.append("\n".join(names))
            values = {value for _, value in pairs}
            if len(pairs) > 1 and len(values) == 1:
                labels = [label for label, _ in pairs]
                sections.append(f"{join_labels(labels)}: {pairs[0][1]}")
            else:
                sections.extend(f"{label}: {value}" for label, value in pairs)
        return "\n".join(sections)

    def order_line(self, item: CartItem) -> str:
        line = f"• {item.name}"
        if item.selected_variation:
            line += f" ({item.selected_variation.name})"
        line += f" x{item.quantity} - {self.currency_symbol}{format_amount(item.line_total)}"
        return line

    def compose(
        self,
        cart_items: List[CartItem],
        field_values: Dict[str, str],
        total_price: float,
        payment_method: Optional[PaymentMethod],
        receipt_url: Optional[str],
    ) -> str:
        """Compose the order summary sent through the messaging channel."""
        lines = [
            f"🛒 {self.shop_name} ORDER",
            "",
            self.custom_fields_section(cart_items, field_values),
            "",
            "📋 ORDER DETAILS:",
            "\n".join(self.order_line(item) for item in cart_items),
            "",
            f"💰 TOTAL: {self.currency_symbol}{format_amount(total_price)}",
            "",
            f"💳 Payment: {payment_method.name if payment_method else ''}",
            "",
            f"📸 Payment Receipt: {receipt_url or ''}",
            "",
            f"Please confirm this order to proceed. Thank you for choosing {self.shop_name}! 🎮",
        ]
        return "\n".join(lines).strip()

    def build_customer_info(
        self,
        cart_items: List[CartItem],
        field_values: Dict[str, str],
        payment_method: PaymentMethod,
    ) -> Dict[str, str]:
        """Customer details keyed by field label."""
        customer_info = {PAYMENT_METHOD_LABEL: payment_method.name}
        field_items = items_with_custom_fields(cart_items)
        if field_items:
            for item in field_items:
                for label, value in filled_fields(item, field_values):
                    customer_info[label] = value
        elif field_values.get(DEFAULT_IGN_KEY):
            customer_info[DEFAULT_IGN_LABEL] = field_values[DEFAULT_IGN_KEY]
        return customer_info

    def build_order_payload(
        self,
        cart_items: List[CartItem],
        field_values: Dict[str, str],
        total_price: float,
        payment_method: PaymentMethod,
        receipt_url: str,
    ) -> OrderCreate:
        """Build the structured order-creation payload."""
        return OrderCreate(
            order_items=cart_items,
            customer_info=self.build_customer_info(cart_items, field_values, payment_method),
            payment_method_id=payment_method.id,
            receipt_url=receipt_url,
            total_price=total_price,
        )

    def messenger_link(self, message: str) -> str:
        """Deep link that opens the messaging client with the message pre-filled."""
        return MESSENGER_LINK_TEMPLATE.format(
            recipient=self.messenger_recipient_id,
            text=quote(message, safe="-_.!~*'()"),
        )
