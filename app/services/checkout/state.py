"""Checkout state management."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from app.core.config import settings
from app.services.backend.base import BackendError, ShopBackend
from app.services.checkout.composer import OrderMessageComposer
from app.services.checkout.constants import (
    DEFAULT_IGN_KEY,
    ERROR_COPY_MESSAGE_FIRST,
    ERROR_EMPTY_CART,
    ERROR_INCOMPLETE_DETAILS,
    ERROR_ORDER_IN_FLIGHT,
    ERROR_PLACE_ORDER_FAILED,
    ERROR_SELECT_PAYMENT_METHOD,
    ERROR_UPLOAD_FAILED,
    ERROR_UPLOAD_RECEIPT,
    ORDER_VIA_MESSENGER,
    RECEIPT_FOLDER,
    CheckoutStorageKeys,
)
from app.services.checkout.models import (
    BulkField,
    CartItem,
    Order,
    OrderStatus,
    PaymentMethod,
    ReceiptUpload,
    field_value_key,
    get_original_menu_item_id,
    items_with_custom_fields,
)
from app.services.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

Clipboard = Callable[[str], Awaitable[None]]
LinkOpener = Callable[[str], Any]


def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


class CheckoutStateManager:
    """
    Owns the transient checkout form state and mirrors it to durable storage.

    Every mutation is written to the store right after it is applied in
    memory, and the store is the initialization source, so a fresh manager
    over the same store resumes the same session. Operations that talk to
    the backend never raise: failures are logged and surfaced through
    ``receipt_error``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        backend: ShopBackend,
        cart_items: Optional[List[CartItem]] = None,
        composer: Optional[OrderMessageComposer] = None,
        order_option: str = settings.order_option,
    ):
        self.store = store
        self.backend = backend
        self.cart_items: List[CartItem] = list(cart_items or [])
        self.composer = composer or OrderMessageComposer()
        self.order_option = order_option

        self.payment_methods: List[PaymentMethod] = []
        self.payment_method_id: Optional[str] = None
        self.custom_field_values: Dict[str, str] = {}
        self.bulk_input_values: Dict[str, str] = {}
        self.bulk_selected_games: List[str] = []

        self.receipt_file: Optional[ReceiptUpload] = None
        self.receipt_image_url: Optional[str] = None
        self.receipt_preview: Optional[str] = None
        self.receipt_error: Optional[str] = None
        self.uploading_receipt = False
        self.has_copied_message = False

        self.order_id: Optional[str] = None
        self.existing_order_status: Optional[OrderStatus] = None
        self.is_order_modal_open = False
        self.is_placing_order = False

    # Loading

    @classmethod
    async def load(
        cls,
        store: KeyValueStore,
        backend: ShopBackend,
        cart_items: Optional[List[CartItem]] = None,
        **kwargs: Any,
    ) -> "CheckoutStateManager":
        """Create a manager restored from durable storage."""
        manager = cls(store, backend, cart_items, **kwargs)
        await manager.restore()
        return manager

    async def restore(self) -> None:
        """Initialize state from durable storage; missing or bad data falls back to defaults."""
        keys = CheckoutStorageKeys
        self.payment_method_id = await self.store.get_text(keys.PAYMENT_METHOD_ID)
        self.custom_field_values = _string_map(
            await self.store.get_json(keys.CUSTOM_FIELD_VALUES, {})
        )
        self.bulk_input_values = _string_map(
            await self.store.get_json(keys.BULK_INPUT_VALUES, {})
        )
        self.bulk_selected_games = _string_list(
            await self.store.get_json(keys.BULK_SELECTED_GAMES, [])
        )
        self.receipt_image_url = await self.store.get_text(keys.RECEIPT_IMAGE_URL)
        self.receipt_preview = await self.store.get_text(keys.RECEIPT_PREVIEW)
        self.order_id = await self.store.get_text(keys.CURRENT_ORDER_ID)
        self.has_copied_message = await self.store.get_text(keys.MESSAGE_COPIED) == "true"

    async def initialize(self) -> None:
        """Mount-time work: load payment methods and recover an order in flight."""
        await self.load_payment_methods()
        await self.check_existing_order()

    async def load_payment_methods(self) -> List[PaymentMethod]:
        try:
            self.payment_methods = await self.backend.list_payment_methods()
        except Exception as e:
            logger.error(f"[CHECKOUT] Error loading payment methods: {e}", exc_info=True)
            self.payment_methods = []
        return self.payment_methods

    async def set_cart_items(self, cart_items: List[CartItem]) -> None:
        """Replace the cart contents and re-apply bulk values to the new items."""
        self.cart_items = list(cart_items)
        if self._apply_bulk_values():
            await self._save_field_values()

    # Persistence

    async def _persist(self, description: str, write: Awaitable[None]) -> None:
        try:
            await write
        except Exception as e:
            logger.warning(f"[CHECKOUT] Could not persist {description}: {e}", exc_info=True)

    async def _save_payment_method(self) -> None:
        await self._persist(
            "payment method",
            self.store.set_or_remove(CheckoutStorageKeys.PAYMENT_METHOD_ID, self.payment_method_id),
        )

    async def _save_field_values(self) -> None:
        await self._persist(
            "field values",
            self.store.set_json(CheckoutStorageKeys.CUSTOM_FIELD_VALUES, self.custom_field_values),
        )

    async def _save_bulk_state(self) -> None:
        await self._persist(
            "bulk input values",
            self.store.set_json(CheckoutStorageKeys.BULK_INPUT_VALUES, self.bulk_input_values),
        )
        await self._persist(
            "bulk selection",
            self.store.set_json(CheckoutStorageKeys.BULK_SELECTED_GAMES, self.bulk_selected_games),
        )

    async def _save_receipt(self) -> None:
        await self._persist(
            "receipt reference",
            self.store.set_or_remove(CheckoutStorageKeys.RECEIPT_IMAGE_URL, self.receipt_image_url),
        )
        await self._persist(
            "receipt preview",
            self.store.set_or_remove(CheckoutStorageKeys.RECEIPT_PREVIEW, self.receipt_preview),
        )

    async def _save_message_copied(self) -> None:
        await self._persist(
            "message copied flag",
            self.store.set_or_remove(
                CheckoutStorageKeys.MESSAGE_COPIED, "true" if self.has_copied_message else None
            ),
        )

    async def _save_order_id(self) -> None:
        await self._persist(
            "current order id",
            self.store.set_or_remove(CheckoutStorageKeys.CURRENT_ORDER_ID, self.order_id),
        )

    # Derived state

    @property
    def items_with_custom_fields(self) -> List[CartItem]:
        return items_with_custom_fields(self.cart_items)

    @property
    def has_any_custom_fields(self) -> bool:
        return bool(self.items_with_custom_fields)

    @property
    def total_price(self) -> float:
        return sum(item.line_total for item in self.cart_items)

    @property
    def selected_payment_method(self) -> Optional[PaymentMethod]:
        for method in self.payment_methods:
            if method.id == self.payment_method_id:
                return method
        return None

    @property
    def has_order_in_flight(self) -> bool:
        return self.order_id is not None and self.existing_order_status is not None

    @property
    def is_details_valid(self) -> bool:
        """Required details are filled: the IGN fallback, or every required custom field."""
        field_items = self.items_with_custom_fields
        if not field_items:
            return bool(self.custom_field_values.get(DEFAULT_IGN_KEY, "").strip())
        for item in field_items:
            for index, field in enumerate(item.custom_fields):
                if not field.required:
                    continue
                key = field_value_key(item.original_id, index, field.key)
                if not self.custom_field_values.get(key, "").strip():
                    return False
        return True

    # Form input

    async def set_payment_method(self, payment_method_id: Optional[str]) -> None:
        self.payment_method_id = payment_method_id or None
        await self._save_payment_method()

    async def set_custom_field_value(self, item_id: str, field_index: int, value: str) -> str:
        """
        Set the value of one custom field of a field-bearing item.

        Args:
            item_id: Cart item id or original menu item id
            field_index: Position of the field on the item
            value: Entered text

        Returns:
            The field value map key that was written
        """
        original_id = get_original_menu_item_id(item_id)
        for item in self.items_with_custom_fields:
            if item.original_id != original_id:
                continue
            if not 0 <= field_index < len(item.custom_fields):
                raise ValueError(f"Item '{original_id}' has no field at position {field_index}")
            key = field_value_key(original_id, field_index, item.custom_fields[field_index].key)
            self.custom_field_values[key] = value
            await self._save_field_values()
            return key
        raise ValueError(f"Item '{original_id}' has no custom fields in the cart")

    async def set_default_ign(self, value: str) -> None:
        self.custom_field_values[DEFAULT_IGN_KEY] = value
        await self._save_field_values()

    # Bulk input

    @property
    def bulk_mode_available(self) -> bool:
        """Bulk input needs at least two distinct field-bearing items."""
        return len(self.items_with_custom_fields) >= 2

    def _selected_bulk_items(self) -> List[CartItem]:
        return [
            item
            for item in self.items_with_custom_fields
            if item.original_id in self.bulk_selected_games
        ]

    def bulk_input_fields(self) -> List[BulkField]:
        """One generic input per position, up to the longest selected item."""
        if not self.bulk_mode_available or not self.bulk_selected_games:
            return []
        selected = self._selected_bulk_items()
        if not selected:
            return []
        max_fields = max(len(item.custom_fields) for item in selected)
        reference = selected[0].custom_fields
        return [
            BulkField(index=index, field=reference[index] if index < len(reference) else None)
            for index in range(max_fields)
        ]

    def _apply_bulk_values(self) -> bool:
        """Fan bulk values out to the selected items' fields at the same position."""
        if not self.bulk_mode_available or not self.bulk_selected_games:
            return False
        selected = self._selected_bulk_items()
        updates: Dict[str, str] = {}
        for index_text, value in self.bulk_input_values.items():
            try:
                index = int(index_text)
            except ValueError:
                continue
            for item in selected:
                if 0 <= index < len(item.custom_fields):
                    field = item.custom_fields[index]
                    updates[field_value_key(item.original_id, index, field.key)] = value
        if not updates:
            return False
        self.custom_field_values.update(updates)
        return True

    async def set_bulk_value(self, field_index: int, value: str) -> None:
        self.bulk_input_values[str(field_index)] = value
        await self._save_bulk_state()
        if self._apply_bulk_values():
            await self._save_field_values()

    async def select_bulk_game(self, item_id: str, selected: bool) -> None:
        """Add or remove an item (by its original id) from the bulk selection."""
        original_id = get_original_menu_item_id(item_id)
        if selected:
            if original_id not in self.bulk_selected_games:
                self.bulk_selected_games.append(original_id)
        else:
            self.bulk_selected_games = [g for g in self.bulk_selected_games if g != original_id]
        await self._save_bulk_state()
        if self._apply_bulk_values():
            await self._save_field_values()

    # Receipt

    async def _load_receipt_preview(self, upload: ReceiptUpload) -> None:
        try:
            preview = await asyncio.to_thread(upload.to_data_url)
        except Exception as e:
            logger.warning(f"[CHECKOUT] Could not build receipt preview: {e}", exc_info=True)
            return
        self.receipt_preview = preview
        await self._save_receipt()

    async def upload_receipt(self, upload: ReceiptUpload) -> bool:
        """
        Preview and upload a payment receipt concurrently.

        Returns:
            True when the backend stored the image
        """
        self.receipt_error = None
        self.receipt_file = upload
        self.uploading_receipt = True
        preview_task = asyncio.create_task(self._load_receipt_preview(upload))
        try:
            url = await self.backend.upload_image(upload, RECEIPT_FOLDER)
        except Exception as e:
            logger.error(f"[CHECKOUT] Error uploading receipt: {e}", exc_info=True)
            await asyncio.gather(preview_task, return_exceptions=True)
            message = str(e) if isinstance(e, BackendError) else ""
            self.receipt_error = message or ERROR_UPLOAD_FAILED
            self.receipt_file = None
            self.receipt_preview = None
            self.uploading_receipt = False
            await self._save_receipt()
            return False

        await asyncio.gather(preview_task, return_exceptions=True)
        self.receipt_image_url = url
        self.uploading_receipt = False
        await self._save_receipt()
        logger.info(f"[CHECKOUT] Receipt uploaded - {upload.filename} ({upload.size} bytes)")
        return True

    async def remove_receipt(self) -> None:
        """Clear the receipt and everything derived from it."""
        self.receipt_file = None
        self.receipt_image_url = None
        self.receipt_preview = None
        self.receipt_error = None
        self.has_copied_message = False
        await self._save_receipt()
        await self._save_message_copied()

    # Message and submission

    def compose_message(self) -> str:
        return self.composer.compose(
            self.cart_items,
            self.custom_field_values,
            self.total_price,
            self.selected_payment_method,
            self.receipt_image_url,
        )

    async def copy_message(self, clipboard: Optional[Clipboard] = None) -> bool:
        """
        Copy the order message and remember that it was copied.

        Args:
            clipboard: Async writer for the text; None when the client already copied it
        """
        try:
            message = self.compose_message()
            if clipboard is not None:
                await clipboard(message)
        except Exception as e:
            logger.error(f"[CHECKOUT] Failed to copy message: {e}", exc_info=True)
            return False
        self.has_copied_message = True
        await self._save_message_copied()
        return True

    async def _has_blocking_order(self) -> bool:
        """A tracked order blocks new submissions unless it was rejected or is gone."""
        if not self.order_id:
            return False
        await self.check_existing_order()
        return bool(self.order_id) and self.existing_order_status != OrderStatus.REJECTED

    async def _check_submission(self) -> bool:
        if not self.cart_items:
            self.receipt_error = ERROR_EMPTY_CART
            return False
        if await self._has_blocking_order():
            self.receipt_error = ERROR_ORDER_IN_FLIGHT
            return False
        if not self.payment_method_id:
            self.receipt_error = ERROR_SELECT_PAYMENT_METHOD
            return False
        if not self.receipt_image_url:
            self.receipt_error = ERROR_UPLOAD_RECEIPT
            return False
        if not self.is_details_valid:
            self.receipt_error = ERROR_INCOMPLETE_DETAILS
            return False
        return True

    async def place_order_via_messenger(self, open_link: Optional[LinkOpener] = None) -> Optional[str]:
        """
        Build the messaging-client deep link for the order.

        Returns:
            The deep link, or None when the submission was rejected
        """
        if not await self._check_submission():
            return None
        if not self.has_copied_message:
            self.receipt_error = ERROR_COPY_MESSAGE_FIRST
            return None
        link = self.composer.messenger_link(self.compose_message())
        if open_link is not None:
            try:
                open_link(link)
            except Exception as e:
                logger.error(f"[CHECKOUT] Could not open messenger link: {e}", exc_info=True)
        return link

    async def place_order_direct(self) -> Optional[Order]:
        """Submit the order payload to the backend and track the new order."""
        if not await self._check_submission():
            return None
        if not self.payment_methods:
            await self.load_payment_methods()
        method = self.selected_payment_method
        if method is None:
            self.receipt_error = ERROR_SELECT_PAYMENT_METHOD
            return None

        self.is_placing_order = True
        self.receipt_error = None
        try:
            payload = self.composer.build_order_payload(
                self.cart_items,
                self.custom_field_values,
                self.total_price,
                method,
                self.receipt_image_url,
            )
            order = await self.backend.create_order(payload)
        except Exception as e:
            logger.error(f"[CHECKOUT] Error placing order: {e}", exc_info=True)
            self.receipt_error = ERROR_PLACE_ORDER_FAILED
            return None
        finally:
            self.is_placing_order = False

        self.order_id = order.id
        self.existing_order_status = order.status
        await self._save_order_id()
        self.is_order_modal_open = True
        logger.info(f"[CHECKOUT] Order placed - id: {order.id}, status: {order.status}")
        return order

    async def place_order(self, open_link: Optional[LinkOpener] = None):
        """Submit using the configured order option."""
        if self.order_option == ORDER_VIA_MESSENGER:
            return await self.place_order_via_messenger(open_link)
        return await self.place_order_direct()

    # Orders in flight

    async def _clear_tracked_order(self) -> None:
        self.order_id = None
        self.existing_order_status = None
        await self._save_order_id()

    async def _apply_fetched_order(self, order: Order) -> None:
        self.order_id = order.id
        self.existing_order_status = order.status
        if order.status == OrderStatus.APPROVED:
            await self._clear_tracked_order()

    async def check_existing_order(self) -> Optional[Order]:
        """
        Recover the order stored from a previous visit.

        Approved and unknown orders stop being tracked; anything else, rejected
        included, stays tracked so the customer can still open it.
        """
        stored_id = await self.store.get_text(CheckoutStorageKeys.CURRENT_ORDER_ID)
        if not stored_id:
            return None
        try:
            order = await self.backend.fetch_order_by_id(stored_id)
        except Exception as e:
            logger.error(f"[CHECKOUT] Error checking order {stored_id}: {e}", exc_info=True)
            return None
        if order is None:
            logger.info(f"[CHECKOUT] Stored order {stored_id} no longer exists")
            await self._clear_tracked_order()
            return None
        await self._apply_fetched_order(order)
        return order

    def open_order_status(self) -> None:
        if self.order_id:
            self.is_order_modal_open = True

    async def close_order_status(self) -> Optional[Order]:
        """Close the status view and refresh the tracked order."""
        self.is_order_modal_open = False
        if not self.order_id:
            return None
        try:
            order = await self.backend.fetch_order_by_id(self.order_id)
        except Exception as e:
            logger.error(f"[CHECKOUT] Error refreshing order {self.order_id}: {e}", exc_info=True)
            return None
        if order is not None:
            await self._apply_fetched_order(order)
        return order

    async def acknowledge_order_success(self) -> None:
        """Forget a succeeded order once the customer has seen it."""
        self.is_order_modal_open = False
        await self._clear_tracked_order()
