"""Checkout API endpoints."""
import logging
from typing import Dict, List, Optional
import httpx
from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel

from app.core.dependencies import (
    get_cart,
    get_checkout_manager,
    get_http_client,
    get_navigator,
)
from app.services.cart.cart import Cart
from app.services.checkout.constants import ORDER_VIA_MESSENGER
from app.services.checkout.models import (
    CartItem,
    Order,
    OrderStatus,
    PaymentMethod,
    ReceiptUpload,
)
from app.services.checkout.qr_download import QrCodeDownloader
from app.services.checkout.state import CheckoutStateManager
from app.services.menu.base import CustomField
from app.services.storefront.navigation import StorefrontNavigator, StorefrontView

router = APIRouter(prefix="/api/checkout", tags=["checkout"])
logger = logging.getLogger(__name__)


class BulkFieldResponse(BaseModel):
    """Bulk input field response model."""
    index: int
    label: str
    required: bool
    field: Optional[CustomField] = None


class CheckoutStateResponse(BaseModel):
    """Checkout state response model."""
    order_option: str
    payment_methods: List[PaymentMethod]
    payment_method_id: Optional[str] = None
    items_with_custom_fields: List[CartItem]
    custom_field_values: Dict[str, str]
    bulk_mode_available: bool
    bulk_selected_games: List[str]
    bulk_input_values: Dict[str, str]
    bulk_fields: List[BulkFieldResponse]
    is_details_valid: bool
    receipt_image_url: Optional[str] = None
    receipt_preview: Optional[str] = None
    receipt_error: Optional[str] = None
    has_copied_message: bool
    total_price: float
    order_id: Optional[str] = None
    existing_order_status: Optional[OrderStatus] = None
    has_order_in_flight: bool
    is_order_modal_open: bool


class PaymentMethodRequest(BaseModel):
    payment_method_id: Optional[str] = None


class FieldValueRequest(BaseModel):
    """Custom field input; without item_id the value goes to the IGN fallback."""
    value: str
    item_id: Optional[str] = None
    field_index: Optional[int] = None


class BulkSelectionRequest(BaseModel):
    item_id: str
    selected: bool


class BulkValueRequest(BaseModel):
    field_index: int
    value: str


class MessageResponse(BaseModel):
    message: str
    copied: bool = False


class PlaceOrderResponse(BaseModel):
    """Order submission result; messenger mode returns a link, direct mode an order."""
    mode: str
    redirect_url: Optional[str] = None
    order: Optional[Order] = None


def _state_response(manager: CheckoutStateManager) -> CheckoutStateResponse:
    return CheckoutStateResponse(
        order_option=manager.order_option,
        payment_methods=manager.payment_methods,
        payment_method_id=manager.payment_method_id,
        items_with_custom_fields=manager.items_with_custom_fields,
        custom_field_values=manager.custom_field_values,
        bulk_mode_available=manager.bulk_mode_available,
        bulk_selected_games=manager.bulk_selected_games,
        bulk_input_values=manager.bulk_input_values,
        bulk_fields=[
            BulkFieldResponse(
                index=bulk_field.index,
                label=bulk_field.label,
                required=bulk_field.required,
                field=bulk_field.field,
            )
            for bulk_field in manager.bulk_input_fields()
        ],
        is_details_valid=manager.is_details_valid,
        receipt_image_url=manager.receipt_image_url,
        receipt_preview=manager.receipt_preview,
        receipt_error=manager.receipt_error,
        has_copied_message=manager.has_copied_message,
        total_price=manager.total_price,
        order_id=manager.order_id,
        existing_order_status=manager.existing_order_status,
        has_order_in_flight=manager.has_order_in_flight,
        is_order_modal_open=manager.is_order_modal_open,
    )


@router.get("", response_model=CheckoutStateResponse)
async def get_checkout(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Restore checkout state, recovering any order placed earlier."""
    await manager.check_existing_order()
    return _state_response(manager)


@router.put("/payment-method", response_model=CheckoutStateResponse)
async def set_payment_method(
    payload: PaymentMethodRequest,
    manager: CheckoutStateManager = Depends(get_checkout_manager),
):
    """Select a payment method."""
    if payload.payment_method_id and not any(
        method.id == payload.payment_method_id for method in manager.payment_methods
    ):
        raise HTTPException(status_code=404, detail="Payment method not found")
    await manager.set_payment_method(payload.payment_method_id)
    return _state_response(manager)


@router.put("/fields", response_model=CheckoutStateResponse)
async def set_field_value(
    payload: FieldValueRequest,
    manager: CheckoutStateManager = Depends(get_checkout_manager),
):
    """Enter a custom field value, or the in-game name when no item has fields."""
    if payload.item_id is None:
        await manager.set_default_ign(payload.value)
        return _state_response(manager)
    if payload.field_index is None:
        raise HTTPException(status_code=422, detail="field_index is required with item_id")
    try:
        await manager.set_custom_field_value(payload.item_id, payload.field_index, payload.value)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _state_response(manager)


@router.put("/bulk/games", response_model=CheckoutStateResponse)
async def select_bulk_game(
    payload: BulkSelectionRequest,
    manager: CheckoutStateManager = Depends(get_checkout_manager),
):
    """Include or exclude an item from bulk input."""
    await manager.select_bulk_game(payload.item_id, payload.selected)
    return _state_response(manager)


@router.put("/bulk/values", response_model=CheckoutStateResponse)
async def set_bulk_value(
    payload: BulkValueRequest,
    manager: CheckoutStateManager = Depends(get_checkout_manager),
):
    """Enter a bulk value, applied to every selected item at that position."""
    if payload.field_index < 0:
        raise HTTPException(status_code=422, detail="field_index must not be negative")
    await manager.set_bulk_value(payload.field_index, payload.value)
    return _state_response(manager)


@router.post("/receipt", response_model=CheckoutStateResponse)
async def upload_receipt(
    file: UploadFile = File(...),
    manager: CheckoutStateManager = Depends(get_checkout_manager),
):
    """Upload the payment receipt screenshot."""
    upload = ReceiptUpload(
        filename=file.filename or "receipt",
        content_type=file.content_type or "application/octet-stream",
        data=await file.read(),
    )
    if not await manager.upload_receipt(upload):
        raise HTTPException(status_code=400, detail=manager.receipt_error)
    return _state_response(manager)


@router.delete("/receipt", response_model=CheckoutStateResponse)
async def remove_receipt(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Remove the uploaded receipt."""
    await manager.remove_receipt()
    return _state_response(manager)


@router.get("/message", response_model=MessageResponse)
async def get_message(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Get the composed order message."""
    return MessageResponse(message=manager.compose_message(), copied=manager.has_copied_message)


@router.post("/message/copy", response_model=MessageResponse)
async def copy_message(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Record that the customer copied the order message."""
    copied = await manager.copy_message()
    return MessageResponse(message=manager.compose_message(), copied=copied)


@router.post("/orders", response_model=PlaceOrderResponse)
async def place_order(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Submit the order using the configured order option."""
    if manager.order_option == ORDER_VIA_MESSENGER:
        link = await manager.place_order_via_messenger()
        if link is None:
            raise HTTPException(status_code=400, detail=manager.receipt_error)
        return PlaceOrderResponse(mode=manager.order_option, redirect_url=link)

    order = await manager.place_order_direct()
    if order is None:
        raise HTTPException(status_code=400, detail=manager.receipt_error)
    return PlaceOrderResponse(mode=manager.order_option, order=order)


@router.post("/orders/status/close", response_model=CheckoutStateResponse)
async def close_order_status(manager: CheckoutStateManager = Depends(get_checkout_manager)):
    """Close the order status view and refresh the tracked order."""
    await manager.close_order_status()
    return _state_response(manager)


@router.post("/orders/status/acknowledge", response_model=CheckoutStateResponse)
async def acknowledge_order_success(
    manager: CheckoutStateManager = Depends(get_checkout_manager),
    cart: Cart = Depends(get_cart),
    navigator: StorefrontNavigator = Depends(get_navigator),
):
    """Finish a succeeded order: forget it, empty the cart and go back to the menu."""
    await manager.acknowledge_order_success()
    await cart.clear_cart()
    await manager.set_cart_items(cart.items)
    await navigator.set_view(StorefrontView.MENU)
    return _state_response(manager)


@router.get("/qr-code")
async def download_qr_code(
    payment_method_id: str,
    manager: CheckoutStateManager = Depends(get_checkout_manager),
    client: httpx.AsyncClient = Depends(get_http_client),
    user_agent: Optional[str] = Header(default=None),
):
    """Download a payment method's QR code, or redirect to it when that fails."""
    method = next((m for m in manager.payment_methods if m.id == payment_method_id), None)
    if method is None or not method.qr_code_url:
        raise HTTPException(status_code=404, detail="QR code not found")

    result = await QrCodeDownloader(client).download(method.qr_code_url, method.name, user_agent)
    if result.succeeded:
        return Response(
            content=result.content,
            media_type=result.content_type,
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )
    return RedirectResponse(result.fallback_url)
