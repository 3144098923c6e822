"""Cart API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.core.dependencies import get_cart, get_menu_repository, get_navigator
from app.services.cart.cart import Cart
from app.services.checkout.models import CartItem
from app.services.menu.repository import MenuRepository
from app.services.storefront.navigation import StorefrontNavigator

router = APIRouter()
logger = logging.getLogger(__name__)


class CartResponse(BaseModel):
    """Cart response model."""
    items: List[CartItem]
    total_price: float
    total_items: int


class AddToCartRequest(BaseModel):
    """Add-to-cart request model."""
    menu_item_id: str
    quantity: int = 1
    variation_id: Optional[str] = None


class UpdateQuantityRequest(BaseModel):
    """Quantity update request model."""
    quantity: int


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        items=cart.items,
        total_price=cart.get_total_price(),
        total_items=cart.get_total_items(),
    )


@router.get("/api/cart", response_model=CartResponse)
async def get_cart_contents(cart: Cart = Depends(get_cart)):
    """Get the cart."""
    return _cart_response(cart)


@router.post("/api/cart/items", response_model=CartResponse)
async def add_to_cart(
    payload: AddToCartRequest,
    cart: Cart = Depends(get_cart),
    navigator: StorefrontNavigator = Depends(get_navigator),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Add a menu item (optionally a specific package) to the cart."""
    menu_item = await menu_repository.get_item_by_id(payload.menu_item_id)
    if menu_item is None:
        raise HTTPException(status_code=404, detail=f"Menu item '{payload.menu_item_id}' not found")

    variation = None
    if payload.variation_id:
        variation = menu_item.get_variation(payload.variation_id)
        if variation is None:
            raise HTTPException(status_code=404, detail=f"Package '{payload.variation_id}' not found")

    try:
        await cart.add_to_cart(menu_item, payload.quantity, variation)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await navigator.item_added()
    return _cart_response(cart)


@router.patch("/api/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: str,
    payload: UpdateQuantityRequest,
    cart: Cart = Depends(get_cart),
):
    """Change an item's quantity; zero removes it."""
    if cart.get_item(item_id) is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    await cart.update_quantity(item_id, payload.quantity)
    return _cart_response(cart)


@router.delete("/api/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(item_id: str, cart: Cart = Depends(get_cart)):
    """Remove an item from the cart."""
    if not await cart.remove_from_cart(item_id):
        raise HTTPException(status_code=404, detail="Cart item not found")
    return _cart_response(cart)


@router.delete("/api/cart", response_model=CartResponse)
async def clear_cart(cart: Cart = Depends(get_cart)):
    """Empty the cart."""
    await cart.clear_cart()
    logger.info("[CART] Cart cleared")
    return _cart_response(cart)
