"""Menu and storefront navigation API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from app.core.dependencies import get_cart, get_menu_repository, get_navigator
from app.services.cart.cart import Cart
from app.services.menu.base import MenuItem
from app.services.menu.repository import MenuRepository
from app.services.storefront.navigation import (
    StorefrontNavigator,
    StorefrontView,
    filter_menu_items,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class MenuResponse(BaseModel):
    """Menu response model."""
    items: List[MenuItem]
    categories: List[str] = []
    has_popular_items: bool = False


class StorefrontResponse(BaseModel):
    """Storefront state response model."""
    view: StorefrontView
    category: str
    search: str
    cart_items_count: int
    items: List[MenuItem]


class StorefrontUpdate(BaseModel):
    """Storefront state change; only the given fields are applied."""
    view: Optional[StorefrontView] = None
    category: Optional[str] = None
    search: Optional[str] = None


@router.get("/api/menu", response_model=MenuResponse)
async def get_menu(
    request: Request,
    category: str = "all",
    search: str = "",
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Get the menu, optionally filtered by category and search text."""
    logger.info(
        f"[MENU] Request received - category: {category}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        menu = await menu_repository.get_menu()
    except Exception as e:
        logger.error(
            f"[MENU] Error fetching menu - Error: {type(e).__name__}: {str(e)}",
            exc_info=True
        )
        raise HTTPException(status_code=500, detail=f"Error fetching menu: {str(e)}")

    items = filter_menu_items(menu.items, category, search)
    logger.debug(f"[MENU] {len(items)} of {len(menu.items)} items after filtering")
    return MenuResponse(
        items=items,
        categories=menu.categories,
        has_popular_items=any(item.popular for item in menu.items),
    )


async def _storefront_response(
    navigator: StorefrontNavigator, cart: Cart, menu_repository: MenuRepository
) -> StorefrontResponse:
    menu = await menu_repository.get_menu()
    await navigator.reconcile(len(cart.items), menu.items)
    return StorefrontResponse(
        view=navigator.view,
        category=navigator.category,
        search=navigator.search,
        cart_items_count=cart.get_total_items(),
        items=filter_menu_items(menu.items, navigator.category, navigator.search),
    )


@router.get("/api/storefront", response_model=StorefrontResponse)
async def get_storefront(
    navigator: StorefrontNavigator = Depends(get_navigator),
    cart: Cart = Depends(get_cart),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Get the customer's current storefront view, restored across reloads."""
    return await _storefront_response(navigator, cart, menu_repository)


@router.put("/api/storefront", response_model=StorefrontResponse)
async def update_storefront(
    update: StorefrontUpdate,
    navigator: StorefrontNavigator = Depends(get_navigator),
    cart: Cart = Depends(get_cart),
    menu_repository: MenuRepository = Depends(get_menu_repository),
):
    """Change view, category or search."""
    if update.view is not None:
        await navigator.set_view(update.view)
    if update.category is not None:
        await navigator.select_category(update.category)
    if update.search is not None:
        await navigator.set_search(update.search)
    return await _storefront_response(navigator, cart, menu_repository)
