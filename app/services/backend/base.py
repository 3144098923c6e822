"""Shop backend interface."""
from abc import ABC, abstractmethod
from typing import List, Optional

from app.services.checkout.constants import ALLOWED_RECEIPT_TYPES
from app.services.checkout.models import Order, OrderCreate, PaymentMethod, ReceiptUpload


class BackendError(Exception):
    """Raised when a backend call fails."""


class ImageUploadError(BackendError):
    """Raised when an image is rejected or cannot be stored."""


def validate_image(upload: ReceiptUpload, max_bytes: int) -> None:
    """Check type and size limits for an uploaded image."""
    if upload.content_type not in ALLOWED_RECEIPT_TYPES:
        raise ImageUploadError("Please upload a JPEG, PNG, WebP, or GIF image")
    if upload.size > max_bytes:
        max_mb = max_bytes // (1024 * 1024)
        raise ImageUploadError(f"Image must be smaller than {max_mb}MB")


class ShopBackend(ABC):
    """Abstract base class for the backend holding payment methods, images and orders."""

    @abstractmethod
    async def list_payment_methods(self) -> List[PaymentMethod]:
        """List active payment methods."""
        pass

    @abstractmethod
    async def upload_image(self, upload: ReceiptUpload, folder: str) -> str:
        """Store an image and return its public reference URL."""
        pass

    @abstractmethod
    async def create_order(self, payload: OrderCreate) -> Order:
        """Create a new order."""
        pass

    @abstractmethod
    async def fetch_order_by_id(self, order_id: str) -> Optional[Order]:
        """Get an order, or None when it does not exist."""
        pass
