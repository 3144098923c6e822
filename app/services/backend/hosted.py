"""Hosted backend-as-a-service client."""
import logging
import time
import uuid
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

import httpx

from app.services.backend.base import BackendError, ImageUploadError, ShopBackend, validate_image
from app.services.checkout.models import Order, OrderCreate, PaymentMethod, ReceiptUpload

logger = logging.getLogger(__name__)


class HostedBackend(ShopBackend):
    """Backend talking to a hosted PostgREST + object storage service."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        bucket: str = "payment-receipts",
        max_image_bytes: int = 5 * 1024 * 1024,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.max_image_bytes = max_image_bytes

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[BACKEND] {method} {path} failed - {type(e).__name__}: {e}")
            raise BackendError(f"Backend request failed: {e}") from e
        return response

    async def list_payment_methods(self) -> List[PaymentMethod]:
        """List active payment methods ordered by sort order."""
        response = await self._request(
            "GET",
            "/rest/v1/payment_methods",
            params={"select": "*", "active": "eq.true", "order": "sort_order.asc"},
            headers=self._headers(),
        )
        return [
            PaymentMethod(
                id=row["uuid_id"],
                name=row["name"],
                account_number=row.get("account_number") or "",
                account_name=row.get("account_name") or "",
                icon_url=row.get("icon_url"),
                qr_code_url=row.get("qr_code_url"),
            )
            for row in response.json()
        ]

    async def upload_image(self, upload: ReceiptUpload, folder: str) -> str:
        """Upload an image to the storage bucket and return its public URL."""
        validate_image(upload, self.max_image_bytes)
        suffix = PurePosixPath(upload.filename).suffix or ".png"
        object_path = f"{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
        try:
            await self._request(
                "POST",
                f"/storage/v1/object/{self.bucket}/{object_path}",
                content=upload.data,
                headers=self._headers(**{"Content-Type": upload.content_type, "x-upsert": "false"}),
            )
        except BackendError as e:
            raise ImageUploadError("Failed to upload image") from e
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{object_path}"

    async def create_order(self, payload: OrderCreate) -> Order:
        """Insert an order row and return it."""
        response = await self._request(
            "POST",
            "/rest/v1/orders",
            json=payload.model_dump(mode="json"),
            headers=self._headers(Prefer="return=representation"),
        )
        rows = response.json()
        if not rows:
            raise BackendError("Backend returned no order")
        return Order.model_validate(rows[0])

    async def fetch_order_by_id(self, order_id: str) -> Optional[Order]:
        """Fetch a single order by id."""
        response = await self._request(
            "GET",
            "/rest/v1/orders",
            params={"select": "*", "id": f"eq.{order_id}"},
            headers=self._headers(),
        )
        rows = response.json()
        if not rows:
            return None
        return Order.model_validate(rows[0])
