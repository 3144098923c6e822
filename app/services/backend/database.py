"""Backend persisted in the local database."""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Order as OrderRecord
from app.db.models import PaymentMethod as PaymentMethodRecord
from app.services.backend.base import BackendError, ImageUploadError, ShopBackend, validate_image
from app.services.checkout.models import (
    Order,
    OrderCreate,
    OrderStatus,
    PaymentMethod,
    ReceiptUpload,
)

logger = logging.getLogger(__name__)


def _write_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def _to_payment_method(record: PaymentMethodRecord) -> PaymentMethod:
    return PaymentMethod(
        id=record.uuid_id,
        name=record.name,
        account_number=record.account_number or "",
        account_name=record.account_name or "",
        icon_url=record.icon_url,
        qr_code_url=record.qr_code_url,
    )


def _to_order(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        status=record.status,
        order_items=record.order_items or [],
        customer_info=record.customer_info or {},
        payment_method_id=record.payment_method_id,
        receipt_url=record.receipt_url,
        total_price=record.total_price,
        created_at=record.created_at,
    )


class DatabaseBackend(ShopBackend):
    """Service for persisting payment methods and orders locally."""

    def __init__(
        self,
        db: AsyncSession,
        upload_dir: str = "uploads",
        public_base_url: str = "",
        max_image_bytes: int = 5 * 1024 * 1024,
    ):
        self.db = db
        self.upload_dir = Path(upload_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_image_bytes = max_image_bytes

    async def list_payment_methods(self) -> List[PaymentMethod]:
        """List active payment methods."""
        try:
            result = await self.db.execute(
                select(PaymentMethodRecord)
                .where(PaymentMethodRecord.active.is_(True))
                .order_by(PaymentMethodRecord.sort_order, PaymentMethodRecord.name)
            )
        except SQLAlchemyError as e:
            raise BackendError(f"Could not load payment methods: {e}") from e
        return [_to_payment_method(record) for record in result.scalars().all()]

    async def add_payment_method(
        self,
        code: str,
        name: str,
        account_number: str = "",
        account_name: str = "",
        qr_code_url: Optional[str] = None,
        icon_url: Optional[str] = None,
        sort_order: int = 0,
    ) -> PaymentMethod:
        """Create a payment method."""
        record = PaymentMethodRecord(
            id=code,
            name=name,
            account_number=account_number,
            account_name=account_name,
            qr_code_url=qr_code_url,
            icon_url=icon_url,
            sort_order=sort_order,
        )
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)
        return _to_payment_method(record)

    async def upload_image(self, upload: ReceiptUpload, folder: str) -> str:
        """Write the image under the upload directory and return its URL."""
        validate_image(upload, self.max_image_bytes)
        suffix = Path(upload.filename).suffix or ".png"
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
        target = self.upload_dir / folder / name
        try:
            await asyncio.to_thread(_write_file, target, upload.data)
        except OSError as e:
            logger.error(f"[BACKEND] Could not write image {target}: {e}", exc_info=True)
            raise ImageUploadError("Failed to upload image") from e
        return f"{self.public_base_url}/uploads/{folder}/{name}"

    async def create_order(self, payload: OrderCreate) -> Order:
        """Create a new pending order."""
        data = payload.model_dump(mode="json")
        record = OrderRecord(
            status=OrderStatus.PENDING.value,
            order_items=data["order_items"],
            customer_info=data["customer_info"],
            payment_method_id=payload.payment_method_id,
            receipt_url=payload.receipt_url,
            total_price=payload.total_price,
        )
        try:
            self.db.add(record)
            await self.db.commit()
            await self.db.refresh(record)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BackendError(f"Could not create order: {e}") from e
        return _to_order(record)

    async def get_order_record(self, order_id: str) -> Optional[OrderRecord]:
        result = await self.db.execute(
            select(OrderRecord).where(OrderRecord.id == order_id)
        )
        return result.scalar_one_or_none()

    async def fetch_order_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by id."""
        try:
            record = await self.get_order_record(order_id)
        except SQLAlchemyError as e:
            raise BackendError(f"Could not fetch order {order_id}: {e}") from e
        return _to_order(record) if record else None

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        """Move an order to a new status."""
        record = await self.get_order_record(order_id)
        if record:
            record.status = OrderStatus(status).value
            await self.db.commit()
            await self.db.refresh(record)
        return _to_order(record) if record else None
