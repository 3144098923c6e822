"""Database models."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_uuid() -> str:
    return str(uuid.uuid4())


class StorageEntry(Base):
    """Client session key-value entry (durable client storage)."""

    __tablename__ = "storage_entries"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_storage_entries_namespace_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String, index=True, nullable=False)  # client session id
    key = Column(String, nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PaymentMethod(Base):
    """Payment method model."""

    __tablename__ = "payment_methods"

    uuid_id = Column(String, primary_key=True, default=_new_uuid)
    id = Column(String, index=True, nullable=False)  # short code, e.g. "gcash"
    name = Column(String, nullable=False)
    account_number = Column(String, nullable=False, default="")
    account_name = Column(String, nullable=False, default="")
    qr_code_url = Column(Text, nullable=True)
    icon_url = Column(Text, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Order(Base):
    """Order model."""

    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_new_uuid)
    status = Column(String, default="pending", nullable=False)  # pending, processing, approved, rejected
    order_items = Column(JSON, nullable=False)
    customer_info = Column(JSON, nullable=False)
    payment_method_id = Column(String, nullable=False)
    receipt_url = Column(Text, nullable=False)
    total_price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
