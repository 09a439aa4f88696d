"""SQLAlchemy ORM models for marketplace orders, care bookings and store credit"""

import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Platform user; roles are capability rows, not boolean flags"""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=True)
    zip_code = Column(String(10), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    capabilities = relationship("AccountCapability", back_populates="account", cascade="all, delete-orphan")
    producer_profile = relationship("ProducerProfile", back_populates="account", uselist=False)


class AccountCapability(Base):
    """Role-capability token attached to an account (PRODUCER, CAREGIVER, ...)"""

    __tablename__ = "account_capabilities"
    __table_args__ = (UniqueConstraint("account_id", "capability", name="uq_account_capability"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    capability = Column(String(32), nullable=False)

    account = relationship("Account", back_populates="capabilities")


class ProducerProfile(Base):
    """Seller settings for an account holding the PRODUCER capability"""

    __tablename__ = "producer_profiles"

    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True)
    active = Column(Boolean, nullable=False, default=True)
    offers_delivery = Column(Boolean, nullable=False, default=False)
    delivery_fee_cents = Column(BigInteger, nullable=False, default=0)

    account = relationship("Account", back_populates="producer_profile")


class Product(Base):
    """Catalog listing; quantity_available NULL means unlimited stock"""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity_available IS NULL OR quantity_available >= 0", name="stock_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    producer_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    price_cents = Column(BigInteger, nullable=False)
    quantity_available = Column(Integer, nullable=True)
    zip_code = Column(String(10), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Order(Base):
    """Committed buyer -> producer transaction"""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("buyer_id", "idempotency_key", name="uq_order_buyer_idempotency_key"),
        UniqueConstraint("pickup_code", name="uq_order_pickup_code"),
        CheckConstraint("total_cents >= 0", name="total_non_negative"),
        CheckConstraint("applied_credit_cents >= 0 AND applied_credit_cents <= total_cents", name="credit_within_total"),
        Index("ix_orders_buyer_producer", "buyer_id", "producer_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    buyer_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    producer_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="PENDING")
    fulfillment_type = Column(String(16), nullable=False, default="PICKUP")
    total_cents = Column(BigInteger, nullable=False)
    applied_credit_cents = Column(BigInteger, nullable=False, default=0)
    delivery_fee_cents = Column(BigInteger, nullable=False, default=0)
    pickup_code = Column(String(16), nullable=False)
    idempotency_key = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    pickup_date = Column(Date, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    line_items = relationship("OrderLineItem", back_populates="order", cascade="all, delete-orphan")


class OrderLineItem(Base):
    """Line item with a unit price snapshot taken at checkout"""

    __tablename__ = "order_line_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)

    order = relationship("Order", back_populates="line_items")


class CareBooking(Base):
    """Scheduling agreement between a care seeker and a caregiver"""

    __tablename__ = "care_bookings"
    __table_args__ = (
        UniqueConstraint("care_seeker_id", "idempotency_key", name="uq_care_booking_seeker_idempotency_key"),
        CheckConstraint("start_at < end_at", name="booking_start_before_end"),
        Index("ix_care_bookings_caregiver_status", "caregiver_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    care_seeker_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    caregiver_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    status = Column(String(16), nullable=False, default="REQUESTED")
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    location_zip = Column(String(10), nullable=False)
    species = Column(Text, nullable=True)
    service_type = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    idempotency_key = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class CreditLedgerEntry(Base):
    """Append-only store credit issuance; never updated or deleted"""

    __tablename__ = "credit_ledger_entries"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="credit_amount_positive"),
        CheckConstraint("order_id IS NOT NULL OR report_id IS NOT NULL", name="credit_has_reference"),
        Index("ix_credit_ledger_user_producer", "user_id", "producer_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    producer_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    reason = Column(String(32), nullable=False)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    report_id = Column(String(36), ForeignKey("reports.id"), nullable=True)
    created_by_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Report(Base):
    """Dispute/report raised against an order, resolved by moderation"""

    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=new_id)
    reporter_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    reason = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="OPEN")
    resolution_note = Column(Text, nullable=True)
    resolved_by_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class JobPosting(Base):
    """Help-exchange job posting, discoverable by ZIP radius"""

    __tablename__ = "job_postings"

    id = Column(String(36), primary_key=True, default=new_id)
    poster_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    zip_code = Column(String(10), nullable=False)
    status = Column(String(16), nullable=False, default="OPEN")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
