"""Data access layer for marketplace and care entities"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from local_yield.infrastructure.database.models import (
    Account,
    AccountCapability,
    CareBooking,
    CreditLedgerEntry,
    JobPosting,
    Order,
    OrderLineItem,
    ProducerProfile,
    Product,
    Report,
)
from local_yield.domain.models import (
    BookingStatus,
    Capability,
    CreateBookingInput,
    IssueCreditInput,
    OrderLineInput,
    OrderStatus,
)


class AccountRepository:
    """Repository for accounts and their capability tokens"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def has_capability(self, account_id: str, capability: Capability) -> bool:
        """Capability lookup instead of per-role boolean columns"""
        return (
            self.db.query(AccountCapability.id)
            .filter(
                AccountCapability.account_id == account_id,
                AccountCapability.capability == Capability(capability).value,
            )
            .first()
            is not None
        )

    def get_active_producer(self, account_id: str) -> Optional[ProducerProfile]:
        """Producer profile if the account is an active seller"""
        if not self.has_capability(account_id, Capability.PRODUCER):
            return None
        return (
            self.db.query(ProducerProfile)
            .filter(ProducerProfile.account_id == account_id, ProducerProfile.active.is_(True))
            .first()
        )

    def list_with_capability(self, capability: Capability) -> List[Account]:
        return (
            self.db.query(Account)
            .join(AccountCapability, AccountCapability.account_id == Account.id)
            .filter(AccountCapability.capability == Capability(capability).value)
            .order_by(Account.created_at.asc(), Account.id.asc())
            .all()
        )


class ProductRepository:
    """Repository for catalog products and their stock"""

    def __init__(self, db: Session):
        self.db = db

    def get_many(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        return {p.id: p for p in self.db.query(Product).filter(Product.id.in_(ids)).all()}

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """
        Atomic decrement-if-sufficient.

        Products with unlimited stock (NULL) are left untouched and count as success.
        Returns False when another writer drained the stock first.
        """
        updated = (
            self.db.query(Product)
            .filter(
                Product.id == product_id,
                Product.quantity_available.isnot(None),
                Product.quantity_available >= quantity,
            )
            .update(
                {Product.quantity_available: Product.quantity_available - quantity},
                synchronize_session=False,
            )
        )
        if updated == 1:
            return True
        unlimited = (
            self.db.query(Product.id)
            .filter(Product.id == product_id, Product.quantity_available.is_(None))
            .first()
        )
        return unlimited is not None

    def list_active(self) -> List[Product]:
        return (
            self.db.query(Product)
            .filter(Product.active.is_(True))
            .order_by(Product.created_at.desc(), Product.id.asc())
            .all()
        )


class OrderRepository:
    """Repository for orders and line items"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    def find_by_idempotency_key(self, buyer_id: str, idempotency_key: str) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.buyer_id == buyer_id, Order.idempotency_key == idempotency_key)
            .first()
        )

    def pickup_code_exists(self, pickup_code: str) -> bool:
        return self.db.query(Order.id).filter(Order.pickup_code == pickup_code).first() is not None

    def create_order(
        self,
        buyer_id: str,
        producer_id: str,
        fulfillment_type: str,
        total_cents: int,
        applied_credit_cents: int,
        delivery_fee_cents: int,
        pickup_code: str,
        items: List[OrderLineInput],
        idempotency_key: Optional[str] = None,
        notes: Optional[str] = None,
        pickup_date=None,
    ) -> Order:
        """Stage order header plus line items; caller owns the commit"""
        db_order = Order(
            buyer_id=buyer_id,
            producer_id=producer_id,
            status=OrderStatus.PENDING.value,
            fulfillment_type=fulfillment_type,
            total_cents=total_cents,
            applied_credit_cents=applied_credit_cents,
            delivery_fee_cents=delivery_fee_cents,
            pickup_code=pickup_code,
            idempotency_key=idempotency_key,
            notes=notes,
            pickup_date=pickup_date,
        )
        self.db.add(db_order)
        self.db.flush()  # Get ID without committing

        for item in items:
            self.db.add(
                OrderLineItem(
                    order_id=db_order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                )
            )

        return db_order

    def applied_credit_total(self, buyer_id: str, producer_id: str) -> int:
        """Credit consumed by the buyer's non-canceled orders with this producer"""
        return (
            self.db.query(func.coalesce(func.sum(Order.applied_credit_cents), 0))
            .filter(
                Order.buyer_id == buyer_id,
                Order.producer_id == producer_id,
                Order.status != OrderStatus.CANCELED.value,
            )
            .scalar()
        )

    def compare_and_set_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        now: datetime,
    ) -> bool:
        values = {Order.status: OrderStatus(new_status).value}
        if new_status == OrderStatus.PAID:
            values[Order.paid_at] = now
        if new_status == OrderStatus.FULFILLED:
            values[Order.fulfilled_at] = now
        updated = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.status == OrderStatus(expected).value)
            .update(values, synchronize_session=False)
        )
        return updated == 1

    def list_for_buyer(self, buyer_id: str, limit: int = 50) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .all()
        )

    def list_for_producer(self, producer_id: str, limit: int = 50) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.producer_id == producer_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .all()
        )


class BookingRepository:
    """Repository for care bookings"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: str) -> Optional[CareBooking]:
        return self.db.query(CareBooking).filter(CareBooking.id == booking_id).first()

    def find_by_idempotency_key(self, seeker_id: str, idempotency_key: str) -> Optional[CareBooking]:
        return (
            self.db.query(CareBooking)
            .filter(CareBooking.care_seeker_id == seeker_id, CareBooking.idempotency_key == idempotency_key)
            .first()
        )

    def lock_caregiver(self, caregiver_id: str) -> None:
        """Row lock on the caregiver account held until commit; SQLite ignores FOR UPDATE"""
        self.db.query(Account.id).filter(Account.id == caregiver_id).with_for_update().first()

    def find_overlapping(self, caregiver_id: str, start_at: datetime, end_at: datetime) -> Optional[CareBooking]:
        """Open booking for the caregiver whose window touches [start_at, end_at]"""
        return (
            self.db.query(CareBooking)
            .filter(
                CareBooking.caregiver_id == caregiver_id,
                CareBooking.status.in_([BookingStatus.REQUESTED.value, BookingStatus.ACCEPTED.value]),
                CareBooking.start_at <= end_at,
                CareBooking.end_at >= start_at,
            )
            .first()
        )

    def create_booking(self, data: CreateBookingInput, start_at: datetime, end_at: datetime) -> CareBooking:
        db_booking = CareBooking(
            care_seeker_id=data.seeker_id,
            caregiver_id=data.caregiver_id,
            status=BookingStatus.REQUESTED.value,
            start_at=start_at,
            end_at=end_at,
            location_zip=data.location_zip,
            species=data.species,
            service_type=data.service_type,
            notes=data.notes,
            idempotency_key=data.idempotency_key,
        )
        self.db.add(db_booking)
        self.db.flush()
        return db_booking

    def compare_and_set_status(self, booking_id: str, expected: BookingStatus, new_status: BookingStatus) -> bool:
        """Single-row CAS: fails if someone else moved the booking first"""
        updated = (
            self.db.query(CareBooking)
            .filter(CareBooking.id == booking_id, CareBooking.status == BookingStatus(expected).value)
            .update({CareBooking.status: BookingStatus(new_status).value}, synchronize_session=False)
        )
        return updated == 1

    def list_for_user(self, user_id: str, limit: int = 50) -> List[CareBooking]:
        return (
            self.db.query(CareBooking)
            .filter(or_(CareBooking.care_seeker_id == user_id, CareBooking.caregiver_id == user_id))
            .order_by(CareBooking.start_at.desc())
            .limit(limit)
            .all()
        )


class CreditLedgerRepository:
    """Append-only repository: there is deliberately no update or delete"""

    def __init__(self, db: Session):
        self.db = db

    def append(self, data: IssueCreditInput) -> CreditLedgerEntry:
        entry = CreditLedgerEntry(
            user_id=data.user_id,
            producer_id=data.producer_id,
            amount_cents=data.amount_cents,
            reason=data.reason.value,
            order_id=data.order_id,
            report_id=data.report_id,
            created_by_id=data.created_by_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def sum_issued(self, user_id: str, producer_id: str) -> int:
        return (
            self.db.query(func.coalesce(func.sum(CreditLedgerEntry.amount_cents), 0))
            .filter(CreditLedgerEntry.user_id == user_id, CreditLedgerEntry.producer_id == producer_id)
            .scalar()
        )

    def lock_entries(self, user_id: str, producer_id: str) -> None:
        """SELECT ... FOR UPDATE on the pair's entries; no-op on SQLite"""
        (
            self.db.query(CreditLedgerEntry.id)
            .filter(CreditLedgerEntry.user_id == user_id, CreditLedgerEntry.producer_id == producer_id)
            .with_for_update()
            .all()
        )

    def list_entries(self, user_id: str, producer_id: str, limit: int = 50) -> List[CreditLedgerEntry]:
        return (
            self.db.query(CreditLedgerEntry)
            .filter(CreditLedgerEntry.user_id == user_id, CreditLedgerEntry.producer_id == producer_id)
            .order_by(CreditLedgerEntry.created_at.desc())
            .limit(limit)
            .all()
        )


class ReportRepository:
    """Repository for dispute reports"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, report_id: str) -> Optional[Report]:
        return self.db.query(Report).filter(Report.id == report_id).first()

    def compare_and_close(
        self,
        report_id: str,
        expected_status: str,
        new_status: str,
        resolved_by_id: str,
        note: Optional[str],
        now: datetime,
    ) -> bool:
        updated = (
            self.db.query(Report)
            .filter(Report.id == report_id, Report.status == expected_status)
            .update(
                {
                    Report.status: new_status,
                    Report.resolved_by_id: resolved_by_id,
                    Report.resolution_note: note,
                    Report.resolved_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1


class JobPostingRepository:
    """Repository for help-exchange job postings"""

    def __init__(self, db: Session):
        self.db = db

    def list_open(self) -> List[JobPosting]:
        return (
            self.db.query(JobPosting)
            .filter(JobPosting.status == "OPEN")
            .order_by(JobPosting.created_at.desc(), JobPosting.id.asc())
            .all()
        )
