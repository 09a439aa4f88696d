"""Producer-scoped store credit: issuance and balances.

The ledger only ever records issued credit. Credit spent at checkout lives on
``Order.applied_credit_cents``; the spendable balance subtracts it at read time,
ignoring canceled orders.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from local_yield.domain.exceptions import (
    ForbiddenError,
    InvalidAmountError,
    MissingReferenceError,
    NotFoundError,
    ValidationError,
)
from local_yield.domain.models import CreditReason, IssueCreditInput, OrderStatus
from local_yield.infrastructure.database.models import CreditLedgerEntry
from local_yield.infrastructure.database.repositories import CreditLedgerRepository, OrderRepository
from local_yield.infrastructure.observability.logging import log_credit_issued
from local_yield.infrastructure.observability.metrics import record_credit

CREDITABLE_ORDER_STATUSES = (OrderStatus.PAID.value, OrderStatus.FULFILLED.value)


def validate_issue(data: IssueCreditInput) -> CreditReason:
    """Reject non-positive amounts and unreferenced issuances before touching the store"""
    if not isinstance(data.amount_cents, int) or data.amount_cents <= 0:
        raise InvalidAmountError("amount_cents must be positive")
    try:
        reason = CreditReason(data.reason)
    except ValueError:
        raise ValidationError(f"Unknown credit reason: {data.reason}") from None
    if not data.order_id and not data.report_id:
        raise MissingReferenceError("order_id or report_id required for credit issuance")
    return reason


def issue_credit(db: Session, data: IssueCreditInput, request_id: Optional[str] = None) -> CreditLedgerEntry:
    """Append one immutable credit entry. The caller commits."""
    data.reason = validate_issue(data)
    entry = CreditLedgerRepository(db).append(data)

    record_credit(data.reason.value, data.amount_cents)
    log_credit_issued(request_id, entry.id, data.user_id, data.producer_id, data.amount_cents, data.reason.value)
    return entry


def get_balance(db: Session, user_id: str, producer_id: str) -> int:
    """Raw issued total for (buyer, producer)"""
    return int(CreditLedgerRepository(db).sum_issued(user_id, producer_id))


def get_spendable_balance(db: Session, user_id: str, producer_id: str, lock: bool = False) -> int:
    """
    Issued credit minus credit applied to the buyer's non-canceled orders with the producer.

    lock=True takes row locks on the pair's ledger entries first, so two checkouts
    spending the same credit serialise inside their transactions.
    """
    ledger = CreditLedgerRepository(db)
    if lock:
        ledger.lock_entries(user_id, producer_id)
    issued = int(ledger.sum_issued(user_id, producer_id))
    consumed = int(OrderRepository(db).applied_credit_total(user_id, producer_id))
    return issued - consumed


def get_ledger(db: Session, user_id: str, producer_id: str, limit: int = 50) -> List[CreditLedgerEntry]:
    return CreditLedgerRepository(db).list_entries(user_id, producer_id, limit=limit)


def issue_order_credit(
    db: Session,
    order_id: str,
    actor_id: str,
    amount_cents: int,
    reason: CreditReason,
    report_id: Optional[str] = None,
    actor_is_admin: bool = False,
    request_id: Optional[str] = None,
) -> CreditLedgerEntry:
    """
    Producer/admin issues credit against one of the producer's orders.

    Rules:
    - Only the order's producer or an admin
    - Order must be PAID or FULFILLED
    - Buyer and producer must differ
    - DISPUTE_RESOLUTION credit must cite the report it resolves
    - Non-admins cannot exceed the order total
    """
    order = OrderRepository(db).get(order_id)
    if order is None:
        raise NotFoundError("Order not found")

    if not actor_is_admin and order.producer_id != actor_id:
        raise ForbiddenError("Only the producer or admin can issue credit for this order")

    if order.buyer_id == order.producer_id:
        raise ValidationError("Cannot issue credit to yourself")

    if order.status not in CREDITABLE_ORDER_STATUSES:
        raise ValidationError("Credit can only be issued for PAID or FULFILLED orders")

    if reason == CreditReason.DISPUTE_RESOLUTION and not report_id:
        raise MissingReferenceError("report_id required for DISPUTE_RESOLUTION")

    if not actor_is_admin and isinstance(amount_cents, int) and amount_cents > order.total_cents:
        raise ValidationError(f"Amount cannot exceed order total (${order.total_cents / 100:.2f})")

    return issue_credit(
        db,
        IssueCreditInput(
            user_id=order.buyer_id,
            producer_id=order.producer_id,
            amount_cents=amount_cents,
            reason=reason,
            created_by_id=actor_id,
            order_id=order.id,
            report_id=report_id,
        ),
        request_id=request_id,
    )
