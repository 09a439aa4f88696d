"""Order transaction engine: cart -> committed order.

One call to ``create_order`` either commits the order header, its line items,
the stock decrements and the idempotency key together, or leaves the store
untouched. Retries are the caller's job: resubmitting with the same
idempotency key returns the original receipt.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from local_yield.config import settings
from local_yield.domain.exceptions import (
    DeliveryNotAvailableError,
    DomainException,
    ForbiddenError,
    InsufficientCreditError,
    InvalidTransitionError,
    NotFoundError,
    OutOfStockError,
    PriceChangedError,
    ProducerNotFoundError,
    TransactionFailedError,
    ValidationError,
)
from local_yield.domain.models import CreateOrderInput, FulfillmentType, OrderReceipt, OrderStatus
from local_yield.domain.orders import (
    calculate_subtotal,
    check_order_transition,
    delivery_fee_for,
    generate_pickup_code,
    quantities_by_product,
    validate_line_items,
)
from local_yield.infrastructure.database.models import Order, Product
from local_yield.infrastructure.database.repositories import (
    AccountRepository,
    OrderRepository,
    ProductRepository,
)
from local_yield.infrastructure.observability.logging import log_order_created
from local_yield.infrastructure.observability.metrics import record_order
from local_yield.services.credits import get_spendable_balance

logger = logging.getLogger(__name__)


def _replay(order: Order) -> OrderReceipt:
    record_order("replayed")
    return OrderReceipt(order_id=order.id, pickup_code=order.pickup_code, replayed=True)


def _parse_fulfillment(value) -> FulfillmentType:
    try:
        return FulfillmentType(value)
    except ValueError:
        raise ValidationError(f"Unknown fulfillment type: {value}") from None


def _validate_stock_and_price(
    data: CreateOrderInput,
    products: Dict[str, Product],
    quantities: Dict[str, int],
) -> None:
    """Every product must exist, belong to the producer, be active and have enough stock"""
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if product is None or product.producer_id != data.producer_id or not product.active:
            raise NotFoundError(f"Product {product_id} not found for this producer")
        if product.quantity_available is not None and product.quantity_available < quantity:
            raise OutOfStockError(product_id)

    if settings.enforce_catalog_price:
        for item in data.items:
            catalog_price = products[item.product_id].price_cents
            if item.unit_price_cents != catalog_price:
                raise PriceChangedError(item.product_id, catalog_price, item.unit_price_cents)


def _allocate_pickup_code(orders: OrderRepository) -> str:
    """Draw codes until one is unused; the unique constraint backs this up at commit"""
    for _ in range(settings.pickup_code_max_attempts):
        code = generate_pickup_code(settings.pickup_code_length)
        if not orders.pickup_code_exists(code):
            return code
    raise TransactionFailedError("Could not allocate a unique pickup code")


def _is_pickup_code_collision(error: IntegrityError) -> bool:
    return "pickup_code" in str(error.orig)


def _place_order(db: Session, orders: OrderRepository, data: CreateOrderInput) -> Tuple[str, str, int, int]:
    """Validate, insert and commit in one transaction; returns (order_id, pickup_code, total, applied credit)"""
    validate_line_items(data.items)
    fulfillment_type = _parse_fulfillment(data.fulfillment_type)

    profile = AccountRepository(db).get_active_producer(data.producer_id)
    if profile is None:
        raise ProducerNotFoundError("Producer not found")
    if fulfillment_type == FulfillmentType.DELIVERY and not profile.offers_delivery:
        raise DeliveryNotAvailableError("Producer does not offer delivery")
    delivery_fee_cents = delivery_fee_for(fulfillment_type, profile.delivery_fee_cents)

    product_repo = ProductRepository(db)
    quantities = quantities_by_product(data.items)
    products = product_repo.get_many(quantities.keys())
    _validate_stock_and_price(data, products, quantities)

    total_cents = calculate_subtotal(data.items) + delivery_fee_cents
    applied_credit_cents = data.applied_credit_cents or 0
    if applied_credit_cents < 0 or applied_credit_cents > total_cents:
        raise ValidationError("Applied credit must be between 0 and the order total")
    if applied_credit_cents > 0:
        spendable = get_spendable_balance(db, data.buyer_id, data.producer_id, lock=True)
        if spendable < applied_credit_cents:
            raise InsufficientCreditError(
                f"Available credit {spendable} cents is less than {applied_credit_cents} cents"
            )

    order = orders.create_order(
        buyer_id=data.buyer_id,
        producer_id=data.producer_id,
        fulfillment_type=fulfillment_type.value,
        total_cents=total_cents,
        applied_credit_cents=applied_credit_cents,
        delivery_fee_cents=delivery_fee_cents,
        pickup_code=_allocate_pickup_code(orders),
        items=data.items,
        idempotency_key=data.idempotency_key,
        notes=data.notes,
        pickup_date=data.pickup_date,
    )

    # Conditional decrement: losing a race here aborts the whole order
    for product_id, quantity in quantities.items():
        if not product_repo.decrement_stock(product_id, quantity):
            raise OutOfStockError(product_id)

    order_id, pickup_code = order.id, order.pickup_code
    db.commit()
    return order_id, pickup_code, total_cents, applied_credit_cents


def create_order(db: Session, data: CreateOrderInput, request_id: Optional[str] = None) -> OrderReceipt:
    """
    Validate a cart and atomically commit it as an order.

    Flow:
    1. Idempotency check on (buyer_id, idempotency_key)
    2. Producer must be an active seller; DELIVERY requires delivery support
    3. Products exist, belong to the producer, have stock; prices match catalog
    4. Applied credit covered by the spendable balance (recomputed under lock)
    5. Insert order + line items, conditional stock decrement, commit
    6. Return {order_id, pickup_code}

    A pickup code taken by a concurrent order between allocation and commit
    rolls back and reruns the transaction with a fresh code, up to
    ``pickup_code_max_attempts`` times.

    Raises:
        DomainException subclasses for business-rule failures
        TransactionFailedError on storage faults
    """
    start_time = time.time()
    orders = OrderRepository(db)

    if data.idempotency_key:
        existing = orders.find_by_idempotency_key(data.buyer_id, data.idempotency_key)
        if existing is not None:
            return _replay(existing)

    attempt = 0
    while True:
        attempt += 1
        try:
            order_id, pickup_code, total_cents, applied_credit_cents = _place_order(db, orders, data)
            break

        except DomainException as e:
            db.rollback()
            record_order(e.code)
            raise

        except IntegrityError as e:
            db.rollback()
            # A concurrent request with the same key committed first: hand back its result
            if data.idempotency_key:
                winner = orders.find_by_idempotency_key(data.buyer_id, data.idempotency_key)
                if winner is not None:
                    return _replay(winner)
            if _is_pickup_code_collision(e) and attempt < settings.pickup_code_max_attempts:
                logger.warning(
                    "Pickup code collided at commit, retrying",
                    extra={"request_id": request_id, "attempt": attempt},
                )
                continue
            record_order(TransactionFailedError.code)
            logger.error(f"Order commit violated a constraint: {e}", extra={"request_id": request_id})
            raise TransactionFailedError("Order could not be committed") from e

        except SQLAlchemyError as e:
            db.rollback()
            record_order(TransactionFailedError.code)
            logger.error(f"Order commit failed: {e}", extra={"request_id": request_id})
            raise TransactionFailedError("Order could not be committed") from e

    duration_ms = (time.time() - start_time) * 1000
    record_order("created", total_cents)
    log_order_created(
        request_id,
        order_id,
        data.buyer_id,
        data.producer_id,
        total_cents,
        applied_credit_cents,
        False,
        duration_ms,
    )
    return OrderReceipt(order_id=order_id, pickup_code=pickup_code)


def get_order_for_user(db: Session, order_id: str, actor_id: str, is_admin: bool = False) -> Order:
    """Order visible to its buyer, its producer, or an admin; NOT_FOUND otherwise"""
    order = OrderRepository(db).get(order_id)
    if order is None or not (is_admin or actor_id in (order.buyer_id, order.producer_id)):
        raise NotFoundError("Order not found")
    return order


def update_order_status(
    db: Session,
    order_id: str,
    actor_id: str,
    new_status: OrderStatus,
    is_admin: bool = False,
) -> Order:
    """Producer (or admin) moves the order forward; compare-and-swap on the current status"""
    orders = OrderRepository(db)
    order = orders.get(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if not is_admin and order.producer_id != actor_id:
        raise ForbiddenError("Only the producer or admin can update this order")

    try:
        new_status = OrderStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown order status: {new_status}") from None

    current = OrderStatus(order.status)
    check_order_transition(current, new_status)

    if not orders.compare_and_set_status(order_id, current, new_status, datetime.now(timezone.utc)):
        db.rollback()
        raise InvalidTransitionError("Order status changed concurrently")
    db.commit()
    db.refresh(order)
    return order


def list_orders_for_buyer(db: Session, buyer_id: str) -> List[Order]:
    return OrderRepository(db).list_for_buyer(buyer_id)


def list_orders_for_producer(db: Session, producer_id: str) -> List[Order]:
    return OrderRepository(db).list_for_producer(producer_id)
