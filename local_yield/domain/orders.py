"""Order pricing, line validation, status transitions and pickup codes"""

import secrets
from typing import Dict, List

from local_yield.domain.exceptions import InvalidQuantityError, InvalidTransitionError, ValidationError
from local_yield.domain.models import FulfillmentType, OrderLineInput, OrderStatus

MIN_QUANTITY = 1
MAX_QUANTITY = 999

# Unambiguous characters only: no 0/O, 1/I
PICKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

ORDER_TRANSITIONS: Dict[OrderStatus, frozenset] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELED}),
    OrderStatus.PAID: frozenset({OrderStatus.FULFILLED, OrderStatus.CANCELED, OrderStatus.REFUNDED}),
    OrderStatus.FULFILLED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def validate_line_items(items: List[OrderLineInput]) -> None:
    """Reject empty carts, out-of-range quantities and negative prices"""
    if not items:
        raise ValidationError("At least one item required")
    for item in items:
        if not item.product_id:
            raise ValidationError("Product ID required")
        if not isinstance(item.quantity, int) or not MIN_QUANTITY <= item.quantity <= MAX_QUANTITY:
            raise InvalidQuantityError(
                f"Quantity for product {item.product_id} must be between {MIN_QUANTITY} and {MAX_QUANTITY}"
            )
        if item.unit_price_cents < 0:
            raise ValidationError("Price must be non-negative")


def quantities_by_product(items: List[OrderLineInput]) -> Dict[str, int]:
    """Total requested quantity per product (a cart may repeat a product)"""
    totals: Dict[str, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def calculate_subtotal(items: List[OrderLineInput]) -> int:
    return sum(item.quantity * item.unit_price_cents for item in items)


def delivery_fee_for(fulfillment_type: FulfillmentType, producer_fee_cents: int | None) -> int:
    """Delivery fee applies only to DELIVERY orders"""
    if FulfillmentType(fulfillment_type) == FulfillmentType.DELIVERY:
        return producer_fee_cents or 0
    return 0


def check_order_transition(current: OrderStatus, new_status: OrderStatus) -> None:
    """Forward-only order lifecycle; FULFILLED, CANCELED and REFUNDED are terminal"""
    current = OrderStatus(current)
    new_status = OrderStatus(new_status)
    if current == new_status:
        raise InvalidTransitionError(f"Order is already {new_status.value}")
    if new_status not in ORDER_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Invalid status transition: {current.value} -> {new_status.value}")


def generate_pickup_code(length: int = 6) -> str:
    """Short human-presentable code drawn from a CSPRNG"""
    return "".join(secrets.choice(PICKUP_CODE_ALPHABET) for _ in range(length))
