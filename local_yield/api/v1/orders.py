"""Checkout and order tracking endpoints"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from local_yield.api.dependencies import get_actor_id, get_actor_is_admin, get_event_client, get_request_id
from local_yield.api.v1.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    CreditEntrySchema,
    IssueOrderCreditRequest,
    OrderLineItemSchema,
    OrderResponse,
    UpdateOrderStatusRequest,
)
from local_yield.domain.exceptions import DomainException
from local_yield.domain.models import CreateOrderInput, CreditReason, FulfillmentType, OrderLineInput, OrderStatus
from local_yield.infrastructure.clients.events import EventWebhookClient
from local_yield.infrastructure.database.session import get_db
from local_yield.services import credits as credit_service
from local_yield.services import orders as order_service

router = APIRouter()


def _internal_error(db: Session, request_id: str, where: str, e: Exception) -> HTTPException:
    db.rollback()
    logging.error(f"Unexpected error in {where}: {e}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal server error"})


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=order.id,
        buyer_id=order.buyer_id,
        producer_id=order.producer_id,
        status=order.status,
        fulfillment_type=order.fulfillment_type,
        total_cents=order.total_cents,
        applied_credit_cents=order.applied_credit_cents,
        delivery_fee_cents=order.delivery_fee_cents,
        pickup_code=order.pickup_code,
        notes=order.notes,
        pickup_date=order.pickup_date,
        line_items=[
            OrderLineItemSchema(
                product_id=li.product_id,
                quantity=li.quantity,
                unit_price_cents=li.unit_price_cents,
            )
            for li in order.line_items
        ],
        created_at=order.created_at.isoformat(),
    )


@router.post("/orders", response_model=CreateOrderResponse)
def create_order(
    request_body: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    actor_id: str = Depends(get_actor_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """
    Commit a cart as an order.

    The idempotency key comes from the Idempotency-Key header, falling back to
    the body. Retrying with the same key returns the original order unchanged.
    """
    data = CreateOrderInput(
        buyer_id=actor_id,
        producer_id=request_body.producer_id,
        items=[
            OrderLineInput(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
            )
            for item in request_body.items
        ],
        fulfillment_type=FulfillmentType(request_body.fulfillment_type),
        applied_credit_cents=request_body.applied_credit_cents,
        idempotency_key=idempotency_key or request_body.idempotency_key,
        notes=(request_body.notes or "").strip() or None,
        pickup_date=request_body.pickup_date,
    )

    try:
        receipt = order_service.create_order(db, data, request_id=request_id)
    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(db, request_id, "orders/POST", e)

    if not receipt.replayed:
        background_tasks.add_task(
            event_client.publish,
            "order.created",
            {
                "order_id": receipt.order_id,
                "buyer_id": actor_id,
                "producer_id": request_body.producer_id,
                "pickup_code": receipt.pickup_code,
            },
        )

    return CreateOrderResponse(order_id=receipt.order_id, pickup_code=receipt.pickup_code, replayed=receipt.replayed)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    actor_id: str = Depends(get_actor_id),
    is_admin: bool = Depends(get_actor_is_admin),
    db: Session = Depends(get_db),
):
    """Order detail for its buyer, its producer, or an admin"""
    order = order_service.get_order_for_user(db, order_id, actor_id, is_admin=is_admin)
    return _order_response(order)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    request_body: UpdateOrderStatusRequest,
    background_tasks: BackgroundTasks,
    actor_id: str = Depends(get_actor_id),
    is_admin: bool = Depends(get_actor_is_admin),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Producer or admin moves the order forward (PAID, FULFILLED, CANCELED, REFUNDED)"""
    try:
        order = order_service.update_order_status(
            db, order_id, actor_id, OrderStatus(request_body.status), is_admin=is_admin
        )
    except DomainException:
        db.rollback()
        raise
    except Exception as e:
        raise _internal_error(db, request_id, "orders/PATCH", e)

    background_tasks.add_task(
        event_client.publish,
        "order.status_changed",
        {"order_id": order.id, "buyer_id": order.buyer_id, "status": order.status},
    )
    return _order_response(order)


@router.post("/orders/{order_id}/credit", response_model=CreditEntrySchema)
def issue_order_credit(
    order_id: str,
    request_body: IssueOrderCreditRequest,
    background_tasks: BackgroundTasks,
    actor_id: str = Depends(get_actor_id),
    is_admin: bool = Depends(get_actor_is_admin),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    event_client: EventWebhookClient = Depends(get_event_client),
):
    """Issue store credit against a PAID or FULFILLED order; usable only in this producer's shop"""
    try:
        entry = credit_service.issue_order_credit(
            db,
            order_id,
            actor_id,
            request_body.amount_cents,
            CreditReason(request_body.reason),
            report_id=request_body.report_id,
            actor_is_admin=is_admin,
            request_id=request_id,
        )
        response = CreditEntrySchema(
            entry_id=entry.id,
            amount_cents=entry.amount_cents,
            reason=entry.reason,
            order_id=entry.order_id,
            report_id=entry.report_id,
            created_by_id=entry.created_by_id,
            created_at=(entry.created_at.isoformat() if entry.created_at else ""),
        )
        db.commit()
    except DomainException:
        db.rollback()
        raise
    except Exception as e:
        raise _internal_error(db, request_id, "orders/credit/POST", e)

    background_tasks.add_task(
        event_client.publish,
        "credit.issued",
        {"entry_id": response.entry_id, "order_id": order_id, "amount_cents": response.amount_cents},
    )
    return response
