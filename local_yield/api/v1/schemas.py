"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

FulfillmentLiteral = Literal["PICKUP", "DELIVERY"]
OrderStatusLiteral = Literal["PENDING", "PAID", "FULFILLED", "CANCELED", "REFUNDED"]
BookingStatusLiteral = Literal["REQUESTED", "ACCEPTED", "DECLINED", "CANCELED", "COMPLETED"]
CreditReasonLiteral = Literal["DISPUTE_RESOLUTION", "GOODWILL", "ADJUSTMENT"]

ZIP_PATTERN = r"^\d{5}$"


class ErrorBody(BaseModel):
    """Structured error returned under "detail" for every failure"""

    code: str
    message: str


# Orders


class OrderItemSchema(BaseModel):
    """Cart line submitted at checkout"""

    product_id: str = Field(..., min_length=1, description="Product identifier")
    quantity: int = Field(..., ge=1, le=999, description="Units requested (1-999)")
    unit_price_cents: int = Field(..., ge=0, description="Client-side price snapshot in cents")


class CreateOrderRequest(BaseModel):
    """Request body for POST /v1/orders"""

    producer_id: str = Field(..., min_length=1)
    items: List[OrderItemSchema] = Field(..., min_length=1)
    fulfillment_type: FulfillmentLiteral = "PICKUP"
    applied_credit_cents: int = Field(0, ge=0)
    notes: Optional[str] = None
    pickup_date: Optional[date] = None
    idempotency_key: Optional[str] = Field(None, max_length=255)


class CreateOrderResponse(BaseModel):
    order_id: str
    pickup_code: str
    replayed: bool = False


class OrderLineItemSchema(BaseModel):
    product_id: str
    quantity: int
    unit_price_cents: int


class OrderResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}"""

    order_id: str
    buyer_id: str
    producer_id: str
    status: OrderStatusLiteral
    fulfillment_type: FulfillmentLiteral
    total_cents: int
    applied_credit_cents: int
    delivery_fee_cents: int
    pickup_code: str
    notes: Optional[str] = None
    pickup_date: Optional[date] = None
    line_items: List[OrderLineItemSchema]
    created_at: str


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatusLiteral


class IssueOrderCreditRequest(BaseModel):
    """Request body for POST /v1/orders/{order_id}/credit"""

    amount_cents: int = Field(..., description="Credit to issue in cents")
    reason: CreditReasonLiteral
    report_id: Optional[str] = None


# Care bookings


class CreateBookingRequest(BaseModel):
    """Request body for POST /v1/bookings"""

    caregiver_id: str = Field(..., min_length=1)
    start_at: datetime
    end_at: datetime
    location_zip: str = Field(..., pattern=ZIP_PATTERN, description="5-digit ZIP code")
    species: Optional[str] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_window(self):
        if self.end_at <= self.start_at:
            raise ValueError("End date must be after start date")
        return self


class CreateBookingResponse(BaseModel):
    booking_id: str
    replayed: bool = False


class UpdateBookingStatusRequest(BaseModel):
    status: BookingStatusLiteral


class BookingResponse(BaseModel):
    booking_id: str
    care_seeker_id: str
    caregiver_id: str
    status: BookingStatusLiteral
    start_at: str
    end_at: str
    location_zip: str
    species: Optional[str] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None
    is_caregiver: bool
    is_seeker: bool


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]


# Store credit


class CreditEntrySchema(BaseModel):
    entry_id: str
    amount_cents: int
    reason: CreditReasonLiteral
    order_id: Optional[str] = None
    report_id: Optional[str] = None
    created_by_id: str
    created_at: str


class CreditBalanceResponse(BaseModel):
    """Response for GET /v1/credits/balance"""

    user_id: str
    producer_id: str
    issued_cents: int
    spendable_cents: int


class CreditLedgerResponse(BaseModel):
    user_id: str
    producer_id: str
    entries: List[CreditEntrySchema]


# Reports


class ResolveReportRequest(BaseModel):
    """Moderation decision on a report"""

    action: Literal["RESOLVE", "DISMISS"] = "RESOLVE"
    credit_cents: Optional[int] = None
    note: Optional[str] = None


class ResolveReportResponse(BaseModel):
    report_id: str
    status: Literal["RESOLVED", "DISMISSED"]
    credit_entry_id: Optional[str] = None
    credit_cents: int = 0


# Discovery


class DiscoveryItem(BaseModel):
    """One entity annotated with its distance from the viewer"""

    id: str
    kind: Literal["product", "caregiver", "job"]
    title: Optional[str] = None
    zip_code: Optional[str] = None
    price_cents: Optional[int] = None
    distance_miles: Optional[float] = None
    within_radius: bool


class DiscoveryResponse(BaseModel):
    zip: str
    radius: int
    results: List[DiscoveryItem]
