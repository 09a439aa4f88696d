"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class Capability(str, Enum):
    PRODUCER = "PRODUCER"
    CAREGIVER = "CAREGIVER"
    CARE_SEEKER = "CARE_SEEKER"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FULFILLED = "FULFILLED"
    CANCELED = "CANCELED"
    REFUNDED = "REFUNDED"


class FulfillmentType(str, Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class BookingStatus(str, Enum):
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELED = "CANCELED"
    COMPLETED = "COMPLETED"


class CreditReason(str, Enum):
    DISPUTE_RESOLUTION = "DISPUTE_RESOLUTION"
    GOODWILL = "GOODWILL"
    ADJUSTMENT = "ADJUSTMENT"


class ReportStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


@dataclass(frozen=True)
class ZipPoint:
    """ZIP code centroid from the static reference table"""

    zip: str
    lat: float
    lng: float


@dataclass
class RadiusMatch(Generic[T]):
    """Discoverable entity annotated with its distance from the viewer"""

    entity: T
    distance_miles: Optional[float]
    within_radius: bool


@dataclass
class OrderLineInput:
    """Single cart line submitted at checkout"""

    product_id: str
    quantity: int
    unit_price_cents: int


@dataclass
class CreateOrderInput:
    """Validated checkout request handed to the order engine"""

    buyer_id: str
    producer_id: str
    items: List[OrderLineInput]
    fulfillment_type: FulfillmentType = FulfillmentType.PICKUP
    applied_credit_cents: int = 0
    idempotency_key: Optional[str] = None
    notes: Optional[str] = None
    pickup_date: Optional[date] = None


@dataclass
class OrderReceipt:
    """Result of order creation; replayed=True when an idempotent retry hit"""

    order_id: str
    pickup_code: str
    replayed: bool = False


@dataclass
class CreateBookingInput:
    """Care booking request from a seeker"""

    seeker_id: str
    caregiver_id: str
    start_at: datetime
    end_at: datetime
    location_zip: str
    species: Optional[str] = None
    service_type: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None


@dataclass
class BookingReceipt:
    booking_id: str
    replayed: bool = False


@dataclass
class IssueCreditInput:
    """Store credit issuance scoped to one (buyer, producer) pair"""

    user_id: str
    producer_id: str
    amount_cents: int
    reason: CreditReason
    created_by_id: str
    order_id: Optional[str] = None
    report_id: Optional[str] = None


@dataclass
class ResolutionOutcome:
    """Outcome of a moderation decision on a report"""

    report_id: str
    status: ReportStatus
    credit_entry_id: Optional[str] = None
    credit_cents: int = 0
