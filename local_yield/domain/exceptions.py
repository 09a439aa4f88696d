"""Domain-specific exceptions

Every business-rule violation carries a stable ``code`` that callers can
branch on, plus an HTTP status hint used by the API layer.
"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(DomainException):
    """Producer, product, booking, order or report is missing"""

    code = "NOT_FOUND"
    status_code = 404


class ProducerNotFoundError(NotFoundError):
    """Producer does not exist or is not an active seller"""

    code = "PRODUCER_NOT_FOUND"


class CaregiverNotFoundError(NotFoundError):
    """Caregiver does not exist or does not offer care"""

    code = "CAREGIVER_NOT_FOUND"


class UnauthorizedError(DomainException):
    """Actor is not a party allowed to perform this action"""

    code = "UNAUTHORIZED"
    status_code = 403


class ForbiddenError(DomainException):
    """Actor lacks the capability required for this resource"""

    code = "FORBIDDEN"
    status_code = 403


class ValidationError(DomainException):
    """Malformed input: dates, enum values, amounts"""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidQuantityError(ValidationError):
    """Line item quantity outside 1..999"""

    code = "INVALID_QUANTITY"


class OutOfStockError(DomainException):
    """Requested quantity exceeds available stock"""

    code = "OUT_OF_STOCK"
    status_code = 409

    def __init__(self, product_id: str, message: str | None = None):
        super().__init__(message or f"Product {product_id} is out of stock")
        self.product_id = product_id


class InsufficientCreditError(DomainException):
    """Applied credit exceeds the buyer's spendable balance"""

    code = "INSUFFICIENT_CREDIT"
    status_code = 409


class DeliveryNotAvailableError(DomainException):
    """Producer does not offer delivery"""

    code = "DELIVERY_NOT_AVAILABLE"
    status_code = 409


class PriceChangedError(DomainException):
    """Client price snapshot no longer matches the catalog"""

    code = "PRICE_CHANGED"
    status_code = 409

    def __init__(self, product_id: str, expected_cents: int, submitted_cents: int):
        super().__init__(
            f"Price for product {product_id} is {expected_cents} cents, not {submitted_cents}"
        )
        self.product_id = product_id
        self.expected_cents = expected_cents


class InvalidTransitionError(DomainException):
    """Status change not allowed from the current state"""

    code = "INVALID_TRANSITION"
    status_code = 409


class InvalidAmountError(DomainException):
    """Credit amount must be strictly positive"""

    code = "INVALID_AMOUNT"
    status_code = 400


class MissingReferenceError(DomainException):
    """Credit issuance requires an order or report reference"""

    code = "MISSING_REFERENCE"
    status_code = 400


class CaregiverUnavailableError(DomainException):
    """Caregiver already has an overlapping booking"""

    code = "CAREGIVER_UNAVAILABLE"
    status_code = 409


class TransactionFailedError(DomainException):
    """Storage-layer fault while committing; safe to retry with the same idempotency key"""

    code = "INTERNAL_ERROR"
    status_code = 500
