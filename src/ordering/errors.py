"""Business errors raised by the ordering context.

Rule violations subclass protean's ``ValidationError`` so they travel
through command processing unchanged and map to HTTP 400 at the API edge.
Each error keeps the values a caller needs to act on it as attributes,
alongside the ``{field: [message]}`` payload protean expects.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class InsufficientStock(ValidationError):
    def __init__(self, stock_id: str, requested: int, available: int):
        self.stock_id = stock_id
        self.requested = requested
        self.available = available
        super().__init__(
            {
                "stock": [
                    f"Insufficient stock for {stock_id}: requested {requested}, "
                    f"available {available} (short by {self.shortfall})"
                ]
            }
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class VariantUnavailable(ValidationError):
    def __init__(self, item_id: str, variant: str):
        self.item_id = item_id
        self.variant = variant
        super().__init__({"items": [f"Variant {variant} of item {item_id} is no longer available"]})


class PriceMismatch(ValidationError):
    def __init__(self, field: str, expected: int, actual: int):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__({field: [f"Price mismatch: submitted {actual}, recomputed {expected}"]})


class IllegalTransition(ValidationError):
    def __init__(self, current: str, requested: str, message: str | None = None):
        self.current = current
        self.requested = requested
        super().__init__({"status": [message or f"Cannot transition from {current} to {requested}"]})


class CannotCancel(IllegalTransition):
    """Cancellation refused for the order's current status."""

    def __init__(self, current: str):
        super().__init__(current, "cancelled", message=f"Order cannot be cancelled when {current}")


class WrongPaymentMethod(ValidationError):
    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__({"payment_method": [f"Operation requires a {expected} order, this order uses {actual}"]})


class InvalidSignature(ValidationError):
    def __init__(self, method: str):
        self.method = method
        super().__init__({"signature": [f"Invalid {method} payment signature"]})


class InvalidDiscount(ValidationError):
    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__({"discount_code": [f"Discount {code} {reason}"]})


class OrderNotFound(ObjectNotFoundError):
    """Raised for missing orders and for lookups the caller may not see."""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__({"order": [f"Order {reference} not found"]})


class ProviderUnavailable(Exception):
    """A payment provider or carrier could not be reached or refused the call."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}")
