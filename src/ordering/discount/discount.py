"""Discount codes.

Pricing rules live outside this service; ordering only checks that a code
applied to an order exists, is active and has not expired.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import handle, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import InvalidDiscount


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


def normalize_code(code: str) -> str:
    return code.strip().upper()


@ordering.aggregate
class Discount:
    code = Identifier(identifier=True)
    discount_type = String(choices=DiscountType, required=True)
    value = Integer(required=True, min_value=0)  # percent, or minor units when flat
    is_active = Boolean(default=True)
    expires_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    def is_usable(self, at=None) -> bool:
        at = at or datetime.now(UTC)
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at > at


@ordering.command(part_of="Discount")
class CreateDiscount:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    value = Integer(required=True, min_value=0)
    is_active = Boolean(default=True)
    expires_at = DateTime()


@ordering.command(part_of="Discount")
class DeactivateDiscount:
    code = String(required=True, max_length=50)


@ordering.command_handler(part_of=Discount)
class DiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        discount = Discount(
            code=normalize_code(command.code),
            discount_type=command.discount_type,
            value=command.value,
            is_active=command.is_active,
            expires_at=command.expires_at,
        )
        current_domain.repository_for(Discount).add(discount)
        return discount.code

    @handle(DeactivateDiscount)
    def deactivate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(normalize_code(command.code))
        discount.is_active = False
        repo.add(discount)


def validate_discount(code):
    """Return the usable ``Discount`` for ``code`` or raise ``InvalidDiscount``."""
    normalized = normalize_code(code)
    try:
        discount = current_domain.repository_for(Discount).get(normalized)
    except ObjectNotFoundError:
        raise InvalidDiscount(normalized, "does not exist") from None

    if not discount.is_active:
        raise InvalidDiscount(normalized, "is not active")
    if not discount.is_usable():
        raise InvalidDiscount(normalized, "has expired")
    return discount
