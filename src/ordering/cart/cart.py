"""Shopping cart — the customer's pending selection.

Each line remembers the unit price seen when it was added. The cart is read
once when an order is placed and then cleared.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.domain import ordering


class CartStatus(Enum):
    ACTIVE = "Active"
    CONVERTED = "Converted"


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant = String(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant = String(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    cleared_at = DateTime(required=True)


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    item_id = Identifier(required=True)
    variant = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    position = Integer(default=0)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )

    def lines(self):
        """Cart contents in the order they were added."""
        return sorted(self.items, key=lambda line: line.position)

    def add_item(self, item_id, variant, quantity, unit_price):
        """Add a line, merging into an existing line for the same variant."""
        existing = next(
            (i for i in self.items if str(i.item_id) == str(item_id) and i.variant == variant),
            None,
        )
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            existing.unit_price = unit_price
        else:
            self.add_items(
                CartItem(
                    item_id=item_id,
                    variant=variant,
                    quantity=quantity,
                    unit_price=unit_price,
                    position=max((i.position for i in self.items), default=0) + 1,
                    added_at=now,
                )
            )

        self.status = CartStatus.ACTIVE.value
        self.updated_at = now
        self.raise_(CartItemAdded(cart_id=str(self.id), item_id=str(item_id), variant=variant, quantity=quantity))

    def remove_item(self, item_id, variant):
        line = next(
            (i for i in self.items if str(i.item_id) == str(item_id) and i.variant == variant),
            None,
        )
        if line is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        self.remove_items(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id), variant=variant))

    def clear(self, order_id):
        """Empty the cart after it has been turned into an order."""
        for line in list(self.items):
            self.remove_items(line)

        now = datetime.now(UTC)
        self.status = CartStatus.CONVERTED.value
        self.updated_at = now
        self.raise_(CartCleared(cart_id=str(self.id), order_id=str(order_id), cleared_at=now))
