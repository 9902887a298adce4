"""Inventory ledger entry — stock on hand for one variant of a sellable item.

A ``StockItem`` is identified by ``"{item_id}::{variant}"``. Stock only
moves through ``reserve`` and ``release``; ``reserve`` refuses any
decrement that would drive the count below zero.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientStock


def stock_id_for(item_id, variant) -> str:
    return f"{item_id}::{variant}"


@ordering.event(part_of="StockItem")
class StockRegistered:
    __version__ = 1

    stock_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant = String(required=True)
    added = Integer(required=True)
    on_hand = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="StockItem")
class StockReserved:
    __version__ = 1

    stock_id = Identifier(required=True)
    quantity = Integer(required=True)
    on_hand = Integer(required=True)
    reserved_at = DateTime(required=True)


@ordering.event(part_of="StockItem")
class StockReleased:
    __version__ = 1

    stock_id = Identifier(required=True)
    quantity = Integer(required=True)
    on_hand = Integer(required=True)
    released_at = DateTime(required=True)


@ordering.aggregate
class StockItem:
    stock_id = Identifier(identifier=True)
    item_id = Identifier(required=True)
    variant = String(required=True, max_length=100)
    on_hand = Integer(default=0)
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_go_negative(self):
        if self.on_hand is not None and self.on_hand < 0:
            raise ValidationError({"on_hand": ["Stock count cannot be negative"]})

    @classmethod
    def register(cls, item_id, variant, quantity):
        now = datetime.now(UTC)
        stock = cls(
            stock_id=stock_id_for(item_id, variant),
            item_id=item_id,
            variant=variant,
            on_hand=quantity,
            updated_at=now,
        )
        stock.raise_(
            StockRegistered(
                stock_id=stock.stock_id,
                item_id=item_id,
                variant=variant,
                added=quantity,
                on_hand=stock.on_hand,
                registered_at=now,
            )
        )
        return stock

    def restock(self, quantity):
        self.on_hand += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockRegistered(
                stock_id=self.stock_id,
                item_id=self.item_id,
                variant=self.variant,
                added=quantity,
                on_hand=self.on_hand,
                registered_at=self.updated_at,
            )
        )

    def reserve(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Reserved quantity must be positive"]})
        if self.on_hand < quantity:
            raise InsufficientStock(self.stock_id, requested=quantity, available=self.on_hand)

        self.on_hand -= quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReserved(
                stock_id=self.stock_id,
                quantity=quantity,
                on_hand=self.on_hand,
                reserved_at=self.updated_at,
            )
        )

    def release(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Released quantity must be positive"]})

        self.on_hand += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReleased(
                stock_id=self.stock_id,
                quantity=quantity,
                on_hand=self.on_hand,
                released_at=self.updated_at,
            )
        )
