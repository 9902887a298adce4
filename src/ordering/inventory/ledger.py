"""Inventory ledger operations — the only code paths that move stock.

Command handlers cover direct stock maintenance. ``reserve_lines`` and
``release_lines`` run inside the caller's unit of work, so an order that
fails halfway through reserving leaves no net change behind.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.inventory.stock import StockItem, stock_id_for

logger = structlog.get_logger(__name__)


@ordering.command(part_of="StockItem")
class RegisterStock:
    item_id = Identifier(required=True)
    variant = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=0)


@ordering.command(part_of="StockItem")
class ReserveStock:
    stock_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="StockItem")
class ReleaseStock:
    stock_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


def _find(stock_id):
    try:
        return current_domain.repository_for(StockItem).get(stock_id)
    except ObjectNotFoundError:
        return None


def reserve(stock_id, quantity):
    stock = _find(stock_id)
    if stock is None:
        raise InsufficientStock(stock_id, requested=quantity, available=0)
    stock.reserve(quantity)
    current_domain.repository_for(StockItem).add(stock)
    return stock


def release(stock_id, quantity):
    stock = _find(stock_id)
    if stock is None:
        item_id, _, variant = stock_id.partition("::")
        stock = StockItem.register(item_id, variant, 0)
    stock.release(quantity)
    current_domain.repository_for(StockItem).add(stock)
    return stock


def reserve_lines(lines):
    """Reserve ``(stock_id, quantity)`` pairs in order, all or nothing.

    On the first shortfall everything reserved so far is released before
    the ``InsufficientStock`` error is re-raised.
    """
    reserved = []
    try:
        for stock_id, quantity in lines:
            reserve(stock_id, quantity)
            reserved.append((stock_id, quantity))
    except InsufficientStock as exc:
        logger.warning(
            "Reservation failed, rolling back",
            stock_id=exc.stock_id,
            requested=exc.requested,
            available=exc.available,
            rolled_back=len(reserved),
        )
        release_lines(reserved)
        raise


def release_lines(lines):
    for stock_id, quantity in lines:
        release(stock_id, quantity)


@ordering.command_handler(part_of=StockItem)
class StockLedgerHandler:
    @handle(RegisterStock)
    def register_stock(self, command):
        stock_id = stock_id_for(command.item_id, command.variant)
        repo = current_domain.repository_for(StockItem)
        stock = _find(stock_id)
        if stock is None:
            stock = StockItem.register(command.item_id, command.variant, command.quantity)
        else:
            stock.restock(command.quantity)
        repo.add(stock)
        logger.info("Stock registered", stock_id=stock_id, on_hand=stock.on_hand)
        return stock_id

    @handle(ReserveStock)
    def reserve_stock(self, command):
        return reserve(command.stock_id, command.quantity).on_hand

    @handle(ReleaseStock)
    def release_stock(self, command):
        return release(command.stock_id, command.quantity).on_hand
