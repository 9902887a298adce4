"""Order lookups that report missing orders as ``OrderNotFound``."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.errors import OrderNotFound
from ordering.order.order import Order


def get_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None


def find_order_by_number(order_number) -> Order | None:
    matches = current_domain.repository_for(Order)._dao.query.filter(order_number=order_number).all().items
    return matches[0] if matches else None


def find_order_by_provider_order_id(provider_order_id) -> Order | None:
    matches = (
        current_domain.repository_for(Order)._dao.query.filter(provider_order_id=provider_order_id).all().items
    )
    return matches[0] if matches else None


def resolve_order(reference) -> Order:
    """Accept either the internal id or the human-facing order number."""
    try:
        return get_order(reference)
    except OrderNotFound:
        order = find_order_by_number(reference)
        if order is None:
            raise
        return order
