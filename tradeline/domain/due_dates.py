"""Payment due-date resolution from an order's frozen payment terms"""

from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from tradeline.domain.models import Order
from tradeline.domain.payment_terms import (
    AdvanceRequired,
    BillToBill,
    DaysAfterDelivery,
    PaymentOnDelivery,
)


def creation_order(order: Order) -> Tuple[datetime, str]:
    """Sort key for orders; the id breaks ties between orders created at the same instant"""
    return order.created_at, order.id


def next_billable_order(order: Order, relationship_orders: Sequence[Order]) -> Optional[Order]:
    """Nearest non-declined order created after this one in the same relationship"""
    later = [
        sibling
        for sibling in relationship_orders
        if sibling.relationship_id == order.relationship_id
        and sibling.declined_at is None
        and creation_order(sibling) > creation_order(order)
    ]
    if not later:
        return None
    return min(later, key=creation_order)


def resolve_due_date(order: Order, relationship_orders: Sequence[Order]) -> Optional[datetime]:
    """
    Resolve when payment for an order falls due.

    relationship_orders must hold every order of the relationship; only Bill to
    Bill terms read it, but callers always pass it so the signature does not
    depend on the term type.

    Returns None while the triggering event has not happened yet. Never raises.
    """
    term = order.payment_term_snapshot

    if isinstance(term, AdvanceRequired):
        return order.created_at

    if isinstance(term, PaymentOnDelivery):
        return order.delivered_at

    if isinstance(term, DaysAfterDelivery):
        if order.delivered_at is None:
            return None
        return order.delivered_at + timedelta(days=term.days)

    if isinstance(term, BillToBill):
        following = next_billable_order(order, relationship_orders)
        if following is None:
            return None
        return following.delivered_at

    return None
