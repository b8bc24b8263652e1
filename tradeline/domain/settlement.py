"""Settlement calculation - paid/pending amounts and status per order"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from tradeline.domain.due_dates import resolve_due_date
from tradeline.domain.exceptions import OverpaymentError, ValidationError
from tradeline.domain.models import Order, OrderSettlement, PaymentEvent, SettlementStatus


def total_paid(payments: Sequence[PaymentEvent]) -> int:
    return sum(payment.amount_cents for payment in payments)


def settlement_status(
    order_value_cents: int,
    total_paid_cents: int,
    due_date: Optional[datetime],
    now: datetime,
) -> SettlementStatus:
    """
    Status rules, first match wins:
    1. paid >= value           -> Paid
    2. 0 < paid < value        -> Partial Payment
    3. nothing paid, not due   -> Awaiting Payment (also when due date unresolved)
    4. nothing paid, past due  -> Pending
    """
    if total_paid_cents >= order_value_cents:
        return SettlementStatus.PAID
    if total_paid_cents > 0:
        return SettlementStatus.PARTIAL_PAYMENT
    if due_date is None or now < due_date:
        return SettlementStatus.AWAITING_PAYMENT
    return SettlementStatus.PENDING


def calculate_settlement(
    order: Order,
    payments: Sequence[PaymentEvent],
    relationship_orders: Sequence[Order],
    now: datetime,
) -> OrderSettlement:
    """Derive the settlement position of one order from its payment events"""
    paid = total_paid(payments)
    due_date = resolve_due_date(order, relationship_orders)
    status = settlement_status(order.order_value_cents, paid, due_date, now)

    # On-time vs late is judged by the last payment, and only for settled orders
    paid_on_time = None
    if status == SettlementStatus.PAID and payments and due_date is not None:
        last_payment_at = max(payment.recorded_at for payment in payments)
        paid_on_time = last_payment_at <= due_date

    return OrderSettlement(
        order=order,
        total_paid_cents=paid,
        pending_amount_cents=order.order_value_cents - paid,
        status=status,
        due_date=due_date,
        paid_on_time=paid_on_time,
    )


def settle_relationship_orders(
    orders: Sequence[Order],
    payments_by_order: Dict[str, List[PaymentEvent]],
    now: datetime,
) -> List[OrderSettlement]:
    """Settle every order of one relationship, in the order given"""
    return [
        calculate_settlement(order, payments_by_order.get(order.id, []), orders, now)
        for order in orders
    ]


def validate_payment_amount(order_value_cents: int, total_paid_cents: int, amount_cents: int) -> None:
    """
    Check a new payment against the order's remaining balance.

    Raises:
        ValidationError: amount is not positive
        OverpaymentError: amount exceeds what is still owed
    """
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if total_paid_cents + amount_cents > order_value_cents:
        raise OverpaymentError("Payment amount exceeds remaining balance")
