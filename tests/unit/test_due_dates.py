"""Unit tests for due-date resolution"""

from datetime import timedelta

from tradeline.domain.due_dates import next_billable_order, resolve_due_date
from tradeline.domain.payment_terms import AdvanceRequired, BillToBill, DaysAfterDelivery, PaymentOnDelivery


def test_advance_required_due_at_creation(make_order, now):
    order = make_order(terms=AdvanceRequired(), created_at=now - timedelta(days=3))
    assert resolve_due_date(order, [order]) == now - timedelta(days=3)


def test_payment_on_delivery_unresolved_until_delivered(make_order, now):
    order = make_order(terms=PaymentOnDelivery())
    assert resolve_due_date(order, [order]) is None

    delivered = make_order(terms=PaymentOnDelivery(), delivered_at=now - timedelta(days=1))
    assert resolve_due_date(delivered, [delivered]) == now - timedelta(days=1)


def test_days_after_delivery_adds_days_to_delivery(make_order, now):
    delivered_at = now - timedelta(days=10)
    order = make_order(terms=DaysAfterDelivery(days=7), delivered_at=delivered_at)

    assert resolve_due_date(order, [order]) == delivered_at + timedelta(days=7)


def test_days_after_delivery_without_delivery(make_order):
    order = make_order(terms=DaysAfterDelivery(days=30))
    assert resolve_due_date(order, [order]) is None


def test_bill_to_bill_due_when_next_order_delivered(make_order, now):
    first = make_order("o1", created_at=now - timedelta(days=20), terms=BillToBill())
    second = make_order(
        "o2",
        created_at=now - timedelta(days=10),
        terms=BillToBill(),
        delivered_at=now - timedelta(days=2),
    )
    third = make_order("o3", created_at=now - timedelta(days=5), terms=BillToBill())

    assert resolve_due_date(first, [first, second, third]) == now - timedelta(days=2)
    # Next order exists but has not been delivered yet
    assert resolve_due_date(second, [first, second, third]) is None
    # No later order at all
    assert resolve_due_date(third, [first, second, third]) is None


def test_bill_to_bill_skips_declined_and_other_relationships(make_order, now):
    first = make_order("o1", created_at=now - timedelta(days=20), terms=BillToBill())
    declined = make_order(
        "o2", created_at=now - timedelta(days=15), terms=BillToBill(), declined_at=now - timedelta(days=14)
    )
    elsewhere = make_order(
        "o3",
        created_at=now - timedelta(days=12),
        terms=BillToBill(),
        relationship_id="rel-2",
    )
    following = make_order("o4", created_at=now - timedelta(days=8), terms=BillToBill())

    assert next_billable_order(first, [first, declined, elsewhere, following]) is following



def test_bill_to_bill_orders_created_at_same_instant(make_order, now):
    created_at = now - timedelta(days=5)
    first = make_order("o-a", created_at=created_at, terms=BillToBill())
    second = make_order("o-b", created_at=created_at, terms=BillToBill(), delivered_at=now - timedelta(days=1))

    # Same ordering the repository uses: creation time, then id
    assert next_billable_order(first, [second, first]) is second
    assert next_billable_order(second, [first, second]) is None
    assert resolve_due_date(first, [first, second]) == now - timedelta(days=1)
