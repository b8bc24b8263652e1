"""Unit tests for attention prioritization"""

from datetime import timedelta, timezone
from itertools import count
from zoneinfo import ZoneInfo

from tradeline.domain.attention import (
    AttentionCategory,
    AttentionItem,
    build_attention_items,
    relationship_attention_items,
    sort_attention_items,
    summarize_active_friction,
)
from tradeline.domain.models import IssueStatus, RelationshipSnapshot
from tradeline.domain.payment_terms import DaysAfterDelivery, PaymentOnDelivery


def delivered_order(make_order, now, order_id="order-1", delivered_days_ago=10, **kwargs):
    delivered_at = now - timedelta(days=delivered_days_ago)
    return make_order(
        order_id,
        created_at=delivered_at - timedelta(days=3),
        accepted_at=delivered_at - timedelta(days=2),
        dispatched_at=delivered_at - timedelta(days=1),
        delivered_at=delivered_at,
        **kwargs,
    )


def test_partially_paid_order_past_due_is_overdue(make_relationship, make_order, make_payment, now):
    """Value 10,000, due 7 days after delivery, 4,000 paid two days after delivery"""
    order = delivered_order(make_order, now, terms=DaysAfterDelivery(days=7))
    delivered_at = order.delivered_at
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[order],
        payments=[make_payment(amount_cents=4_000, recorded_at=delivered_at + timedelta(days=2))],
    )

    items = relationship_attention_items(snapshot, now)

    assert len(items) == 1
    item = items[0]
    assert item.category == AttentionCategory.OVERDUE
    assert item.priority == 2
    assert item.pending_amount_cents == 6_000
    assert item.friction_started_at == delivered_at + timedelta(days=7)
    assert item.days_overdue == 3


def test_open_issue_escalates_overdue(make_relationship, make_order, make_issue, now):
    order = delivered_order(make_order, now)
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[order],
        issues=[make_issue()],
    )

    items = relationship_attention_items(snapshot, now)

    assert [(item.category, item.priority) for item in items] == [
        (AttentionCategory.OVERDUE, 1),
        (AttentionCategory.DISPUTES, 4),
    ]
    dispute = items[1]
    assert dispute.issue_id == "issue-1"
    assert dispute.description == f"Damaged Product - {order.item_summary}"


def test_resolved_issue_does_not_escalate(make_relationship, make_order, make_issue, now):
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[delivered_order(make_order, now)],
        issues=[make_issue(status=IssueStatus.RESOLVED, resolved_at=now)],
    )

    items = relationship_attention_items(snapshot, now)

    assert [(item.category, item.priority) for item in items] == [(AttentionCategory.OVERDUE, 2)]


def test_due_today_uses_calendar_day(make_relationship, make_order, now):
    order = make_order(
        created_at=now - timedelta(days=3),
        accepted_at=now - timedelta(days=3),
        dispatched_at=now - timedelta(days=3),
        delivered_at=now - timedelta(hours=3),
        terms=PaymentOnDelivery(),
    )
    snapshot = RelationshipSnapshot(relationship=make_relationship(), orders=[order])

    items = relationship_attention_items(snapshot, now)
    assert [item.category for item in items] == [AttentionCategory.DUE_TODAY]
    assert items[0].priority == 3

    # 09:00 UTC on the 10th is still the 9th in Honolulu, while now (12:00 UTC) is already the 10th there
    honolulu = relationship_attention_items(snapshot, now, ZoneInfo("Pacific/Honolulu"))
    assert [item.category for item in honolulu] == [AttentionCategory.OVERDUE]


def test_not_yet_due_is_pending_payment(make_relationship, make_order, now):
    order = delivered_order(make_order, now, delivered_days_ago=2, terms=DaysAfterDelivery(days=30))
    snapshot = RelationshipSnapshot(relationship=make_relationship(), orders=[order])

    (item,) = relationship_attention_items(snapshot, now)

    assert item.category == AttentionCategory.PENDING_PAYMENTS
    assert item.priority == 5
    assert item.friction_started_at == order.created_at
    assert item.description == f"Payment pending for order {order.item_summary}"


def test_unresolved_due_date_raises_no_settlement_item(make_relationship, make_order, now):
    order = make_order(created_at=now - timedelta(days=5), accepted_at=now - timedelta(hours=3))
    snapshot = RelationshipSnapshot(relationship=make_relationship(), orders=[order])

    assert relationship_attention_items(snapshot, now) == []


def test_approval_needed(make_relationship, make_order, now):
    placed = make_order("placed", created_at=now - timedelta(hours=5))
    stalled = make_order("stalled", created_at=now - timedelta(days=4), accepted_at=now - timedelta(days=3))
    recently_accepted = make_order("fresh", created_at=now - timedelta(days=1), accepted_at=now - timedelta(hours=20))
    declined = make_order("declined", created_at=now - timedelta(days=1), declined_at=now - timedelta(hours=2))
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[placed, stalled, recently_accepted, declined],
    )

    items = relationship_attention_items(snapshot, now)

    assert [(item.order_id, item.state_info) for item in items] == [
        ("stalled", "Accepted - Not Dispatched"),
        ("placed", "Placed - Not Accepted"),
    ]
    assert all(item.priority == 6 for item in items)
    assert items[0].friction_started_at == stalled.accepted_at + timedelta(hours=48)


def test_sort_by_priority_then_oldest_friction(now):
    def item(item_id, priority, hours_ago):
        return AttentionItem(
            id=item_id,
            category=AttentionCategory.OVERDUE,
            priority=priority,
            friction_started_at=now - timedelta(hours=hours_ago),
            relationship_id="rel-1",
            order_id=item_id,
            description=item_id,
        )

    items = [item("a", 3, 1), item("b", 1, 2), item("c", 3, 10), item("d", 1, 20)]

    assert [i.id for i in sort_attention_items(items)] == ["d", "b", "c", "a"]


def test_global_list_filters_by_membership(make_relationship, make_order, now):
    own = RelationshipSnapshot(
        relationship=make_relationship("rel-1"),
        orders=[delivered_order(make_order, now, "mine", relationship_id="rel-1")],
    )
    foreign = RelationshipSnapshot(
        relationship=make_relationship(
            "rel-2", buyer_business_id="biz_other_buyer", supplier_business_id="biz_other_supplier"
        ),
        orders=[delivered_order(make_order, now, "theirs", relationship_id="rel-2")],
    )

    items = build_attention_items([own, foreign], "biz_buyer", now)

    assert {item.order_id for item in items} == {"mine"}


def test_global_list_is_deterministic(make_relationship, make_order, make_issue, now):
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[delivered_order(make_order, now), make_order("placed", created_at=now - timedelta(hours=1))],
        issues=[make_issue()],
    )

    def run():
        ids = count(1)
        return build_attention_items([snapshot], "biz_supplier", now, timezone.utc, lambda: f"item-{next(ids)}")

    assert run() == run()


def test_active_friction_summary(make_relationship, make_order, make_issue, now):
    snapshot = RelationshipSnapshot(
        relationship=make_relationship(),
        orders=[delivered_order(make_order, now), make_order("placed", created_at=now - timedelta(hours=1))],
        issues=[make_issue()],
    )

    friction = summarize_active_friction(relationship_attention_items(snapshot, now))

    assert friction.has_settlement_friction
    assert friction.has_operational_friction
    assert friction.has_quality_friction
