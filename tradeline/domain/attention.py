"""Attention prioritization - a sorted worklist of friction across a party's relationships"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from tradeline.domain.models import (
    IssueStatus,
    IssueType,
    OrderSettlement,
    RelationshipSnapshot,
)
from tradeline.domain.settlement import settle_relationship_orders
from tradeline.utils.date_utils import IdFactory, is_same_calendar_day, new_id, whole_days_between


class AttentionCategory(str, Enum):
    PENDING_PAYMENTS = "Pending Payments"
    DUE_TODAY = "Due Today"
    OVERDUE = "Overdue"
    DISPUTES = "Disputes"
    APPROVAL_NEEDED = "Approval Needed"


# Lower is more urgent
PRIORITY_OVERDUE_WITH_OPEN_ISSUE = 1
PRIORITY_OVERDUE = 2
PRIORITY_DUE_TODAY = 3
PRIORITY_DISPUTES = 4
PRIORITY_PENDING_PAYMENTS = 5
PRIORITY_APPROVAL_NEEDED = 6

DISPATCH_APPROVAL_THRESHOLD = timedelta(hours=48)


@dataclass
class AttentionItem:
    id: str
    category: AttentionCategory
    priority: int
    friction_started_at: datetime
    relationship_id: str
    order_id: str
    description: str
    issue_id: Optional[str] = None
    issue_type: Optional[IssueType] = None
    pending_amount_cents: Optional[int] = None
    days_overdue: Optional[int] = None
    state_info: Optional[str] = None


@dataclass
class ActiveFrictionSummary:
    has_settlement_friction: bool = False
    has_operational_friction: bool = False
    has_quality_friction: bool = False


def _settlement_items(
    settlements: Sequence[OrderSettlement],
    open_issue_order_ids: set,
    now: datetime,
    tz: tzinfo,
    id_factory: IdFactory,
) -> List[AttentionItem]:
    items = []
    for settlement in settlements:
        order = settlement.order
        due = settlement.due_date
        if order.declined_at is not None or settlement.pending_amount_cents <= 0 or due is None:
            continue

        common = dict(
            relationship_id=order.relationship_id,
            order_id=order.id,
            description=order.item_summary,
            pending_amount_cents=settlement.pending_amount_cents,
        )

        if is_same_calendar_day(due, now, tz):
            items.append(AttentionItem(
                id=id_factory(),
                category=AttentionCategory.DUE_TODAY,
                priority=PRIORITY_DUE_TODAY,
                friction_started_at=due,
                **common,
            ))
        elif due < now:
            priority = (
                PRIORITY_OVERDUE_WITH_OPEN_ISSUE if order.id in open_issue_order_ids else PRIORITY_OVERDUE
            )
            items.append(AttentionItem(
                id=id_factory(),
                category=AttentionCategory.OVERDUE,
                priority=priority,
                friction_started_at=due,
                days_overdue=whole_days_between(due, now),
                **common,
            ))
        else:
            common["description"] = f"Payment pending for order {order.item_summary}"
            items.append(AttentionItem(
                id=id_factory(),
                category=AttentionCategory.PENDING_PAYMENTS,
                priority=PRIORITY_PENDING_PAYMENTS,
                friction_started_at=order.created_at,
                **common,
            ))
    return items


def _dispute_items(snapshot: RelationshipSnapshot, id_factory: IdFactory) -> List[AttentionItem]:
    orders = {order.id: order for order in snapshot.orders}
    items = []
    for issue in snapshot.issues:
        order = orders.get(issue.order_id)
        if issue.status != IssueStatus.OPEN or order is None:
            continue
        items.append(AttentionItem(
            id=id_factory(),
            category=AttentionCategory.DISPUTES,
            priority=PRIORITY_DISPUTES,
            friction_started_at=issue.created_at,
            relationship_id=order.relationship_id,
            order_id=order.id,
            issue_id=issue.id,
            issue_type=issue.issue_type,
            description=f"{issue.issue_type.value} - {order.item_summary}",
        ))
    return items


def _approval_items(snapshot: RelationshipSnapshot, now: datetime, id_factory: IdFactory) -> List[AttentionItem]:
    items = []
    for order in snapshot.orders:
        if order.declined_at is not None:
            continue
        if order.accepted_at is None:
            started_at = order.created_at
            state_info = "Placed - Not Accepted"
        elif order.dispatched_at is None and now - order.accepted_at > DISPATCH_APPROVAL_THRESHOLD:
            started_at = order.accepted_at + DISPATCH_APPROVAL_THRESHOLD
            state_info = "Accepted - Not Dispatched"
        else:
            continue
        items.append(AttentionItem(
            id=id_factory(),
            category=AttentionCategory.APPROVAL_NEEDED,
            priority=PRIORITY_APPROVAL_NEEDED,
            friction_started_at=started_at,
            relationship_id=order.relationship_id,
            order_id=order.id,
            description=order.item_summary,
            state_info=state_info,
        ))
    return items


def sort_attention_items(items: Iterable[AttentionItem]) -> List[AttentionItem]:
    """Most urgent first; equal priorities oldest friction first"""
    return sorted(items, key=lambda item: (item.priority, item.friction_started_at))


def relationship_attention_items(
    snapshot: RelationshipSnapshot,
    now: datetime,
    tz: tzinfo = timezone.utc,
    id_factory: IdFactory = new_id,
) -> List[AttentionItem]:
    """Every attention item raised by a single relationship, sorted"""
    settlements = settle_relationship_orders(snapshot.orders, snapshot.payments_by_order(), now)
    open_issue_order_ids = {issue.order_id for issue in snapshot.issues if issue.status == IssueStatus.OPEN}

    items = _settlement_items(settlements, open_issue_order_ids, now, tz, id_factory)
    items += _dispute_items(snapshot, id_factory)
    items += _approval_items(snapshot, now, id_factory)

    # Guard against store queries that leak rows from other relationships
    relationship_id = snapshot.relationship.id
    return sort_attention_items(item for item in items if item.relationship_id == relationship_id)


def build_attention_items(
    snapshots: Iterable[RelationshipSnapshot],
    business_id: str,
    now: datetime,
    tz: tzinfo = timezone.utc,
    id_factory: IdFactory = new_id,
) -> List[AttentionItem]:
    """
    Main entry point: the global worklist for one business.

    Snapshots of relationships the business is not a member of are ignored, so
    callers never see another party's friction. Deterministic for a given
    input, clock and id factory.
    """
    items: List[AttentionItem] = []
    for snapshot in snapshots:
        if not snapshot.relationship.is_member(business_id):
            continue
        items.extend(relationship_attention_items(snapshot, now, tz, id_factory))
    return sort_attention_items(items)


def summarize_active_friction(items: Iterable[AttentionItem]) -> ActiveFrictionSummary:
    """Which signal groups currently have live friction in the worklist"""
    categories = {item.category for item in items}
    return ActiveFrictionSummary(
        has_settlement_friction=bool(
            categories & {AttentionCategory.OVERDUE, AttentionCategory.DUE_TODAY}
        ),
        has_operational_friction=AttentionCategory.APPROVAL_NEEDED in categories,
        has_quality_friction=AttentionCategory.DISPUTES in categories,
    )
