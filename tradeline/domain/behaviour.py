"""Behaviour signal aggregation - settlement, operational and quality signals per relationship"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence

from tradeline.domain.models import (
    IssueReport,
    IssueStatus,
    IssueType,
    Order,
    OrderSettlement,
    RelationshipSnapshot,
    Role,
    SettlementStatus,
)
from tradeline.domain.settlement import settle_relationship_orders
from tradeline.utils.date_utils import hours_between


class TimeWindow(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"


WINDOW_DURATIONS = {
    TimeWindow.SHORT: timedelta(days=7),
    TimeWindow.MEDIUM: timedelta(days=30),
}

# Accepted orders not dispatched after this long count as stuck
DISPATCH_STALL_HOURS = 24


@dataclass
class SettlementSignals:
    on_time_payment_count: int = 0
    late_payment_count: int = 0
    partial_payment_count: int = 0
    overdue_count: int = 0
    unpaid_count: int = 0
    orders_created_recently: int = 0


@dataclass
class OperationalSignals:
    avg_acceptance_delay_hours: Optional[float] = None
    avg_dispatch_delay_hours: Optional[float] = None
    delivery_consistency: Optional[float] = None  # delivered / (delivered + in transit)
    orders_awaiting_acceptance: int = 0
    orders_awaiting_dispatch: int = 0
    order_count: int = 0


@dataclass
class QualitySignals:
    total_open_issues: int = 0
    total_issues_30_days: int = 0
    recurring_issue_types: List[IssueType] = field(default_factory=list)
    buyer_raised_issue_count: int = 0
    supplier_raised_issue_count: int = 0


@dataclass
class BehaviourSignals:
    settlement_medium: SettlementSignals
    settlement_short: SettlementSignals
    operational: OperationalSignals
    quality: QualitySignals


def _window_start(now: datetime, window: TimeWindow) -> datetime:
    return now - WINDOW_DURATIONS[window]


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def compute_settlement_signals(
    settlements: Sequence[OrderSettlement],
    now: datetime,
    window: TimeWindow = TimeWindow.MEDIUM,
) -> SettlementSignals:
    """
    Count settlement outcomes for orders created inside the window.

    orders_created_recently counts every order, declined or not, and always
    uses the short window. Declined orders carry no payment obligation, so
    they are left out of the outcome counts.
    """
    cutoff = _window_start(now, window)
    recent_cutoff = _window_start(now, TimeWindow.SHORT)
    signals = SettlementSignals()

    for settlement in settlements:
        order = settlement.order
        if order.created_at >= recent_cutoff:
            signals.orders_created_recently += 1

        if order.declined_at is not None or order.created_at < cutoff:
            continue

        if settlement.status == SettlementStatus.PAID:
            if settlement.paid_on_time is True:
                signals.on_time_payment_count += 1
            elif settlement.paid_on_time is False:
                signals.late_payment_count += 1
        elif settlement.status == SettlementStatus.PARTIAL_PAYMENT:
            signals.partial_payment_count += 1
        elif settlement.status == SettlementStatus.PENDING:
            signals.overdue_count += 1
        elif settlement.status == SettlementStatus.AWAITING_PAYMENT:
            signals.unpaid_count += 1

    return signals


def compute_operational_signals(orders: Sequence[Order], now: datetime) -> OperationalSignals:
    """All-time acceptance/dispatch delays, delivery consistency and stuck orders"""
    acceptance_delays: List[float] = []
    dispatch_delays: List[float] = []
    delivered = 0
    in_transit = 0
    signals = OperationalSignals(order_count=len(orders))

    for order in orders:
        if order.accepted_at is not None:
            acceptance_delays.append(hours_between(order.created_at, order.accepted_at))

        if order.dispatched_at is not None and order.accepted_at is not None:
            dispatch_delays.append(hours_between(order.accepted_at, order.dispatched_at))

        if order.delivered_at is not None:
            delivered += 1
        elif order.dispatched_at is not None:
            in_transit += 1

        if order.declined_at is not None:
            continue
        if order.accepted_at is None:
            signals.orders_awaiting_acceptance += 1
        elif order.dispatched_at is None and hours_between(order.accepted_at, now) > DISPATCH_STALL_HOURS:
            signals.orders_awaiting_dispatch += 1

    signals.avg_acceptance_delay_hours = _mean(acceptance_delays)
    signals.avg_dispatch_delay_hours = _mean(dispatch_delays)
    if delivered + in_transit > 0:
        signals.delivery_consistency = delivered / (delivered + in_transit)

    return signals


def compute_quality_signals(issues: Sequence[IssueReport], now: datetime) -> QualitySignals:
    """Open issue count plus medium-window issue statistics"""
    cutoff = _window_start(now, TimeWindow.MEDIUM)
    recent = [issue for issue in issues if issue.created_at >= cutoff]
    type_counts = Counter(issue.issue_type for issue in recent)

    return QualitySignals(
        total_open_issues=sum(1 for issue in issues if issue.status == IssueStatus.OPEN),
        total_issues_30_days=len(recent),
        recurring_issue_types=[issue_type for issue_type, count in type_counts.items() if count > 1],
        buyer_raised_issue_count=sum(1 for issue in recent if issue.raised_by == Role.BUYER),
        supplier_raised_issue_count=sum(1 for issue in recent if issue.raised_by == Role.SUPPLIER),
    )


def compute_behaviour_signals(snapshot: RelationshipSnapshot, now: datetime) -> BehaviourSignals:
    """Main entry point: every signal group for one relationship"""
    settlements = settle_relationship_orders(snapshot.orders, snapshot.payments_by_order(), now)

    return BehaviourSignals(
        settlement_medium=compute_settlement_signals(settlements, now, TimeWindow.MEDIUM),
        settlement_short=compute_settlement_signals(settlements, now, TimeWindow.SHORT),
        operational=compute_operational_signals(snapshot.orders, now),
        quality=compute_quality_signals(snapshot.issues, now),
    )
