"""Insight selection - short behaviour summaries gated against live friction"""

from enum import Enum
from typing import List, Optional

from tradeline.domain.attention import ActiveFrictionSummary
from tradeline.domain.behaviour import (
    BehaviourSignals,
    OperationalSignals,
    QualitySignals,
    SettlementSignals,
)
from tradeline.domain.models import Role

MAX_INSIGHTS = 2

# Operational insights need a minimum sample before praising speed or reliability
MIN_ORDERS_FOR_OPERATIONAL_PRAISE = 3


class SignalGroup(str, Enum):
    SETTLEMENT = "settlement"
    OPERATIONAL = "operational"
    QUALITY = "quality"


class InsightTemplate(Enum):
    """Each template carries its signal group and whether it is positive (suppressible)"""

    PAYMENTS_USUALLY_ON_TIME = ("Payments usually on time", SignalGroup.SETTLEMENT, True)
    STABLE_PAYMENT_RHYTHM = ("Stable payment rhythm", SignalGroup.SETTLEMENT, True)
    PAYMENTS_IN_STAGES = ("Payments often completed in stages", SignalGroup.SETTLEMENT, True)
    PARTIAL_PAYMENTS_COMMON = ("Partial payments common", SignalGroup.SETTLEMENT, False)
    DELAY_INCREASING = ("Delay increasing recently", SignalGroup.SETTLEMENT, False)
    PAYMENTS_FREQUENTLY_OVERDUE = ("Payments frequently overdue", SignalGroup.SETTLEMENT, False)

    ORDERS_ACCEPTED_QUICKLY = ("Orders accepted quickly", SignalGroup.OPERATIONAL, True)
    DELIVERY_TIMING_RELIABLE = ("Delivery timing reliable", SignalGroup.OPERATIONAL, True)
    DISPATCH_TIMING_CONSISTENT = ("Dispatch timing consistent", SignalGroup.OPERATIONAL, True)
    ACCEPTANCE_SLOW = ("Acceptance slow recently", SignalGroup.OPERATIONAL, False)
    DISPATCH_DELAYS = ("Dispatch delays observed", SignalGroup.OPERATIONAL, False)

    NO_ISSUES_RECENTLY = ("No issues reported recently", SignalGroup.QUALITY, True)
    LOW_ISSUE_FREQUENCY = ("Low issue frequency", SignalGroup.QUALITY, True)
    ISSUES_REPORTED_RECENTLY = ("Issues reported recently", SignalGroup.QUALITY, False)
    RECURRING_ISSUES = ("Recurring issues observed", SignalGroup.QUALITY, False)
    ISSUE_RATE_INCREASING = ("Issue rate increasing", SignalGroup.QUALITY, False)

    def __init__(self, text: str, group: SignalGroup, positive: bool):
        self.text = text
        self.group = group
        self.positive = positive


def select_settlement_insight(signals: SettlementSignals) -> Optional[InsightTemplate]:
    if signals.overdue_count >= 1:
        return InsightTemplate.PAYMENTS_FREQUENTLY_OVERDUE
    if signals.late_payment_count > signals.on_time_payment_count:
        return InsightTemplate.DELAY_INCREASING
    if signals.on_time_payment_count >= 3 and signals.late_payment_count == 0:
        return InsightTemplate.STABLE_PAYMENT_RHYTHM
    if signals.partial_payment_count >= 2:
        return InsightTemplate.PARTIAL_PAYMENTS_COMMON
    if signals.partial_payment_count >= 1 and signals.on_time_payment_count > 0:
        return InsightTemplate.PAYMENTS_IN_STAGES
    if signals.on_time_payment_count > signals.late_payment_count:
        return InsightTemplate.PAYMENTS_USUALLY_ON_TIME
    return None


def select_operational_insight(signals: OperationalSignals) -> Optional[InsightTemplate]:
    acceptance = signals.avg_acceptance_delay_hours
    dispatch = signals.avg_dispatch_delay_hours
    enough_orders = signals.order_count >= MIN_ORDERS_FOR_OPERATIONAL_PRAISE

    if acceptance is not None and acceptance > 48:
        return InsightTemplate.ACCEPTANCE_SLOW
    if dispatch is not None and dispatch > 72:
        return InsightTemplate.DISPATCH_DELAYS
    if dispatch is not None and dispatch < 24 and enough_orders:
        return InsightTemplate.DISPATCH_TIMING_CONSISTENT
    if signals.delivery_consistency is not None and signals.delivery_consistency >= 0.9 and enough_orders:
        return InsightTemplate.DELIVERY_TIMING_RELIABLE
    if acceptance is not None and acceptance < 4 and enough_orders:
        return InsightTemplate.ORDERS_ACCEPTED_QUICKLY
    return None


def select_quality_insight(signals: QualitySignals) -> Optional[InsightTemplate]:
    if signals.total_open_issues >= 1:
        return InsightTemplate.ISSUES_REPORTED_RECENTLY
    if signals.recurring_issue_types:
        return InsightTemplate.RECURRING_ISSUES
    if signals.total_issues_30_days > 3:
        return InsightTemplate.ISSUE_RATE_INCREASING
    if signals.total_issues_30_days == 0:
        return InsightTemplate.NO_ISSUES_RECENTLY
    if signals.total_issues_30_days in (1, 2):
        return InsightTemplate.LOW_ISSUE_FREQUENCY
    return None


def is_suppressed(template: InsightTemplate, friction: ActiveFrictionSummary) -> bool:
    """Positive templates are withheld while their own group has live friction"""
    if not template.positive:
        return False
    if template.group == SignalGroup.SETTLEMENT:
        return friction.has_settlement_friction
    if template.group == SignalGroup.OPERATIONAL:
        return friction.has_operational_friction
    return friction.has_quality_friction


def _first_in(candidates: List[InsightTemplate], group: SignalGroup) -> Optional[InsightTemplate]:
    return next((c for c in candidates if c.group == group), None)


def _first_other(candidates: List[InsightTemplate], chosen: InsightTemplate) -> Optional[InsightTemplate]:
    return next((c for c in candidates if c is not chosen), None)


def _pick_for_role(candidates: List[InsightTemplate], viewer_role: Role) -> List[InsightTemplate]:
    if viewer_role == Role.BUYER:
        settlement = _first_in(candidates, SignalGroup.SETTLEMENT)
        other = next((c for c in candidates if c.group != SignalGroup.SETTLEMENT), None)
        if settlement and other:
            return [settlement, other]
        return candidates[:MAX_INSIGHTS]

    operational = _first_in(candidates, SignalGroup.OPERATIONAL)
    quality = _first_in(candidates, SignalGroup.QUALITY)
    if operational and quality:
        return [operational, quality]
    for anchor in (operational, quality):
        if anchor:
            other = _first_other(candidates, anchor)
            if other:
                return [anchor, other]
    return candidates[:MAX_INSIGHTS]


def select_insights(
    signals: BehaviourSignals,
    friction: ActiveFrictionSummary,
    viewer_role: Role,
) -> List[InsightTemplate]:
    """
    Pick at most two insights for one relationship as seen by viewer_role.

    One candidate per signal group (settlement, operational, quality), positive
    candidates dropped when their group has active friction, then a role-aware
    tie-break when more than two survive.
    """
    candidates = [
        candidate
        for candidate in (
            select_settlement_insight(signals.settlement_medium),
            select_operational_insight(signals.operational),
            select_quality_insight(signals.quality),
        )
        if candidate is not None and not is_suppressed(candidate, friction)
    ]

    if len(candidates) <= MAX_INSIGHTS:
        return candidates
    return _pick_for_role(candidates, viewer_role)
