"""Unit tests for insight selection"""

from tradeline.domain.attention import ActiveFrictionSummary
from tradeline.domain.behaviour import (
    BehaviourSignals,
    OperationalSignals,
    QualitySignals,
    SettlementSignals,
)
from tradeline.domain.insights import (
    InsightTemplate,
    SignalGroup,
    select_insights,
    select_operational_insight,
    select_quality_insight,
    select_settlement_insight,
)
from tradeline.domain.models import IssueType, Role

NO_FRICTION = ActiveFrictionSummary()


def signals(settlement=None, operational=None, quality=None):
    settlement = settlement or SettlementSignals()
    return BehaviourSignals(
        settlement_medium=settlement,
        settlement_short=SettlementSignals(),
        operational=operational or OperationalSignals(),
        quality=quality or QualitySignals(total_issues_30_days=1),
    )


def test_every_template_has_group_and_polarity():
    assert len(InsightTemplate) == 16
    assert {t.group for t in InsightTemplate} == set(SignalGroup)
    assert InsightTemplate.PAYMENTS_FREQUENTLY_OVERDUE.positive is False
    assert InsightTemplate.STABLE_PAYMENT_RHYTHM.text == "Stable payment rhythm"


def test_settlement_rule_order():
    assert select_settlement_insight(SettlementSignals(overdue_count=1, on_time_payment_count=5)) == (
        InsightTemplate.PAYMENTS_FREQUENTLY_OVERDUE
    )
    assert select_settlement_insight(SettlementSignals(late_payment_count=2, on_time_payment_count=1)) == (
        InsightTemplate.DELAY_INCREASING
    )
    assert select_settlement_insight(SettlementSignals(on_time_payment_count=3)) == (
        InsightTemplate.STABLE_PAYMENT_RHYTHM
    )
    assert select_settlement_insight(SettlementSignals(partial_payment_count=2)) == (
        InsightTemplate.PARTIAL_PAYMENTS_COMMON
    )
    assert select_settlement_insight(SettlementSignals(partial_payment_count=1, on_time_payment_count=1)) == (
        InsightTemplate.PAYMENTS_IN_STAGES
    )
    assert select_settlement_insight(SettlementSignals(on_time_payment_count=2, late_payment_count=1)) == (
        InsightTemplate.PAYMENTS_USUALLY_ON_TIME
    )
    assert select_settlement_insight(SettlementSignals()) is None


def test_operational_praise_needs_sample():
    fast = OperationalSignals(avg_acceptance_delay_hours=1, order_count=2)
    assert select_operational_insight(fast) is None

    fast.order_count = 3
    assert select_operational_insight(fast) == InsightTemplate.ORDERS_ACCEPTED_QUICKLY


def test_operational_rule_order():
    assert select_operational_insight(
        OperationalSignals(avg_acceptance_delay_hours=50, avg_dispatch_delay_hours=80, order_count=1)
    ) == InsightTemplate.ACCEPTANCE_SLOW
    assert select_operational_insight(
        OperationalSignals(avg_dispatch_delay_hours=80, order_count=1)
    ) == InsightTemplate.DISPATCH_DELAYS
    assert select_operational_insight(
        OperationalSignals(avg_dispatch_delay_hours=10, delivery_consistency=1.0, order_count=4)
    ) == InsightTemplate.DISPATCH_TIMING_CONSISTENT
    assert select_operational_insight(
        OperationalSignals(avg_dispatch_delay_hours=30, delivery_consistency=0.9, order_count=4)
    ) == InsightTemplate.DELIVERY_TIMING_RELIABLE


def test_quality_rule_order():
    assert select_quality_insight(QualitySignals(total_open_issues=1)) == InsightTemplate.ISSUES_REPORTED_RECENTLY
    assert select_quality_insight(
        QualitySignals(total_issues_30_days=2, recurring_issue_types=[IssueType.SHORT_SUPPLY])
    ) == InsightTemplate.RECURRING_ISSUES
    assert select_quality_insight(QualitySignals(total_issues_30_days=4)) == InsightTemplate.ISSUE_RATE_INCREASING
    assert select_quality_insight(QualitySignals()) == InsightTemplate.NO_ISSUES_RECENTLY
    assert select_quality_insight(QualitySignals(total_issues_30_days=2)) == InsightTemplate.LOW_ISSUE_FREQUENCY
    assert select_quality_insight(QualitySignals(total_issues_30_days=3)) is None


def test_positive_insight_suppressed_by_active_friction():
    on_time = signals(settlement=SettlementSignals(on_time_payment_count=3))

    assert select_insights(on_time, NO_FRICTION, Role.BUYER) == [
        InsightTemplate.STABLE_PAYMENT_RHYTHM,
        InsightTemplate.LOW_ISSUE_FREQUENCY,
    ]
    assert select_insights(
        on_time, ActiveFrictionSummary(has_settlement_friction=True), Role.BUYER
    ) == [InsightTemplate.LOW_ISSUE_FREQUENCY]


def test_negative_insight_survives_friction():
    overdue = signals(settlement=SettlementSignals(overdue_count=1))
    friction = ActiveFrictionSummary(has_settlement_friction=True, has_quality_friction=True)

    assert select_insights(overdue, friction, Role.SUPPLIER) == [InsightTemplate.PAYMENTS_FREQUENTLY_OVERDUE]


def test_role_tie_break_with_three_candidates():
    three = signals(
        settlement=SettlementSignals(on_time_payment_count=3),
        operational=OperationalSignals(avg_acceptance_delay_hours=60, order_count=5),
        quality=QualitySignals(total_open_issues=1),
    )

    buyer = select_insights(three, NO_FRICTION, Role.BUYER)
    supplier = select_insights(three, NO_FRICTION, Role.SUPPLIER)

    assert buyer == [InsightTemplate.STABLE_PAYMENT_RHYTHM, InsightTemplate.ACCEPTANCE_SLOW]
    assert supplier == [InsightTemplate.ACCEPTANCE_SLOW, InsightTemplate.ISSUES_REPORTED_RECENTLY]


def test_never_more_than_two():
    for role in Role:
        result = select_insights(
            signals(
                settlement=SettlementSignals(overdue_count=2),
                operational=OperationalSignals(avg_dispatch_delay_hours=100),
                quality=QualitySignals(total_issues_30_days=5),
            ),
            NO_FRICTION,
            role,
        )
        assert len(result) == 2
