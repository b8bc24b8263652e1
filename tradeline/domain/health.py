"""Relationship health classification - fixed precedence rules over behaviour signals"""

from tradeline.domain.behaviour import (
    BehaviourSignals,
    OperationalSignals,
    QualitySignals,
    SettlementSignals,
)
from tradeline.domain.models import HealthState

# Business rules, not tuning knobs
STRESS_OVERDUE_COUNT = 2
STRESS_OPEN_ISSUES = 3
STRESS_OPEN_ISSUES_WITH_OVERDUE = 2
FRICTION_PARTIAL_COUNT = 2
SLOW_ACCEPTANCE_HOURS = 48
SLOW_DISPATCH_HOURS = 72


def classify_health(
    settlement: SettlementSignals,
    operational: OperationalSignals,
    quality: QualitySignals,
) -> HealthState:
    """
    Map signals to a health state, most severe rule first.

    settlement must be the medium-window signals; operational is all-time.

    1. Under Stress:    overdue >= 2, or open issues >= 3, or overdue >= 1 with open issues >= 2
    2. Friction Rising: overdue == 1, partial >= 2, open issues >= 1,
                        mean acceptance > 48h, or mean dispatch > 72h
    3. Active:          at least one order created in the short window
    4. Stable:          otherwise
    """
    overdue = settlement.overdue_count
    open_issues = quality.total_open_issues

    if (
        overdue >= STRESS_OVERDUE_COUNT
        or open_issues >= STRESS_OPEN_ISSUES
        or (overdue >= 1 and open_issues >= STRESS_OPEN_ISSUES_WITH_OVERDUE)
    ):
        return HealthState.UNDER_STRESS

    acceptance = operational.avg_acceptance_delay_hours
    dispatch = operational.avg_dispatch_delay_hours
    if (
        overdue == 1
        or settlement.partial_payment_count >= FRICTION_PARTIAL_COUNT
        or open_issues >= 1
        or (acceptance is not None and acceptance > SLOW_ACCEPTANCE_HOURS)
        or (dispatch is not None and dispatch > SLOW_DISPATCH_HOURS)
    ):
        return HealthState.FRICTION_RISING

    if settlement.orders_created_recently >= 1:
        return HealthState.ACTIVE

    return HealthState.STABLE


def classify_signals(signals: BehaviourSignals) -> HealthState:
    return classify_health(signals.settlement_medium, signals.operational, signals.quality)
