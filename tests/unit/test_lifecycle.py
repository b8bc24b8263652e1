"""Unit tests for the order lifecycle state machine"""

from datetime import timedelta

import pytest

from tradeline.domain.exceptions import (
    InvalidTransitionError,
    PaymentTermsRequiredError,
    UnauthorizedActorError,
    ValidationError,
)
from tradeline.domain.lifecycle import (
    apply_transition,
    authorize_order_creation,
    check_order_invariants,
    derive_state,
)
from tradeline.domain.models import LifecycleState, OrderAction


def test_full_happy_path(make_order, make_relationship, now):
    relationship = make_relationship()
    order = make_order(created_at=now - timedelta(days=3))

    order = apply_transition(order, relationship, OrderAction.ACCEPT, "biz_supplier", now - timedelta(days=2))
    assert derive_state(order) == LifecycleState.ACCEPTED
    order = apply_transition(order, relationship, OrderAction.DISPATCH, "biz_supplier", now - timedelta(days=1))
    assert derive_state(order) == LifecycleState.DISPATCHED
    order = apply_transition(order, relationship, OrderAction.DELIVER, "biz_buyer", now)
    assert derive_state(order) == LifecycleState.DELIVERED
    assert order.delivered_at == now


def test_transition_returns_copy(make_order, make_relationship, now):
    order = make_order()
    accepted = apply_transition(order, make_relationship(), OrderAction.ACCEPT, "biz_supplier", now)

    assert order.accepted_at is None
    assert accepted.accepted_at == now


def test_decline_only_from_placed(make_order, make_relationship, now):
    relationship = make_relationship()
    declined = apply_transition(make_order(), relationship, OrderAction.DECLINE, "biz_supplier", now)
    assert derive_state(declined) == LifecycleState.DECLINED

    accepted = make_order(accepted_at=now - timedelta(days=1))
    with pytest.raises(InvalidTransitionError):
        apply_transition(accepted, relationship, OrderAction.DECLINE, "biz_supplier", now)


@pytest.mark.parametrize("action", [OrderAction.ACCEPT, OrderAction.DECLINE, OrderAction.DISPATCH])
def test_buyer_cannot_perform_supplier_actions(make_order, make_relationship, now, action):
    order = make_order(accepted_at=now - timedelta(hours=1)) if action == OrderAction.DISPATCH else make_order()

    with pytest.raises(UnauthorizedActorError, match="Only the supplier"):
        apply_transition(order, make_relationship(), action, "biz_buyer", now)


def test_either_party_may_mark_delivered(make_order, make_relationship, now):
    order = make_order(accepted_at=now - timedelta(days=2), dispatched_at=now - timedelta(days=1))
    delivered = apply_transition(order, make_relationship(), OrderAction.DELIVER, "biz_supplier", now)
    assert delivered.delivered_at == now


def test_outsider_rejected(make_order, make_relationship, now):
    with pytest.raises(UnauthorizedActorError):
        apply_transition(make_order(), make_relationship(), OrderAction.ACCEPT, "biz_outsider", now)


def test_state_checked_before_role(make_order, make_relationship, now):
    """Dispatching a placed order reports the state problem even for the buyer"""
    with pytest.raises(InvalidTransitionError):
        apply_transition(make_order(), make_relationship(), OrderAction.DISPATCH, "biz_buyer", now)


def test_cannot_repeat_a_transition(make_order, make_relationship, now):
    order = make_order(accepted_at=now - timedelta(days=1))
    with pytest.raises(InvalidTransitionError):
        apply_transition(order, make_relationship(), OrderAction.ACCEPT, "biz_supplier", now)


def test_invariants_reject_inconsistent_timestamps(make_order, now):
    with pytest.raises(ValidationError):
        check_order_invariants(make_order(declined_at=now, delivered_at=now))
    with pytest.raises(ValidationError):
        check_order_invariants(make_order(declined_at=now, accepted_at=now))
    with pytest.raises(ValidationError):
        check_order_invariants(make_order(dispatched_at=now))
    with pytest.raises(ValidationError):
        check_order_invariants(
            make_order(accepted_at=now, dispatched_at=now - timedelta(hours=1))
        )
    with pytest.raises(ValidationError):
        check_order_invariants(make_order(created_at=now, accepted_at=now - timedelta(hours=1)))


def test_invariants_accept_consistent_timestamps(make_order, now):
    check_order_invariants(
        make_order(
            created_at=now - timedelta(days=3),
            accepted_at=now - timedelta(days=2),
            dispatched_at=now - timedelta(days=1),
            delivered_at=now,
        )
    )


def test_order_creation_requires_membership_and_terms(make_relationship):
    authorize_order_creation(make_relationship(), "biz_buyer")

    with pytest.raises(UnauthorizedActorError):
        authorize_order_creation(make_relationship(), "biz_outsider")
    with pytest.raises(PaymentTermsRequiredError, match="Payment terms must be set"):
        authorize_order_creation(make_relationship(payment_terms=None), "biz_buyer")
