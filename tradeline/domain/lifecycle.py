"""Order lifecycle state machine with per-actor authorization"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Tuple

from tradeline.domain.exceptions import (
    InvalidTransitionError,
    PaymentTermsRequiredError,
    UnauthorizedActorError,
    ValidationError,
)
from tradeline.domain.models import LifecycleState, Order, OrderAction, Relationship, Role

# action -> (required current state, resulting state, timestamp field, supplier only)
TRANSITIONS: Dict[OrderAction, Tuple[LifecycleState, LifecycleState, str, bool]] = {
    OrderAction.ACCEPT: (LifecycleState.PLACED, LifecycleState.ACCEPTED, "accepted_at", True),
    OrderAction.DECLINE: (LifecycleState.PLACED, LifecycleState.DECLINED, "declined_at", True),
    OrderAction.DISPATCH: (LifecycleState.ACCEPTED, LifecycleState.DISPATCHED, "dispatched_at", True),
    OrderAction.DELIVER: (LifecycleState.DISPATCHED, LifecycleState.DELIVERED, "delivered_at", False),
}


def derive_state(order: Order) -> LifecycleState:
    """Lifecycle state is a function of which timestamps are present"""
    if order.declined_at is not None:
        return LifecycleState.DECLINED
    if order.delivered_at is not None:
        return LifecycleState.DELIVERED
    if order.dispatched_at is not None:
        return LifecycleState.DISPATCHED
    if order.accepted_at is not None:
        return LifecycleState.ACCEPTED
    return LifecycleState.PLACED


def check_order_invariants(order: Order) -> None:
    """
    Enforce timestamp consistency before any order write.

    - declined and delivered are mutually exclusive
    - a declined order was never accepted
    - created <= accepted <= dispatched <= delivered, with no gaps in the chain

    Raises:
        ValidationError: the order violates one of the rules above
    """
    if order.declined_at is not None:
        if order.delivered_at is not None:
            raise ValidationError("An order cannot be both declined and delivered")
        if order.accepted_at is not None:
            raise ValidationError("An accepted order cannot be declined")
        if order.declined_at < order.created_at:
            raise ValidationError("Order declined before it was created")

    previous: Optional[datetime] = order.created_at
    previous_name = "created"
    for name in ("accepted", "dispatched", "delivered"):
        moment = getattr(order, f"{name}_at")
        if moment is None:
            previous = None
            previous_name = name
            continue
        if previous is None:
            raise ValidationError(f"Order {name} without being {previous_name} first")
        if moment < previous:
            raise ValidationError(f"Order {name} before it was {previous_name}")
        previous = moment
        previous_name = name


def authorize_transition(order: Order, relationship: Relationship, action: OrderAction, actor_business_id: str) -> None:
    """
    Validate the precondition state and the acting party for a transition.

    Raises:
        InvalidTransitionError: current state does not allow this action
        UnauthorizedActorError: actor is not permitted to perform it
    """
    required_state, _, _, supplier_only = TRANSITIONS[action]
    current_state = derive_state(order)

    if current_state != required_state:
        raise InvalidTransitionError(
            f"Can only {action.value} an order in {required_state.value} state "
            f"(order is {current_state.value})"
        )

    role = relationship.role_of(actor_business_id)
    if role is None:
        raise UnauthorizedActorError("Requesting business is not part of this relationship")
    if supplier_only and role != Role.SUPPLIER:
        raise UnauthorizedActorError(f"Only the supplier may {action.value} an order")


def apply_transition(
    order: Order,
    relationship: Relationship,
    action: OrderAction,
    actor_business_id: str,
    now: datetime,
) -> Order:
    """Return a copy of the order with the transition's single timestamp set"""
    authorize_transition(order, relationship, action, actor_business_id)
    _, _, field_name, _ = TRANSITIONS[action]
    updated = replace(order, **{field_name: now})
    check_order_invariants(updated)
    return updated


def authorize_order_creation(relationship: Relationship, actor_business_id: str) -> None:
    """
    Raises:
        UnauthorizedActorError: actor is not a participant
        PaymentTermsRequiredError: supplier has not set payment terms yet
    """
    if not relationship.is_member(actor_business_id):
        raise UnauthorizedActorError("Only the buyer or supplier in this relationship may create an order")
    if relationship.payment_terms is None:
        raise PaymentTermsRequiredError("Payment terms must be set before creating orders")
