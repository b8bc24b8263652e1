"""
Mutating interactions over the trading event store.

Every interaction authorizes the acting business against relationship
membership and role, validates against freshly read state, writes, then:

- recomputes the relationship's cached health label (best effort: a failure is
  logged and counted, the mutation still stands)
- records a notification for the counterparty and queues it on ``outbox`` so
  the caller can hand it to the notifier after commit

Nothing here commits; the caller owns the transaction.
"""

import functools
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from tradeline.domain.behaviour import compute_behaviour_signals
from tradeline.domain.exceptions import (
    DomainException,
    NotFoundError,
    RelationshipExistsError,
    UnauthorizedActorError,
    ValidationError,
)
from tradeline.domain.health import classify_signals
from tradeline.domain.lifecycle import apply_transition, authorize_order_creation
from tradeline.domain.models import (
    HealthState,
    IssueReport,
    IssueSeverity,
    IssueStatus,
    IssueType,
    Notification,
    NotificationType,
    Order,
    OrderAction,
    PaymentEvent,
    Relationship,
)
from tradeline.domain.payment_terms import PaymentTerm, snapshot_payment_terms
from tradeline.domain.settlement import validate_payment_amount
from tradeline.infrastructure.database.repositories import (
    IssueRepository,
    NotificationRepository,
    OrderRepository,
    PaymentRepository,
    RelationshipRepository,
    SnapshotRepository,
)
from tradeline.infrastructure.observability.logging import log_interaction
from tradeline.infrastructure.observability.metrics import (
    health_classification_counter,
    health_recompute_failures_counter,
    record_interaction,
)
from tradeline.utils.date_utils import Clock, IdFactory, new_id, utc_now

logger = logging.getLogger(__name__)

TRANSITION_NOTIFICATIONS = {
    OrderAction.ACCEPT: (NotificationType.ORDER_ACCEPTED, "Your order was accepted"),
    OrderAction.DECLINE: (NotificationType.ORDER_DECLINED, "Your order was declined"),
    OrderAction.DISPATCH: (NotificationType.ORDER_DISPATCHED, "Your order has been dispatched"),
    OrderAction.DELIVER: (NotificationType.ORDER_DELIVERED, "Order marked as delivered"),
}


def interaction(name: str):
    """Count each call as ok or rejected under the given interaction name"""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                result = func(self, *args, **kwargs)
            except DomainException as e:
                record_interaction(name, e)
                raise
            record_interaction(name)
            return result

        return wrapper

    return decorator


class InteractionService:
    """Entry points for every mutation of relationships, orders, payments and issues"""

    def __init__(
        self,
        db: Session,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        request_id: Optional[str] = None,
    ):
        self.db = db
        self.clock = clock
        self.id_factory = id_factory
        self.request_id = request_id
        self.relationships = RelationshipRepository(db)
        self.orders = OrderRepository(db)
        self.payments = PaymentRepository(db)
        self.issues = IssueRepository(db)
        self.notifications = NotificationRepository(db)
        self.snapshots = SnapshotRepository(db)
        self.outbox: List[Notification] = []

    # Lookups

    def _relationship(self, relationship_id: str) -> Relationship:
        relationship = self.relationships.get(relationship_id)
        if relationship is None:
            raise NotFoundError("Relationship not found")
        return relationship

    def _order(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def _payment(self, payment_id: str) -> PaymentEvent:
        payment = self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    def _issue(self, issue_id: str) -> IssueReport:
        issue = self.issues.get(issue_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        return issue

    @staticmethod
    def _require_member(relationship: Relationship, actor_business_id: str) -> None:
        if not relationship.is_member(actor_business_id):
            raise UnauthorizedActorError("Requesting business is not part of this relationship")

    @staticmethod
    def _require_counterparty(payment: PaymentEvent, actor_business_id: str, verb: str) -> None:
        if payment.recorded_by == actor_business_id:
            raise UnauthorizedActorError(f"Only the other party may {verb} a payment")

    # Side effects

    def refresh_health(self, relationship_id: str) -> Optional[HealthState]:
        """
        Recompute and cache the relationship health label.

        Runs inside a savepoint so a failure never undoes the triggering write.
        Returns None when recomputation failed.
        """
        try:
            with self.db.begin_nested():
                relationship = self._relationship(relationship_id)
                snapshot = self.snapshots.load(relationship)
                state = classify_signals(compute_behaviour_signals(snapshot, self.clock()))
                self.relationships.update_health_state(relationship_id, state)
        except Exception:
            health_recompute_failures_counter.inc()
            logger.exception(
                "Health recomputation failed",
                extra={"relationship_id": relationship_id, "request_id": self.request_id},
            )
            return None

        health_classification_counter.labels(state=state.value).inc()
        return state

    def _notify(
        self,
        relationship: Relationship,
        actor_business_id: str,
        event_type: NotificationType,
        related_entity_id: str,
        message: str,
    ) -> None:
        notification = Notification(
            id=self.id_factory(),
            recipient_business_id=relationship.counterparty_of(actor_business_id),
            event_type=event_type,
            related_entity_id=related_entity_id,
            relationship_id=relationship.id,
            message=message,
            created_at=self.clock(),
        )
        self.notifications.create(notification)
        self.outbox.append(notification)

    def _after_mutation(self, name: str, relationship: Relationship, actor_business_id: str, entity_id: str) -> None:
        self.refresh_health(relationship.id)
        log_interaction(name, actor_business_id, relationship.id, entity_id, self.request_id)

    # Relationships

    @interaction("create_relationship")
    def create_relationship(
        self,
        buyer_business_id: str,
        supplier_business_id: str,
        payment_terms: Optional[PaymentTerm],
        actor_business_id: str,
    ) -> Relationship:
        if buyer_business_id == supplier_business_id:
            raise ValidationError("Buyer and supplier must be different businesses")
        if actor_business_id not in (buyer_business_id, supplier_business_id):
            raise UnauthorizedActorError("A business can only create relationships it takes part in")
        if self.relationships.find_between(buyer_business_id, supplier_business_id) is not None:
            raise RelationshipExistsError("A relationship between these two businesses already exists")

        relationship = self.relationships.create(
            Relationship(
                id=self.id_factory(),
                buyer_business_id=buyer_business_id,
                supplier_business_id=supplier_business_id,
                payment_terms=payment_terms,
                health_state=HealthState.STABLE,
                created_at=self.clock(),
            )
        )
        self._after_mutation("create_relationship", relationship, actor_business_id, relationship.id)
        return self._relationship(relationship.id)

    @interaction("update_payment_terms")
    def update_payment_terms(
        self,
        relationship_id: str,
        payment_terms: PaymentTerm,
        actor_business_id: str,
    ) -> Relationship:
        relationship = self._relationship(relationship_id)
        if actor_business_id != relationship.supplier_business_id:
            raise UnauthorizedActorError("Only the supplier can update payment terms")

        self.relationships.update_payment_terms(relationship_id, payment_terms)
        self._notify(
            relationship,
            actor_business_id,
            NotificationType.PAYMENT_TERMS_UPDATED,
            relationship_id,
            f"Payment terms updated to {payment_terms.label}",
        )
        self._after_mutation("update_payment_terms", relationship, actor_business_id, relationship_id)
        return self._relationship(relationship_id)

    # Orders

    @interaction("create_order")
    def create_order(
        self,
        relationship_id: str,
        item_summary: str,
        order_value_cents: int,
        actor_business_id: str,
    ) -> Order:
        relationship = self._relationship(relationship_id)
        authorize_order_creation(relationship, actor_business_id)
        if not item_summary or not item_summary.strip():
            raise ValidationError("Item summary is required")
        if order_value_cents <= 0:
            raise ValidationError("Order value must be greater than zero")

        order = self.orders.create(
            Order(
                id=self.id_factory(),
                relationship_id=relationship_id,
                item_summary=item_summary.strip(),
                order_value_cents=order_value_cents,
                created_at=self.clock(),
                payment_term_snapshot=snapshot_payment_terms(relationship.payment_terms),
            )
        )
        self._notify(
            relationship,
            actor_business_id,
            NotificationType.ORDER_PLACED,
            order.id,
            f"New order received: {order.item_summary}",
        )
        self._after_mutation("create_order", relationship, actor_business_id, order.id)
        return order

    @interaction("transition_order")
    def transition_order(self, order_id: str, action: OrderAction, actor_business_id: str) -> Order:
        """
        Apply accept / decline / dispatch / deliver.

        The precondition is checked against a fresh read and the write is
        conditional on the version read, so a competing transition surfaces as
        ConcurrentModificationError instead of a silent overwrite.
        """
        order = self._order(order_id)
        relationship = self._relationship(order.relationship_id)
        updated = apply_transition(order, relationship, action, actor_business_id, self.clock())
        saved = self.orders.save_transition(updated)

        event_type, message = TRANSITION_NOTIFICATIONS[action]
        self._notify(relationship, actor_business_id, event_type, order_id, f"{message}: {order.item_summary}")
        self._after_mutation(f"order_{action.value}", relationship, actor_business_id, order_id)
        return saved

    # Payments

    @interaction("record_payment")
    def record_payment(self, order_id: str, amount_cents: int, actor_business_id: str) -> PaymentEvent:
        order = self._order(order_id)
        relationship = self._relationship(order.relationship_id)
        self._require_member(relationship, actor_business_id)
        if order.declined_at is not None:
            raise ValidationError("Payments cannot be recorded against a declined order")

        validate_payment_amount(order.order_value_cents, self.payments.total_paid(order_id), amount_cents)
        payment = self.payments.create(
            PaymentEvent(
                id=self.id_factory(),
                order_id=order_id,
                amount_cents=amount_cents,
                recorded_at=self.clock(),
                recorded_by=actor_business_id,
            ),
            order,
        )
        self._notify(
            relationship,
            actor_business_id,
            NotificationType.PAYMENT_RECORDED,
            order_id,
            f"Payment recorded for {order.item_summary}",
        )
        self._after_mutation("record_payment", relationship, actor_business_id, payment.id)
        return payment

    @interaction("dispute_payment")
    def dispute_payment(self, payment_id: str, actor_business_id: str) -> PaymentEvent:
        """Flag a payment as disputed; repeating the call is a no-op"""
        payment = self._payment(payment_id)
        order = self._order(payment.order_id)
        relationship = self._relationship(order.relationship_id)
        self._require_member(relationship, actor_business_id)
        self._require_counterparty(payment, actor_business_id, "dispute")

        if payment.disputed:
            return payment
        if payment.accepted_at is not None:
            raise ValidationError("An accepted payment can no longer be disputed")

        if not self.payments.mark_disputed(payment_id, self.clock()):
            current = self._payment(payment_id)
            if current.disputed:
                return current
            raise ValidationError("Payment was accepted before the dispute was recorded")

        self._notify(
            relationship,
            actor_business_id,
            NotificationType.PAYMENT_DISPUTED,
            order.id,
            "A payment has been disputed",
        )
        self._after_mutation("dispute_payment", relationship, actor_business_id, payment_id)
        return self._payment(payment_id)

    @interaction("accept_payment")
    def accept_payment(self, payment_id: str, actor_business_id: str) -> PaymentEvent:
        """Confirm a payment recorded by the other party; repeating the call is a no-op"""
        payment = self._payment(payment_id)
        order = self._order(payment.order_id)
        relationship = self._relationship(order.relationship_id)
        self._require_member(relationship, actor_business_id)
        self._require_counterparty(payment, actor_business_id, "accept")

        if payment.accepted_at is not None:
            return payment
        if payment.disputed:
            raise ValidationError("A disputed payment cannot be accepted")

        if not self.payments.mark_accepted(payment_id, self.clock()):
            current = self._payment(payment_id)
            if current.accepted_at is not None:
                return current
            raise ValidationError("Payment was disputed before the acceptance was recorded")

        self._after_mutation("accept_payment", relationship, actor_business_id, payment_id)
        return self._payment(payment_id)

    # Issues

    @interaction("raise_issue")
    def raise_issue(
        self,
        order_id: str,
        issue_type: IssueType,
        severity: IssueSeverity,
        actor_business_id: str,
    ) -> IssueReport:
        order = self._order(order_id)
        relationship = self._relationship(order.relationship_id)
        role = relationship.role_of(actor_business_id)
        if role is None:
            raise UnauthorizedActorError("Requesting business is not part of this relationship")

        issue = self.issues.create(
            IssueReport(
                id=self.id_factory(),
                order_id=order_id,
                issue_type=issue_type,
                severity=severity,
                raised_by=role,
                status=IssueStatus.OPEN,
                created_at=self.clock(),
            )
        )
        self._notify(
            relationship,
            actor_business_id,
            NotificationType.ISSUE_RAISED,
            issue.id,
            f"Issue raised: {issue_type.value}",
        )
        self._after_mutation("raise_issue", relationship, actor_business_id, issue.id)
        return issue

    @interaction("resolve_issue")
    def resolve_issue(self, issue_id: str, actor_business_id: str) -> IssueReport:
        issue = self._issue(issue_id)
        order = self._order(issue.order_id)
        relationship = self._relationship(order.relationship_id)
        self._require_member(relationship, actor_business_id)

        if issue.status == IssueStatus.RESOLVED or not self.issues.resolve(issue_id, self.clock()):
            return self._issue(issue_id)

        self._notify(
            relationship,
            actor_business_id,
            NotificationType.ISSUE_RESOLVED,
            issue_id,
            f"Issue resolved: {issue.issue_type.value}",
        )
        self._after_mutation("resolve_issue", relationship, actor_business_id, issue_id)
        return self._issue(issue_id)

    # Notifications

    @interaction("mark_notification_read")
    def mark_notification_read(self, notification_id: str, actor_business_id: str) -> Notification:
        """Mark one notification of the acting business as read; repeating the call is a no-op"""
        notification = self.notifications.get(notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.recipient_business_id != actor_business_id:
            raise UnauthorizedActorError("Notification belongs to another business")

        if notification.read_at is None and self.notifications.mark_read(notification_id, self.clock()):
            log_interaction(
                "mark_notification_read",
                actor_business_id,
                notification.relationship_id,
                notification_id,
                self.request_id,
            )
        return self.notifications.get(notification_id)

    @interaction("mark_all_notifications_read")
    def mark_all_notifications_read(self, actor_business_id: str) -> int:
        marked = self.notifications.mark_all_read(actor_business_id, self.clock())
        logger.info(
            "Notifications marked as read",
            extra={"actor_business_id": actor_business_id, "count": marked, "request_id": self.request_id},
        )
        return marked
