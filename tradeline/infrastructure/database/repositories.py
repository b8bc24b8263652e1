"""Data access layer for the trading event store"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from tradeline.domain.exceptions import ConcurrentModificationError
from tradeline.domain.lifecycle import check_order_invariants
from tradeline.domain.models import (
    HealthState,
    IssueReport,
    IssueSeverity,
    IssueStatus,
    IssueType,
    Notification,
    NotificationType,
    Order,
    PaymentEvent,
    Relationship,
    RelationshipSnapshot,
    Role,
)
from tradeline.domain.payment_terms import (
    PaymentTerm,
    payment_term_from_dict,
    payment_term_to_dict,
)
from tradeline.domain.settlement import validate_payment_amount
from tradeline.infrastructure.database.models import (
    IssueReportRecord,
    NotificationRecord,
    OrderRecord,
    PaymentEventRecord,
    RelationshipRecord,
)


def _to_relationship(row: RelationshipRecord) -> Relationship:
    return Relationship(
        id=row.id,
        buyer_business_id=row.buyer_business_id,
        supplier_business_id=row.supplier_business_id,
        payment_terms=payment_term_from_dict(row.payment_terms),
        health_state=HealthState(row.health_state),
        created_at=row.created_at,
    )


def _to_order(row: OrderRecord) -> Order:
    return Order(
        id=row.id,
        relationship_id=row.relationship_id,
        item_summary=row.item_summary,
        order_value_cents=row.order_value_cents,
        created_at=row.created_at,
        payment_term_snapshot=payment_term_from_dict(row.payment_term_snapshot),
        accepted_at=row.accepted_at,
        dispatched_at=row.dispatched_at,
        delivered_at=row.delivered_at,
        declined_at=row.declined_at,
        version=row.version,
    )


def _to_payment(row: PaymentEventRecord) -> PaymentEvent:
    return PaymentEvent(
        id=row.id,
        order_id=row.order_id,
        amount_cents=row.amount_cents,
        recorded_at=row.recorded_at,
        recorded_by=row.recorded_by,
        disputed=row.disputed,
        disputed_at=row.disputed_at,
        accepted_at=row.accepted_at,
    )


def _to_issue(row: IssueReportRecord) -> IssueReport:
    return IssueReport(
        id=row.id,
        order_id=row.order_id,
        issue_type=IssueType(row.issue_type),
        severity=IssueSeverity(row.severity),
        raised_by=Role(row.raised_by),
        status=IssueStatus(row.status),
        created_at=row.created_at,
        resolved_at=row.resolved_at,
    )


def _to_notification(row: NotificationRecord) -> Notification:
    return Notification(
        id=row.id,
        recipient_business_id=row.recipient_business_id,
        event_type=NotificationType(row.event_type),
        related_entity_id=row.related_entity_id,
        relationship_id=row.relationship_id,
        message=row.message,
        created_at=row.created_at,
        read_at=row.read_at,
    )


class RelationshipRepository:
    """Repository for buyer-supplier relationships"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, relationship: Relationship) -> Relationship:
        self.db.add(
            RelationshipRecord(
                id=relationship.id,
                buyer_business_id=relationship.buyer_business_id,
                supplier_business_id=relationship.supplier_business_id,
                payment_terms=(
                    payment_term_to_dict(relationship.payment_terms)
                    if relationship.payment_terms is not None
                    else None
                ),
                health_state=relationship.health_state.value,
                created_at=relationship.created_at,
            )
        )
        self.db.flush()
        return relationship

    def get(self, relationship_id: str) -> Optional[Relationship]:
        row = self.db.get(RelationshipRecord, relationship_id)
        return _to_relationship(row) if row else None

    def find_between(self, first_business_id: str, second_business_id: str) -> Optional[Relationship]:
        """Relationship for the pair in either role assignment"""
        row = (
            self.db.query(RelationshipRecord)
            .filter(
                or_(
                    (RelationshipRecord.buyer_business_id == first_business_id)
                    & (RelationshipRecord.supplier_business_id == second_business_id),
                    (RelationshipRecord.buyer_business_id == second_business_id)
                    & (RelationshipRecord.supplier_business_id == first_business_id),
                )
            )
            .first()
        )
        return _to_relationship(row) if row else None

    def list_for_business(self, business_id: str) -> List[Relationship]:
        rows = (
            self.db.query(RelationshipRecord)
            .filter(
                or_(
                    RelationshipRecord.buyer_business_id == business_id,
                    RelationshipRecord.supplier_business_id == business_id,
                )
            )
            .order_by(RelationshipRecord.created_at)
            .all()
        )
        return [_to_relationship(row) for row in rows]

    def update_payment_terms(self, relationship_id: str, terms: PaymentTerm) -> None:
        self.db.query(RelationshipRecord).filter(RelationshipRecord.id == relationship_id).update(
            {RelationshipRecord.payment_terms: payment_term_to_dict(terms)},
        )

    def update_health_state(self, relationship_id: str, state: HealthState) -> None:
        self.db.query(RelationshipRecord).filter(RelationshipRecord.id == relationship_id).update(
            {RelationshipRecord.health_state: state.value},
        )


class OrderRepository:
    """Repository for orders; lifecycle writes are conditional on the row version"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, order: Order) -> Order:
        check_order_invariants(order)
        self.db.add(
            OrderRecord(
                id=order.id,
                relationship_id=order.relationship_id,
                item_summary=order.item_summary,
                order_value_cents=order.order_value_cents,
                payment_term_snapshot=payment_term_to_dict(order.payment_term_snapshot),
                created_at=order.created_at,
                version=order.version,
            )
        )
        self.db.flush()
        return order

    def get(self, order_id: str) -> Optional[Order]:
        row = self.db.get(OrderRecord, order_id)
        if row is None:
            return None
        # Lifecycle decisions must see the committed row, not a cached identity
        self.db.refresh(row)
        return _to_order(row)

    def list_for_relationship(self, relationship_id: str) -> List[Order]:
        """Orders in creation order"""
        rows = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.relationship_id == relationship_id)
            .order_by(OrderRecord.created_at, OrderRecord.id)
            .all()
        )
        return [_to_order(row) for row in rows]

    def save_transition(self, updated: Order) -> Order:
        """
        Persist a lifecycle transition with read-then-conditional-write.

        updated.version is the version that was read; the write only applies if
        no one else changed the row since.

        Raises:
            ConcurrentModificationError: row version moved on; re-read and retry
        """
        check_order_invariants(updated)
        rowcount = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.id == updated.id, OrderRecord.version == updated.version)
            .update(
                {
                    OrderRecord.accepted_at: updated.accepted_at,
                    OrderRecord.dispatched_at: updated.dispatched_at,
                    OrderRecord.delivered_at: updated.delivered_at,
                    OrderRecord.declined_at: updated.declined_at,
                    OrderRecord.version: updated.version + 1,
                },
            )
        )
        if rowcount != 1:
            raise ConcurrentModificationError("Order was modified concurrently, reload and retry")
        return replace(updated, version=updated.version + 1)


class PaymentRepository:
    """Repository for payment events"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, payment_id: str) -> Optional[PaymentEvent]:
        row = self.db.get(PaymentEventRecord, payment_id)
        if row is None:
            return None
        self.db.refresh(row)
        return _to_payment(row)

    def total_paid(self, order_id: str) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(PaymentEventRecord.amount_cents), 0))
            .filter(PaymentEventRecord.order_id == order_id)
            .scalar()
        )
        return int(total)

    def create(self, payment: PaymentEvent, order: Order) -> PaymentEvent:
        """
        Insert a payment after re-checking the balance against stored payments,
        so no write path can push the pending amount below zero.

        The order's version is bumped first, conditional on the version that was
        read. That row lock serializes payments on one order, so the balance read
        below already includes every competing payment that committed first.

        Raises:
            ConcurrentModificationError: the order changed since it was read
            OverpaymentError: amount exceeds what is still owed
        """
        rowcount = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.id == order.id, OrderRecord.version == order.version)
            .update({OrderRecord.version: order.version + 1})
        )
        if rowcount != 1:
            raise ConcurrentModificationError("Order was modified concurrently, reload and retry")
        validate_payment_amount(order.order_value_cents, self.total_paid(order.id), payment.amount_cents)
        self.db.add(
            PaymentEventRecord(
                id=payment.id,
                order_id=payment.order_id,
                amount_cents=payment.amount_cents,
                recorded_at=payment.recorded_at,
                recorded_by=payment.recorded_by,
                disputed=False,
            )
        )
        self.db.flush()
        return payment

    def list_for_orders(self, order_ids: Iterable[str]) -> List[PaymentEvent]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        rows = (
            self.db.query(PaymentEventRecord)
            .filter(PaymentEventRecord.order_id.in_(order_ids))
            .order_by(PaymentEventRecord.recorded_at, PaymentEventRecord.id)
            .all()
        )
        return [_to_payment(row) for row in rows]

    def mark_disputed(self, payment_id: str, now: datetime) -> bool:
        """One-way flag; returns False when already disputed or accepted"""
        rowcount = (
            self.db.query(PaymentEventRecord)
            .filter(
                PaymentEventRecord.id == payment_id,
                PaymentEventRecord.disputed.is_(False),
                PaymentEventRecord.accepted_at.is_(None),
            )
            .update(
                {PaymentEventRecord.disputed: True, PaymentEventRecord.disputed_at: now},
            )
        )
        return rowcount == 1

    def mark_accepted(self, payment_id: str, now: datetime) -> bool:
        """One-way flag; returns False when already accepted or disputed"""
        rowcount = (
            self.db.query(PaymentEventRecord)
            .filter(
                PaymentEventRecord.id == payment_id,
                PaymentEventRecord.accepted_at.is_(None),
                PaymentEventRecord.disputed.is_(False),
            )
            .update({PaymentEventRecord.accepted_at: now})
        )
        return rowcount == 1

    def accept_recorded_before(self, cutoff: datetime, now: datetime) -> int:
        """Accept every undisputed, unaccepted payment recorded at or before cutoff"""
        return (
            self.db.query(PaymentEventRecord)
            .filter(
                PaymentEventRecord.accepted_at.is_(None),
                PaymentEventRecord.disputed.is_(False),
                PaymentEventRecord.recorded_at <= cutoff,
            )
            .update({PaymentEventRecord.accepted_at: now})
        )


class IssueRepository:
    """Repository for issue reports"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, issue: IssueReport) -> IssueReport:
        self.db.add(
            IssueReportRecord(
                id=issue.id,
                order_id=issue.order_id,
                issue_type=issue.issue_type.value,
                severity=issue.severity.value,
                raised_by=issue.raised_by.value,
                status=issue.status.value,
                created_at=issue.created_at,
            )
        )
        self.db.flush()
        return issue

    def get(self, issue_id: str) -> Optional[IssueReport]:
        row = self.db.get(IssueReportRecord, issue_id)
        if row is None:
            return None
        self.db.refresh(row)
        return _to_issue(row)

    def list_for_orders(self, order_ids: Iterable[str]) -> List[IssueReport]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        rows = (
            self.db.query(IssueReportRecord)
            .filter(IssueReportRecord.order_id.in_(order_ids))
            .order_by(IssueReportRecord.created_at, IssueReportRecord.id)
            .all()
        )
        return [_to_issue(row) for row in rows]

    def resolve(self, issue_id: str, now: datetime) -> bool:
        rowcount = (
            self.db.query(IssueReportRecord)
            .filter(IssueReportRecord.id == issue_id, IssueReportRecord.status == IssueStatus.OPEN.value)
            .update(
                {IssueReportRecord.status: IssueStatus.RESOLVED.value, IssueReportRecord.resolved_at: now},
            )
        )
        return rowcount == 1


class NotificationRepository:
    """Repository for the notification inbox"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, notification: Notification) -> Notification:
        self.db.add(
            NotificationRecord(
                id=notification.id,
                recipient_business_id=notification.recipient_business_id,
                event_type=notification.event_type.value,
                related_entity_id=notification.related_entity_id,
                relationship_id=notification.relationship_id,
                message=notification.message,
                created_at=notification.created_at,
            )
        )
        return notification

    def get(self, notification_id: str) -> Optional[Notification]:
        row = self.db.get(NotificationRecord, notification_id)
        if row is None:
            return None
        self.db.refresh(row)
        return _to_notification(row)

    def list_for_recipient(self, business_id: str, limit: int = 50) -> List[Notification]:
        rows = (
            self.db.query(NotificationRecord)
            .filter(NotificationRecord.recipient_business_id == business_id)
            .order_by(NotificationRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_notification(row) for row in rows]

    def count_unread(self, business_id: str) -> int:
        return (
            self.db.query(NotificationRecord)
            .filter(
                NotificationRecord.recipient_business_id == business_id,
                NotificationRecord.read_at.is_(None),
            )
            .count()
        )

    def mark_read(self, notification_id: str, now: datetime) -> bool:
        """One-way flag; returns False when already read"""
        rowcount = (
            self.db.query(NotificationRecord)
            .filter(NotificationRecord.id == notification_id, NotificationRecord.read_at.is_(None))
            .update({NotificationRecord.read_at: now})
        )
        return rowcount == 1

    def mark_all_read(self, business_id: str, now: datetime) -> int:
        return (
            self.db.query(NotificationRecord)
            .filter(
                NotificationRecord.recipient_business_id == business_id,
                NotificationRecord.read_at.is_(None),
            )
            .update({NotificationRecord.read_at: now})
        )


class SnapshotRepository:
    """Loads complete relationship histories for the derivation pipeline"""

    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepository(db)
        self.payments = PaymentRepository(db)
        self.issues = IssueRepository(db)

    def load(self, relationship: Relationship) -> RelationshipSnapshot:
        orders = self.orders.list_for_relationship(relationship.id)
        order_ids = [order.id for order in orders]
        return RelationshipSnapshot(
            relationship=relationship,
            orders=orders,
            payments=self.payments.list_for_orders(order_ids),
            issues=self.issues.list_for_orders(order_ids),
        )

    def load_for_business(self, business_id: str) -> List[RelationshipSnapshot]:
        relationships = RelationshipRepository(self.db).list_for_business(business_id)
        return [self.load(relationship) for relationship in relationships]
