"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from tradeline.domain.payment_terms import PaymentTerm


class Role(str, Enum):
    BUYER = "buyer"
    SUPPLIER = "supplier"


class HealthState(str, Enum):
    """Cached relationship health label"""

    STABLE = "Stable"
    ACTIVE = "Active"
    FRICTION_RISING = "Friction Rising"
    UNDER_STRESS = "Under Stress"


class LifecycleState(str, Enum):
    PLACED = "Placed"
    ACCEPTED = "Accepted"
    DISPATCHED = "Dispatched"
    DELIVERED = "Delivered"
    DECLINED = "Declined"


class OrderAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    DISPATCH = "dispatch"
    DELIVER = "deliver"


class SettlementStatus(str, Enum):
    PAID = "Paid"
    PARTIAL_PAYMENT = "Partial Payment"
    AWAITING_PAYMENT = "Awaiting Payment"
    PENDING = "Pending"  # overdue and unpaid


class IssueType(str, Enum):
    DAMAGED_PRODUCT = "Damaged Product"
    QUALITY_BELOW_EXPECTATION = "Quality Below Expectation"
    EXPIRED_PRODUCT = "Expired Product"
    PACKAGING_ISSUE = "Packaging Issue"
    SHORT_SUPPLY = "Short Supply"
    WRONG_ITEMS_DELIVERED = "Wrong Items Delivered"
    BILLING_MISMATCH = "Billing Mismatch"
    PRICE_DISCREPANCY = "Price Discrepancy"


class IssueSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class IssueStatus(str, Enum):
    OPEN = "Open"
    RESOLVED = "Resolved"


class NotificationType(str, Enum):
    ORDER_PLACED = "OrderPlaced"
    ORDER_ACCEPTED = "OrderAccepted"
    ORDER_DISPATCHED = "OrderDispatched"
    ORDER_DELIVERED = "OrderDelivered"
    ORDER_DECLINED = "OrderDeclined"
    PAYMENT_TERMS_UPDATED = "PaymentTermsUpdated"
    PAYMENT_RECORDED = "PaymentRecorded"
    PAYMENT_DISPUTED = "PaymentDisputed"
    ISSUE_RAISED = "IssueRaised"
    ISSUE_RESOLVED = "IssueResolved"


@dataclass
class Relationship:
    """Buyer-supplier pairing with agreed payment terms"""

    id: str
    buyer_business_id: str
    supplier_business_id: str
    payment_terms: Optional[PaymentTerm]
    health_state: HealthState
    created_at: datetime

    def is_member(self, business_id: str) -> bool:
        return business_id in (self.buyer_business_id, self.supplier_business_id)

    def role_of(self, business_id: str) -> Optional[Role]:
        if business_id == self.buyer_business_id:
            return Role.BUYER
        if business_id == self.supplier_business_id:
            return Role.SUPPLIER
        return None

    def counterparty_of(self, business_id: str) -> str:
        if business_id == self.buyer_business_id:
            return self.supplier_business_id
        return self.buyer_business_id


@dataclass
class Order:
    """Single transaction placed under a relationship"""

    id: str
    relationship_id: str
    item_summary: str
    order_value_cents: int
    created_at: datetime
    payment_term_snapshot: PaymentTerm
    accepted_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    version: int = 1


@dataclass
class PaymentEvent:
    """Self-reported payment against an order"""

    id: str
    order_id: str
    amount_cents: int
    recorded_at: datetime
    recorded_by: str
    disputed: bool = False
    disputed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None


@dataclass
class IssueReport:
    """Quality or billing problem raised against an order"""

    id: str
    order_id: str
    issue_type: IssueType
    severity: IssueSeverity
    raised_by: Role
    status: IssueStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None


@dataclass
class Notification:
    """Domain event addressed to the counterparty of an interaction"""

    id: str
    recipient_business_id: str
    event_type: NotificationType
    related_entity_id: str
    relationship_id: str
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None


@dataclass
class OrderSettlement:
    """Derived payment position of one order"""

    order: Order
    total_paid_cents: int
    pending_amount_cents: int
    status: SettlementStatus
    due_date: Optional[datetime]
    paid_on_time: Optional[bool] = None


@dataclass
class RelationshipSnapshot:
    """Everything recorded under one relationship, as read from the event store"""

    relationship: Relationship
    orders: List[Order] = field(default_factory=list)
    payments: List[PaymentEvent] = field(default_factory=list)
    issues: List[IssueReport] = field(default_factory=list)

    def payments_by_order(self) -> Dict[str, List[PaymentEvent]]:
        grouped: Dict[str, List[PaymentEvent]] = {order.id: [] for order in self.orders}
        for payment in self.payments:
            grouped.setdefault(payment.order_id, []).append(payment)
        return grouped
