"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from tradeline.domain.attention import ActiveFrictionSummary, AttentionItem
from tradeline.domain.behaviour import BehaviourSignals
from tradeline.domain.insights import InsightTemplate
from tradeline.domain.lifecycle import derive_state
from tradeline.domain.models import (
    IssueReport,
    IssueSeverity,
    IssueType,
    Notification,
    Order,
    OrderSettlement,
    PaymentEvent,
    Relationship,
)
from tradeline.domain.payment_terms import (
    DAYS_AFTER_DELIVERY,
    PaymentTerm,
    payment_term_from_dict,
    payment_term_to_dict,
)


class PaymentTermSchema(BaseModel):
    """{"type": "Days After Delivery", "days": 7} or {"type": "Bill to Bill"}"""

    type: Literal["Advance Required", "Payment on Delivery", "Bill to Bill", "Days After Delivery"]
    days: Optional[int] = Field(None, gt=0, description="Required for Days After Delivery")

    @model_validator(mode="after")
    def check_days(self):
        if self.type == DAYS_AFTER_DELIVERY and self.days is None:
            raise ValueError("days is required for Days After Delivery")
        if self.type != DAYS_AFTER_DELIVERY and self.days is not None:
            raise ValueError(f"days is not allowed for {self.type}")
        return self

    def to_domain(self) -> PaymentTerm:
        return payment_term_from_dict(self.model_dump(exclude_none=True))

    @classmethod
    def from_domain(cls, term: Optional[PaymentTerm]) -> Optional["PaymentTermSchema"]:
        if term is None:
            return None
        return cls(**payment_term_to_dict(term))


# Requests


class RelationshipCreateRequest(BaseModel):
    """Request body for POST /v1/relationships"""

    buyer_business_id: str = Field(..., min_length=1)
    supplier_business_id: str = Field(..., min_length=1)
    payment_terms: Optional[PaymentTermSchema] = None


class PaymentTermsUpdateRequest(BaseModel):
    payment_terms: PaymentTermSchema


class OrderCreateRequest(BaseModel):
    """Request body for POST /v1/relationships/{id}/orders"""

    item_summary: str = Field(..., min_length=1, max_length=500)
    order_value_cents: int = Field(..., gt=0, description="Order value in cents")


class PaymentCreateRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount paid in cents")


class IssueCreateRequest(BaseModel):
    issue_type: IssueType
    severity: IssueSeverity


# Responses


class RelationshipResponse(BaseModel):
    relationship_id: str
    buyer_business_id: str
    supplier_business_id: str
    payment_terms: Optional[PaymentTermSchema] = None
    health_state: str
    created_at: datetime

    @classmethod
    def from_domain(cls, relationship: Relationship) -> "RelationshipResponse":
        return cls(
            relationship_id=relationship.id,
            buyer_business_id=relationship.buyer_business_id,
            supplier_business_id=relationship.supplier_business_id,
            payment_terms=PaymentTermSchema.from_domain(relationship.payment_terms),
            health_state=relationship.health_state.value,
            created_at=relationship.created_at,
        )


class OrderResponse(BaseModel):
    order_id: str
    relationship_id: str
    item_summary: str
    order_value_cents: int
    state: str
    payment_term_snapshot: PaymentTermSchema
    created_at: datetime
    accepted_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    version: int

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            order_id=order.id,
            relationship_id=order.relationship_id,
            item_summary=order.item_summary,
            order_value_cents=order.order_value_cents,
            state=derive_state(order).value,
            payment_term_snapshot=PaymentTermSchema.from_domain(order.payment_term_snapshot),
            created_at=order.created_at,
            accepted_at=order.accepted_at,
            dispatched_at=order.dispatched_at,
            delivered_at=order.delivered_at,
            declined_at=order.declined_at,
            version=order.version,
        )


class OrderSettlementResponse(BaseModel):
    order: OrderResponse
    total_paid_cents: int
    pending_amount_cents: int
    status: str
    due_date: Optional[datetime] = None
    paid_on_time: Optional[bool] = None

    @classmethod
    def from_domain(cls, settlement: OrderSettlement) -> "OrderSettlementResponse":
        return cls(
            order=OrderResponse.from_domain(settlement.order),
            total_paid_cents=settlement.total_paid_cents,
            pending_amount_cents=settlement.pending_amount_cents,
            status=settlement.status.value,
            due_date=settlement.due_date,
            paid_on_time=settlement.paid_on_time,
        )


class PaymentResponse(BaseModel):
    payment_id: str
    order_id: str
    amount_cents: int
    recorded_at: datetime
    recorded_by: str
    disputed: bool
    disputed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, payment: PaymentEvent) -> "PaymentResponse":
        return cls(
            payment_id=payment.id,
            order_id=payment.order_id,
            amount_cents=payment.amount_cents,
            recorded_at=payment.recorded_at,
            recorded_by=payment.recorded_by,
            disputed=payment.disputed,
            disputed_at=payment.disputed_at,
            accepted_at=payment.accepted_at,
        )


class IssueResponse(BaseModel):
    issue_id: str
    order_id: str
    issue_type: IssueType
    severity: IssueSeverity
    raised_by: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, issue: IssueReport) -> "IssueResponse":
        return cls(
            issue_id=issue.id,
            order_id=issue.order_id,
            issue_type=issue.issue_type,
            severity=issue.severity,
            raised_by=issue.raised_by.value,
            status=issue.status.value,
            created_at=issue.created_at,
            resolved_at=issue.resolved_at,
        )


class AttentionItemResponse(BaseModel):
    id: str
    category: str
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

    @classmethod
    def from_domain(cls, item: AttentionItem) -> "AttentionItemResponse":
        return cls(
            id=item.id,
            category=item.category.value,
            priority=item.priority,
            friction_started_at=item.friction_started_at,
            relationship_id=item.relationship_id,
            order_id=item.order_id,
            description=item.description,
            issue_id=item.issue_id,
            issue_type=item.issue_type,
            pending_amount_cents=item.pending_amount_cents,
            days_overdue=item.days_overdue,
            state_info=item.state_info,
        )


class AttentionResponse(BaseModel):
    """Response for GET /v1/attention"""

    business_id: str
    total_count: int
    truncated: bool
    items: List[AttentionItemResponse]


class SettlementSignalsSchema(BaseModel):
    on_time_payment_count: int
    late_payment_count: int
    partial_payment_count: int
    overdue_count: int
    unpaid_count: int
    orders_created_recently: int


class OperationalSignalsSchema(BaseModel):
    avg_acceptance_delay_hours: Optional[float] = None
    avg_dispatch_delay_hours: Optional[float] = None
    delivery_consistency: Optional[float] = None
    orders_awaiting_acceptance: int
    orders_awaiting_dispatch: int
    order_count: int


class QualitySignalsSchema(BaseModel):
    total_open_issues: int
    total_issues_30_days: int
    recurring_issue_types: List[IssueType]
    buyer_raised_issue_count: int
    supplier_raised_issue_count: int


class FrictionSchema(BaseModel):
    has_settlement_friction: bool
    has_operational_friction: bool
    has_quality_friction: bool


class BehaviourResponse(BaseModel):
    """Response for GET /v1/relationships/{id}/signals"""

    relationship_id: str
    settlement_medium: SettlementSignalsSchema
    settlement_short: SettlementSignalsSchema
    operational: OperationalSignalsSchema
    quality: QualitySignalsSchema
    active_friction: FrictionSchema

    @classmethod
    def from_domain(
        cls,
        relationship_id: str,
        signals: BehaviourSignals,
        friction: ActiveFrictionSummary,
    ) -> "BehaviourResponse":
        return cls(
            relationship_id=relationship_id,
            settlement_medium=SettlementSignalsSchema.model_validate(signals.settlement_medium, from_attributes=True),
            settlement_short=SettlementSignalsSchema.model_validate(signals.settlement_short, from_attributes=True),
            operational=OperationalSignalsSchema.model_validate(signals.operational, from_attributes=True),
            quality=QualitySignalsSchema.model_validate(signals.quality, from_attributes=True),
            active_friction=FrictionSchema.model_validate(friction, from_attributes=True),
        )


class InsightSchema(BaseModel):
    key: str
    text: str
    group: str
    positive: bool

    @classmethod
    def from_domain(cls, template: InsightTemplate) -> "InsightSchema":
        return cls(key=template.name, text=template.text, group=template.group.value, positive=template.positive)


class InsightsResponse(BaseModel):
    relationship_id: str
    insights: List[InsightSchema]


class NotificationResponse(BaseModel):
    notification_id: str
    event_type: str
    related_entity_id: str
    relationship_id: str
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            notification_id=notification.id,
            event_type=notification.event_type.value,
            related_entity_id=notification.related_entity_id,
            relationship_id=notification.relationship_id,
            message=notification.message,
            created_at=notification.created_at,
            read_at=notification.read_at,
        )


class NotificationsResponse(BaseModel):
    business_id: str
    unread_count: int
    notifications: List[NotificationResponse]


class NotificationsMarkedResponse(BaseModel):
    business_id: str
    marked_count: int
