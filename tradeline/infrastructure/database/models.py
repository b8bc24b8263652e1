"""SQLAlchemy ORM models for the trading event store"""

from datetime import timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps, also on backends that drop tzinfo (SQLite)"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError("Naive datetime passed to a UTC column")
        return value.astimezone(timezone.utc) if value is not None else None

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class RelationshipRecord(Base):
    """Buyer-supplier relationship with its cached health label"""

    __tablename__ = "trade_relationship"

    id = Column(String(36), primary_key=True)
    buyer_business_id = Column(Text, nullable=False, index=True)
    supplier_business_id = Column(Text, nullable=False, index=True)
    payment_terms = Column(JSON, nullable=True)
    health_state = Column(Text, nullable=False, default="Stable")
    created_at = Column(UTCDateTime, nullable=False)


class OrderRecord(Base):
    """Order with lifecycle timestamps; state is derived, never stored"""

    __tablename__ = "trade_order"

    id = Column(String(36), primary_key=True)
    relationship_id = Column(String(36), ForeignKey("trade_relationship.id"), nullable=False)
    item_summary = Column(Text, nullable=False)
    order_value_cents = Column(BigInteger, nullable=False)
    payment_term_snapshot = Column(JSON, nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    accepted_at = Column(UTCDateTime, nullable=True)
    dispatched_at = Column(UTCDateTime, nullable=True)
    delivered_at = Column(UTCDateTime, nullable=True)
    declined_at = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (Index("ix_trade_order_relationship_created", "relationship_id", "created_at"),)


class PaymentEventRecord(Base):
    """Self-reported payment; only the dispute/accept flags change after insert"""

    __tablename__ = "payment_event"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("trade_order.id"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    recorded_at = Column(UTCDateTime, nullable=False)
    recorded_by = Column(Text, nullable=False)
    disputed = Column(Boolean, nullable=False, default=False)
    disputed_at = Column(UTCDateTime, nullable=True)
    accepted_at = Column(UTCDateTime, nullable=True)


class IssueReportRecord(Base):
    """Quality or billing issue raised against an order"""

    __tablename__ = "issue_report"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("trade_order.id"), nullable=False, index=True)
    issue_type = Column(Text, nullable=False)
    severity = Column(Text, nullable=False)
    raised_by = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="Open")
    created_at = Column(UTCDateTime, nullable=False)
    resolved_at = Column(UTCDateTime, nullable=True)


class NotificationRecord(Base):
    """In-app inbox row; webhook delivery is tracked by the notifier client"""

    __tablename__ = "notification"

    id = Column(String(36), primary_key=True)
    recipient_business_id = Column(Text, nullable=False, index=True)
    event_type = Column(Text, nullable=False)
    related_entity_id = Column(String(36), nullable=False)
    relationship_id = Column(String(36), ForeignKey("trade_relationship.id"), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    read_at = Column(UTCDateTime, nullable=True)
