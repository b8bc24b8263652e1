"""Read paths over the derivation pipeline; nothing here writes"""

from dataclasses import replace
from typing import List
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from tradeline.config import settings
from tradeline.domain.attention import (
    ActiveFrictionSummary,
    AttentionItem,
    build_attention_items,
    relationship_attention_items,
    summarize_active_friction,
)
from tradeline.domain.behaviour import BehaviourSignals, compute_behaviour_signals
from tradeline.domain.exceptions import NotFoundError, UnauthorizedActorError
from tradeline.domain.health import classify_signals
from tradeline.domain.insights import InsightTemplate, select_insights
from tradeline.domain.models import Notification, OrderSettlement, Relationship, RelationshipSnapshot
from tradeline.domain.settlement import settle_relationship_orders
from tradeline.infrastructure.database.repositories import (
    NotificationRepository,
    RelationshipRepository,
    SnapshotRepository,
)
from tradeline.infrastructure.observability.metrics import record_attention_items
from tradeline.utils.date_utils import Clock, IdFactory, new_id, utc_now


class RelationshipViews:
    """Derived state for one acting business, scoped to its own relationships"""

    def __init__(
        self,
        db: Session,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        calendar_timezone: str | None = None,
    ):
        self.clock = clock
        self.id_factory = id_factory
        self.tz = ZoneInfo(calendar_timezone or settings.calendar_timezone)
        self.relationships = RelationshipRepository(db)
        self.snapshots = SnapshotRepository(db)
        self.notifications = NotificationRepository(db)

    def list_relationships(self, business_id: str) -> List[Relationship]:
        return self.relationships.list_for_business(business_id)

    def _member_relationship(self, relationship_id: str, business_id: str) -> Relationship:
        relationship = self.relationships.get(relationship_id)
        if relationship is None:
            raise NotFoundError("Relationship not found")
        if not relationship.is_member(business_id):
            raise UnauthorizedActorError("Requesting business is not part of this relationship")
        return relationship

    def _snapshot(self, relationship_id: str, business_id: str) -> RelationshipSnapshot:
        return self.snapshots.load(self._member_relationship(relationship_id, business_id))

    def get_relationship(self, relationship_id: str, business_id: str) -> Relationship:
        """
        The relationship with its health label derived now, so a stale cached
        label from a failed recomputation is never served on a direct read.
        """
        snapshot = self._snapshot(relationship_id, business_id)
        state = classify_signals(compute_behaviour_signals(snapshot, self.clock()))
        return replace(snapshot.relationship, health_state=state)

    def list_order_settlements(self, relationship_id: str, business_id: str) -> List[OrderSettlement]:
        snapshot = self._snapshot(relationship_id, business_id)
        return settle_relationship_orders(snapshot.orders, snapshot.payments_by_order(), self.clock())

    def get_attention_items(self, business_id: str, limit: int | None = None) -> List[AttentionItem]:
        """Global worklist across every relationship of the business; uncapped unless limit is given"""
        items = build_attention_items(
            self.snapshots.load_for_business(business_id),
            business_id,
            self.clock(),
            self.tz,
            self.id_factory,
        )
        record_attention_items(items)
        if limit is not None:
            return items[:limit]
        return items

    def get_relationship_attention(self, relationship_id: str, business_id: str) -> List[AttentionItem]:
        snapshot = self._snapshot(relationship_id, business_id)
        return relationship_attention_items(snapshot, self.clock(), self.tz, self.id_factory)

    def get_active_friction(self, relationship_id: str, business_id: str) -> ActiveFrictionSummary:
        return summarize_active_friction(self.get_relationship_attention(relationship_id, business_id))

    def get_behaviour_signals(self, relationship_id: str, business_id: str) -> BehaviourSignals:
        snapshot = self._snapshot(relationship_id, business_id)
        return compute_behaviour_signals(snapshot, self.clock())

    def get_insights(self, relationship_id: str, business_id: str) -> List[InsightTemplate]:
        """Insights as seen from the caller's side of the relationship"""
        snapshot = self._snapshot(relationship_id, business_id)
        now = self.clock()
        signals = compute_behaviour_signals(snapshot, now)
        friction = summarize_active_friction(
            relationship_attention_items(snapshot, now, self.tz, self.id_factory)
        )
        return select_insights(signals, friction, snapshot.relationship.role_of(business_id))

    def list_notifications(self, business_id: str, limit: int = 50) -> List[Notification]:
        return self.notifications.list_for_recipient(business_id, limit)

    def count_unread_notifications(self, business_id: str) -> int:
        return self.notifications.count_unread(business_id)
